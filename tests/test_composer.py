from __future__ import annotations

import pytest

from chatstory.audio import AudioAssets, AudioTrackComposer
from chatstory.audio.composer import require_asset, seconds_to_ms
from chatstory.config import AudioConfig
from chatstory.domain.errors import AssetMissingError
from chatstory.domain.models import IntroTiming, TimelineEntry
from chatstory.timeline import TimelineCalculator


def touch(path) -> str:
    path.write_bytes(b"RIFF")
    return str(path)


def entry(index: int, appear: float, kind: str = "text") -> TimelineEntry:
    return TimelineEntry(
        index=index,
        sender="time_divider" if kind == "time_divider" else "alex",
        side=None if kind == "time_divider" else "left",
        kind=kind,
        reaction=0.8,
        typing_total=1.0,
        typing_start=appear - 1.0,
        typing_end=appear - 0.2,
        appear_time=appear,
    )


@pytest.fixture
def intro() -> IntroTiming:
    return IntroTiming.build(
        delay_before_reveal=0.5,
        fade_in_duration=0.6,
        narration_duration=2.5,
        hold_after_duration=1.0,
        has_narration=True,
    )


def test_bgm_starts_at_intro_boundary_and_loops(tmp_path, intro):
    assert intro.total == pytest.approx(4.0)
    graph = AudioTrackComposer().compose(intro, [], AudioAssets(bgm=touch(tmp_path / "bgm.wav")), 20.0)

    bgm = graph.by_role("bgm")
    assert len(bgm) == 1
    assert bgm[0].start_offset_ms == 4000
    assert bgm[0].loop is True
    assert bgm[0].gain == pytest.approx(0.3)


def test_full_graph_offsets(tmp_path, intro):
    assets = AudioAssets(
        narration=touch(tmp_path / "narration.wav"),
        sting=touch(tmp_path / "sting.wav"),
        bgm=touch(tmp_path / "bgm.wav"),
        notification=touch(tmp_path / "pop.wav"),
    )
    entries = [entry(0, 5.0), entry(1, 6.3456), entry(2, 8.0, kind="time_divider"), entry(3, 9.5)]
    graph = AudioTrackComposer().compose(intro, entries, assets, 12.0)

    narration = graph.by_role("narration")[0]
    assert (narration.start_offset_ms, narration.gain, narration.loop) == (500, 1.0, False)
    assert graph.by_role("sting")[0].start_offset_ms == 4000

    notifications = graph.by_role("notification")
    assert [t.start_offset_ms for t in notifications] == [5000, 6346, 8000, 9500]
    assert all(t.gain == pytest.approx(0.5) for t in notifications)
    assert graph.total_duration == 12.0


def test_no_assets_gives_empty_graph(intro):
    graph = AudioTrackComposer().compose(intro, [entry(0, 5.0)], AudioAssets(), 8.0)
    assert graph.is_empty
    assert graph.total_duration_ms == 8000


def test_missing_assets_are_omitted(tmp_path, intro):
    assets = AudioAssets(
        narration=str(tmp_path / "nope.mp3"),
        bgm=touch(tmp_path / "bgm.wav"),
    )
    graph = AudioTrackComposer().compose(intro, [], assets, 10.0)
    assert [t.role for t in graph.tracks] == ["bgm"]


def test_notifications_are_capped(tmp_path, intro):
    config = AudioConfig(max_notification_tracks=3)
    entries = [entry(i, 5.0 + i) for i in range(10)]
    graph = AudioTrackComposer(config).compose(
        intro, entries, AudioAssets(notification=touch(tmp_path / "pop.wav")), 20.0
    )
    assert [t.start_offset_ms for t in graph.tracks] == [5000, 6000, 7000]


def test_dividers_get_a_notification_and_count_toward_cap(tmp_path, intro):
    config = AudioConfig(max_notification_tracks=2)
    entries = [entry(0, 5.0, kind="time_divider"), entry(1, 7.0), entry(2, 9.0)]
    graph = AudioTrackComposer(config).compose(
        intro, entries, AudioAssets(notification=touch(tmp_path / "pop.wav")), 12.0
    )
    assert [t.start_offset_ms for t in graph.tracks] == [5000, 7000]


def test_compose_timeline_uses_timeline_totals(tmp_path, conversation):
    timeline = TimelineCalculator().calculate(conversation)
    graph = AudioTrackComposer().compose_timeline(
        timeline, AudioAssets(sting=touch(tmp_path / "sting.wav"))
    )
    assert graph.total_duration == timeline.total_duration
    assert graph.tracks[0].start_offset_ms == seconds_to_ms(timeline.intro.total)


def test_require_asset(tmp_path):
    with pytest.raises(AssetMissingError):
        require_asset(None, "bgm")
    with pytest.raises(AssetMissingError):
        require_asset(str(tmp_path / "missing.wav"), "bgm")
    assert require_asset(touch(tmp_path / "ok.wav"), "bgm").endswith("ok.wav")
