from __future__ import annotations

import pytest

from chatstory.timeline import FrameStateFunction, TimelineCalculator, compute_scene, ease_out_cubic, media_pop_state
from chatstory.timeline.frame_state import intro_reveal


@pytest.fixture
def timeline(conversation):
    return TimelineCalculator().calculate(conversation)


@pytest.fixture
def frame_state(timeline):
    return FrameStateFunction(timeline)


def sample_times(timeline, step=0.05):
    n = int(timeline.total_duration / step)
    return [round(i * step, 6) for i in range(n)]


def test_ease_out_cubic_bounds():
    assert ease_out_cubic(0) == 0
    assert ease_out_cubic(1) == 1
    assert ease_out_cubic(-3) == 0
    assert ease_out_cubic(5) == 1
    assert 0.5 < ease_out_cubic(0.5) < 1


def test_same_time_gives_identical_scene(frame_state, timeline):
    for t in sample_times(timeline, step=0.37):
        assert frame_state(t) == frame_state(t)


def test_query_order_does_not_matter(frame_state, timeline):
    times = sample_times(timeline, step=0.21)
    forward = [frame_state(t) for t in times]
    backward = [frame_state(t) for t in reversed(times)]
    assert forward == list(reversed(backward))
    assert compute_scene(timeline, times[-1]) == forward[-1]


def test_visible_set_is_monotonic(frame_state, timeline):
    previous = frozenset()
    for t in sample_times(timeline):
        visible = frame_state(t).visible_message_ids
        assert previous <= visible
        previous = visible


def test_phase_partition(frame_state, timeline):
    intro_total = timeline.intro.total
    for t in sample_times(timeline):
        expected = "intro" if t < intro_total else "conversation"
        assert frame_state(t).phase == expected
    assert frame_state(intro_total).phase == "conversation"


def test_intro_reveal_subphases(frame_state, timeline):
    intro = timeline.intro
    before = frame_state(0.0)
    assert (before.intro_opacity, before.intro_scale) == (0.0, 0.9)

    mid = frame_state(intro.delay_before_reveal + intro.fade_in_duration / 2)
    assert 0 < mid.intro_opacity < 1
    assert 0.9 < mid.intro_scale < 1.0

    held = frame_state(intro.reveal_end + 0.01)
    assert (held.intro_opacity, held.intro_scale) == (1.0, 1.0)
    assert intro_reveal(intro, intro.total - 0.001) == (1.0, 1.0)


def test_intro_suppresses_conversation(frame_state, timeline):
    scene = frame_state(timeline.intro.total - 0.01)
    assert scene.visible_message_ids == frozenset()
    assert scene.typing_indicator.active is False
    assert scene.overlay_text is None


def test_message_visible_exactly_at_appear_time(frame_state, timeline):
    first = timeline.entries[0]
    assert 0 not in frame_state(first.appear_time - 0.001).visible_message_ids
    scene = frame_state(first.appear_time)
    assert 0 in scene.visible_message_ids
    assert scene.message_appear_times[0] == first.appear_time


def test_typing_indicator_only_for_partner(frame_state, timeline):
    partner, me = timeline.entries[0], timeline.entries[1]

    scene = frame_state((partner.typing_start + partner.typing_end) / 2)
    assert scene.typing_indicator.active is True
    assert scene.typing_indicator.speaker_side == "left"
    assert scene.typing_indicator.speaker_id == "alex"

    assert frame_state((me.typing_start + me.typing_end) / 2).typing_indicator.active is False


def test_typing_indicator_off_during_silent_latency(frame_state, timeline):
    media = timeline.entries[3]
    assert frame_state(media.typing_end).typing_indicator.active is False
    assert frame_state((media.typing_end + media.appear_time) / 2).typing_indicator.active is False


def test_zoom_window(frame_state, timeline):
    zoomed = timeline.entries[3]
    assert frame_state(zoomed.appear_time - 0.01).camera_zoomed is False
    assert frame_state(zoomed.appear_time + 1.0).camera_zoomed is True
    assert frame_state(zoomed.appear_time + 2.6).camera_zoomed is False


def test_shake_is_short(frame_state, timeline):
    shaky = timeline.entries[4]
    assert frame_state(shaky.appear_time + 0.1).camera_effect == "shake"
    assert frame_state(shaky.appear_time + 0.7).camera_effect is None


def test_time_divider_overlay(frame_state, timeline):
    divider = timeline.entries[2]
    assert frame_state(divider.typing_start - 0.01).overlay_text is None
    assert frame_state(divider.typing_start + 0.1).overlay_text == "Al día siguiente"
    assert frame_state(divider.appear_time).overlay_text is None


def test_media_pop_animation(frame_state, timeline):
    media = timeline.entries[3]
    assert 3 not in frame_state(media.appear_time - 0.01).media_animations

    start = frame_state(media.appear_time).media_animations[3]
    assert start.scale == pytest.approx(0.6)
    assert start.opacity == pytest.approx(0.0)
    assert start.translate_y == pytest.approx(40.0)

    steady = frame_state(media.appear_time + 0.5).media_animations[3]
    assert (steady.scale, steady.translate_y, steady.opacity) == (1.0, 0.0, 1.0)

    # Solo los mensajes con imagen animan
    assert set(frame_state(media.appear_time + 0.5).media_animations) == {3}


def test_media_pop_state_is_local():
    assert media_pop_state(-0.1).opacity == 0
    mid = media_pop_state(0.1)
    assert 0.6 < mid.scale < 1.0
    assert 0 < mid.opacity < 1
    assert media_pop_state(0.35).scale == 1.0
