from __future__ import annotations

import pytest

from chatstory.audio import DurationProbe
from chatstory.config import Settings
from chatstory.domain.models import Timeline
from chatstory.timeline import TimelineCalculator

from conftest import make_script, write_silence

INTRO_TOTAL = 0.5 + 1.5 + 1.0  # delay + narración mínima + hold


def calculate(script, settings=None) -> Timeline:
    return TimelineCalculator(settings or Settings()).calculate(script)


def test_empty_script_is_intro_plus_buffer():
    timeline = calculate(make_script([]))
    assert timeline.entries == ()
    assert timeline.intro.total == pytest.approx(INTRO_TOTAL)
    assert timeline.total_duration == pytest.approx(timeline.intro.total + timeline.trailing_buffer)
    assert timeline.total_duration > 0


def test_single_partner_message_appears_after_fixed_first_typing():
    timeline = calculate(make_script([{"sender": "alex", "message": "x" * 120}]))
    entry = timeline.entries[0]
    assert entry.reaction == 0
    assert entry.typing_total == pytest.approx(1.0)
    assert entry.appear_time == pytest.approx(timeline.intro.total + 0 + 1.0)
    assert timeline.total_duration == pytest.approx(entry.appear_time + 2.0)


def test_first_self_message_uses_short_constant():
    timeline = calculate(make_script([{"sender": "me", "message": "hola a todos"}]))
    assert timeline.entries[0].typing_total == pytest.approx(0.5)


def test_first_message_ignores_explicit_delays():
    timeline = calculate(make_script([
        {"sender": "alex", "message": "hola", "delay": 5.0, "reaction_delay": 3.0},
    ]))
    entry = timeline.entries[0]
    assert entry.reaction == 0
    assert entry.typing_total == pytest.approx(1.0)


def test_first_message_override_can_be_disabled():
    settings = Settings.model_validate({"timing": {"first_message_override": False}})
    timeline = calculate(make_script([{"sender": "alex", "message": "hola", "delay": 5.0}]), settings)
    assert timeline.entries[0].typing_total == pytest.approx(5.0)


def test_additive_schedule(conversation):
    timeline = calculate(conversation)
    current = timeline.intro.total
    for entry in timeline.entries:
        assert entry.typing_start == pytest.approx(current + entry.reaction)
        assert entry.typing_end == pytest.approx(entry.typing_start + entry.typing_total * 0.8)
        assert entry.appear_time == pytest.approx(current + entry.reaction + entry.typing_total)
        current = entry.appear_time


def test_appear_times_are_non_decreasing_and_after_intro(conversation):
    timeline = calculate(conversation)
    times = timeline.appear_times
    assert times == sorted(times)
    assert all(t >= timeline.intro.total for t in times)


def test_reaction_delay_default_and_override():
    timeline = calculate(make_script([
        {"sender": "alex", "message": "a"},
        {"sender": "me", "message": "b"},
        {"sender": "alex", "message": "c", "reaction_delay": 0},
        {"sender": "me", "message": "d", "reaction_delay": 2.5},
    ]))
    assert [e.reaction for e in timeline.entries] == pytest.approx([0, 0.8, 0, 2.5])


def test_computed_typing_rules():
    timeline = calculate(make_script([
        {"sender": "alex", "message": "primero"},
        {"sender": "me", "message": "hola"},
        {"sender": "me", "message": "x" * 60},
        {"sender": "me", "message": "x" * 60, "typing_speed": "slow"},
        {"sender": "me", "message": "ok", "typing_speed": "fast"},
        {"sender": "me", "message": "x" * 300},
        {"sender": "me", "message": ""},
    ]))
    typing = [e.typing_total for e in timeline.entries[1:]]
    assert typing == pytest.approx([
        1.0 + 0.05 * 4,
        1.0 + 0.05 * 60,
        (1.0 + 0.05 * 60) * 1.4,
        (1.0 + 0.05 * 2) * 0.7,
        1.0 + 0.05 * 300,
        1.0,
    ])


def test_long_messages_follow_linear_formula():
    timeline = calculate(make_script([
        {"sender": "alex", "message": "primero"},
        {"sender": "me", "message": "x" * 60},
        {"sender": "me", "message": "x" * 200},
    ]))
    assert [e.typing_total for e in timeline.entries[1:]] == pytest.approx([4.0, 11.0])


def test_long_message_bonus_and_cap_are_opt_in():
    settings = Settings(timing={"long_message_bonus": 1.2, "max_typing_delay": 7.0})
    timeline = calculate(make_script([
        {"sender": "alex", "message": "primero"},
        {"sender": "me", "message": "x" * 60},
        {"sender": "me", "message": "x" * 40},
        {"sender": "me", "message": "x" * 300},
    ]), settings)
    assert [e.typing_total for e in timeline.entries[1:]] == pytest.approx([
        (1.0 + 0.05 * 60) * 1.2,
        1.0 + 0.05 * 40,
        7.0,
    ])


def test_explicit_delay_and_zero_delay():
    timeline = calculate(make_script([
        {"sender": "alex", "message": "a"},
        {"sender": "alex", "message": "hola", "delay": 3.2},
        {"sender": "alex", "message": "hola", "delay": 0},
    ]))
    assert timeline.entries[1].typing_total == pytest.approx(3.2)
    assert timeline.entries[2].typing_total == pytest.approx(1.2)


def test_time_divider_uses_fixed_duration_and_caption():
    timeline = calculate(make_script([
        {"sender": "alex", "message": "a"},
        {"sender": "time_divider", "message": "Una semana después"},
    ]))
    divider = timeline.entries[1]
    assert divider.kind == "time_divider"
    assert divider.side is None
    assert divider.typing_total == pytest.approx(2.0)
    assert divider.caption == "Una semana después"


def test_time_divider_first_keeps_its_own_duration():
    timeline = calculate(make_script([{"sender": "time_divider", "message": "Lunes"}]))
    assert timeline.entries[0].typing_total == pytest.approx(2.0)


def test_suspense_theme_skips_narration_and_uses_long_buffer(tmp_path):
    narration = write_silence(tmp_path / "intro.wav", 3000)
    timeline = calculate(make_script(
        [{"sender": "alex", "message": "hay alguien?"}],
        category="Horror",
        intro_audio=narration,
    ))
    assert timeline.theme == "horror"
    assert timeline.intro.has_narration is False
    assert timeline.intro.narration_duration == pytest.approx(1.5)
    assert timeline.trailing_buffer == pytest.approx(4.0)


def test_drama_category_is_suspense():
    timeline = calculate(make_script([{"sender": "alex", "message": "a"}], category="drama"))
    assert timeline.trailing_buffer == pytest.approx(4.0)


def test_narration_duration_is_measured(tmp_path):
    narration = write_silence(tmp_path / "intro.wav", 3000)
    timeline = calculate(make_script([], intro_audio=narration))
    assert timeline.intro.has_narration is True
    assert timeline.intro.narration_duration == pytest.approx(3.0, abs=0.01)
    assert timeline.intro.total == pytest.approx(0.5 + 3.0 + 1.0, abs=0.01)


def test_missing_narration_falls_back_to_minimum(tmp_path):
    timeline = calculate(make_script([], intro_audio=str(tmp_path / "missing.mp3")))
    assert timeline.intro.narration_duration == pytest.approx(1.5)
    assert timeline.intro.total == pytest.approx(INTRO_TOTAL)


def test_timeline_json_roundtrip(tmp_path, conversation):
    timeline = calculate(conversation)
    path = timeline.write_json(tmp_path / "out" / "timeline.json")
    assert Timeline.read_json(path) == timeline


def test_slice_keeps_characters_and_recomputes_first(conversation):
    part = conversation.slice(2, 3)
    assert [d.sender for d in part.dialogues] == ["me", "time_divider"]
    timeline = calculate(part)
    assert timeline.entries[0].reaction == 0
    assert timeline.entries[0].typing_total == pytest.approx(0.5)


def test_invalid_slice_range(conversation):
    with pytest.raises(ValueError):
        conversation.slice(3, 2)


def test_intro_fallback_ignores_generic_probe_fallback(tmp_path):
    probe = DurationProbe(fallback_duration=9.0)
    calculator = TimelineCalculator(Settings(), probe=probe)
    timeline = calculator.calculate(make_script([], intro_audio=str(tmp_path / "missing.mp3")))

    assert timeline.intro.has_narration is True
    assert timeline.intro.narration_duration == pytest.approx(1.5)
    # El respaldo genérico sigue aplicando fuera de la intro
    assert probe.duration_or_fallback(tmp_path / "missing.mp3") == pytest.approx(9.0)
