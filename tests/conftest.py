from __future__ import annotations

from typing import Any, Dict, List

import pytest
from pydub import AudioSegment
from pydub.generators import Sine

from chatstory.config import Settings
from chatstory.domain.models import ChatScript

CHARACTERS = {
    "alex": {"name": "Alex", "side": "left"},
    "me": {"name": "Yo", "side": "right"},
}


def make_script(dialogues: List[Dict[str, Any]], **fields) -> ChatScript:
    data = {
        "title": "Test story",
        "category": "funny",
        "room_name": "Grupo de prueba",
        "characters": CHARACTERS,
        "dialogues": dialogues,
    }
    data.update(fields)
    return ChatScript.model_validate(data)


def write_silence(path, duration_ms: int) -> str:
    AudioSegment.silent(duration=duration_ms, frame_rate=48000).export(str(path), format="wav")
    return str(path)


def write_tone(path, duration_ms: int, volume_db: float = -20.0) -> str:
    tone = Sine(440, sample_rate=48000).to_audio_segment(duration=duration_ms, volume=volume_db)
    tone.export(str(path), format="wav")
    return str(path)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings.model_validate({
        "paths": {
            "output_dir": str(tmp_path / "output"),
            "temp_dir": str(tmp_path / "temp"),
            "cache_dir": str(tmp_path / "cache"),
            "assets_dir": str(tmp_path / "assets"),
        },
        "render": {"width": 108, "height": 192, "fps": 5, "hw_accel": "none"},
    })


@pytest.fixture
def conversation() -> ChatScript:
    return make_script([
        {"sender": "alex", "message": "hola"},
        {"sender": "me", "message": "quién eres?"},
        {"sender": "time_divider", "message": "Al día siguiente"},
        {"sender": "alex", "message": "mira esto", "image_path": "photo.png", "camera_effect": "zoom_in"},
        {"sender": "me", "message": "NO", "camera_effect": "shake"},
        {"sender": "alex", "message": "..."},
    ])
