"""Modelos de dominio y errores"""

from .models import (
    TIME_DIVIDER,
    AudioTrack,
    Character,
    ChatScript,
    DialogueEvent,
    IntroTiming,
    LoudnessMeasurement,
    MediaAnimation,
    MixGraph,
    Timeline,
    TimelineEntry,
    TypingIndicator,
    VisualScene,
)
from .errors import (
    AssetMissingError,
    ChatStoryError,
    FatalRenderError,
    MeasurementParseError,
    NormalizationError,
    ProbeError,
    ScriptValidationError,
)

__all__ = [
    "TIME_DIVIDER",
    "AudioTrack",
    "Character",
    "ChatScript",
    "DialogueEvent",
    "IntroTiming",
    "LoudnessMeasurement",
    "MediaAnimation",
    "MixGraph",
    "Timeline",
    "TimelineEntry",
    "TypingIndicator",
    "VisualScene",
    "AssetMissingError",
    "ChatStoryError",
    "FatalRenderError",
    "MeasurementParseError",
    "NormalizationError",
    "ProbeError",
    "ScriptValidationError",
]
