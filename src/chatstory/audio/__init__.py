"""Composición de audio, mezcla, medición y normalización"""

from .probe import DurationProbe
from .composer import AudioAssets, AudioTrackComposer
from .mixer import MixRenderer
from .loudness import LoudnessNormalizer, NormalizationResult, parse_loudnorm_output

__all__ = [
    "DurationProbe",
    "AudioAssets",
    "AudioTrackComposer",
    "MixRenderer",
    "LoudnessNormalizer",
    "NormalizationResult",
    "parse_loudnorm_output",
]
