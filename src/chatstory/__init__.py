"""
Motor de videos de chat verticales.

Componentes:
- TimelineCalculator: Tiempos exactos de cada mensaje
- FrameStateFunction: Estado visual en cualquier instante t
- AudioTrackComposer: Pistas de audio alineadas a la línea de tiempo
- LoudnessNormalizer: Normalización EBU R128 en dos pasadas
"""

from .audio import AudioTrackComposer, LoudnessNormalizer
from .config import Settings, load_settings
from .pipeline import ChatVideoPipeline
from .timeline import FrameStateFunction, TimelineCalculator

__version__ = "0.1.0"

__all__ = [
    "AudioTrackComposer",
    "LoudnessNormalizer",
    "Settings",
    "load_settings",
    "ChatVideoPipeline",
    "FrameStateFunction",
    "TimelineCalculator",
]
