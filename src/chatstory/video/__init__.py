"""Módulo de video (compositor, captura y encoder)"""

from .compositor import ChatCompositor, Compositor
from .capture import CaptureResult, FrameCapture, FRAME_PATTERN
from .encoder import VideoEncoder

__all__ = [
    "ChatCompositor",
    "Compositor",
    "CaptureResult",
    "FrameCapture",
    "FRAME_PATTERN",
    "VideoEncoder",
]
