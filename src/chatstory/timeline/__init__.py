from .calculator import TimelineCalculator
from .frame_state import FrameStateFunction, compute_scene, ease_out_cubic, media_pop_state

__all__ = [
    "TimelineCalculator",
    "FrameStateFunction",
    "compute_scene",
    "ease_out_cubic",
    "media_pop_state",
]
