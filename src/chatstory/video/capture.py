"""
Captura de Frames
Recorre la línea de tiempo frame a frame (no en tiempo real) y guarda PNGs.

La captura es secuencial y solo hacia adelante contra un único compositor.
"""
import logging
import math
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TaskProgressColumn

from ..domain.errors import FatalRenderError
from ..domain.models import Timeline
from ..timeline.frame_state import FrameStateFunction
from .compositor import Compositor

logger = logging.getLogger(__name__)

FRAME_PATTERN = "frame_%06d.png"


@dataclass
class CaptureResult:
    frames_dir: Path
    frame_count: int
    fps: int


class FrameCapture:
    """Genera la secuencia de frames de un video."""

    def __init__(self, compositor: Compositor, fps: int = 30, show_progress: bool = True):
        self.compositor = compositor
        self.fps = fps
        self.show_progress = show_progress

    def total_frames(self, timeline: Timeline) -> int:
        return math.ceil(timeline.total_duration * self.fps)

    def capture(
        self,
        timeline: Timeline,
        frame_state: FrameStateFunction,
        frames_dir: Union[str, Path],
    ) -> CaptureResult:
        """
        Captura todos los frames en frames_dir (se vacía antes de empezar).

        Raises:
            FatalRenderError: si el compositor falla o no se captura ningún frame
        """
        frames_dir = Path(frames_dir)
        if frames_dir.exists():
            shutil.rmtree(frames_dir)
        frames_dir.mkdir(parents=True, exist_ok=True)

        total = self.total_frames(timeline)
        logger.info(f"Capturando {total} frames ({timeline.total_duration:.1f}s a {self.fps} FPS)")

        frame_count = 0
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            disable=not self.show_progress,
        ) as progress:
            task = progress.add_task("🎥 Capturando frames...", total=total)
            for frame in range(total):
                t = frame / self.fps
                scene = frame_state(t)
                try:
                    image = self.compositor.render(t, scene)
                    image.save(frames_dir / (FRAME_PATTERN % frame))
                except Exception as e:
                    raise FatalRenderError(f"El compositor falló en t={t:.3f}s: {e}") from e
                frame_count += 1
                progress.advance(task)

        if frame_count == 0:
            raise FatalRenderError("No se capturó ningún frame")

        return CaptureResult(frames_dir=frames_dir, frame_count=frame_count, fps=self.fps)
