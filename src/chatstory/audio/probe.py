"""
Medición de duración de assets (narración, música).
Un asset faltante o corrupto nunca bloquea el pipeline: se usa una duración de respaldo.
"""

import logging
import subprocess
from pathlib import Path
from typing import Optional, Union

from pydub import AudioSegment

from ..domain.errors import ProbeError
from ..utils.backoff import with_retry
from ..utils.cache import DurationCache

logger = logging.getLogger(__name__)


class DurationProbe:
    """Obtiene duraciones con ffprobe (timeout acotado) o pydub para WAV."""

    def __init__(
        self,
        ffprobe_bin: str = "ffprobe",
        timeout: float = 10.0,
        fallback_duration: float = 1.5,
        cache: Optional[DurationCache] = None,
    ):
        """
        Args:
            ffprobe_bin: Ejecutable de ffprobe
            timeout: Segundos máximos por intento de medición
            fallback_duration: Duración usada cuando la medición falla
            cache: Cache persistente opcional
        """
        self.ffprobe_bin = ffprobe_bin
        self.timeout = timeout
        self.fallback_duration = fallback_duration
        self.cache = cache

    def probe(self, media_path: Union[str, Path]) -> Optional[float]:
        """
        Mide la duración de un archivo.

        Returns:
            Segundos, o None si no se pudo medir
        """
        path = Path(media_path)
        if not path.exists():
            logger.warning(f"Asset no encontrado para medir: {path}")
            return None

        if self.cache is not None:
            cached = self.cache.get(path)
            if cached is not None:
                return cached

        try:
            if path.suffix.lower() == ".wav":
                seconds = self._wav_duration(path)
            else:
                seconds = self._ffprobe_duration(path)
        except ProbeError as e:
            logger.warning(f"No se pudo medir {path.name}: {e}")
            return None

        if seconds <= 0:
            logger.warning(f"Duración no válida para {path.name}: {seconds}")
            return None

        if self.cache is not None:
            self.cache.set(path, seconds)
        return seconds

    def duration_or_fallback(self, media_path: Union[str, Path], fallback: Optional[float] = None) -> float:
        """Igual que probe() pero nunca falla."""
        seconds = self.probe(media_path)
        if seconds is None:
            seconds = self.fallback_duration if fallback is None else fallback
            logger.info(f"Usando duración de respaldo {seconds:.2f}s para {Path(media_path).name}")
        return seconds

    def _wav_duration(self, path: Path) -> float:
        try:
            audio = AudioSegment.from_file(str(path), format="wav")
        except Exception as e:
            raise ProbeError(f"WAV ilegible: {e}") from e
        return len(audio) / 1000.0

    def _ffprobe_duration(self, path: Path) -> float:
        try:
            output = self._run_ffprobe(str(path))
        except subprocess.TimeoutExpired as e:
            raise ProbeError(f"ffprobe superó {self.timeout}s") from e
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            raise ProbeError(f"ffprobe falló: {e}") from e

        try:
            return float(output.strip())
        except ValueError as e:
            raise ProbeError(f"Salida de ffprobe no numérica: {output!r}") from e

    @with_retry(max_attempts=2, min_wait=0.5, max_wait=2.0, exceptions=(subprocess.TimeoutExpired,))
    def _run_ffprobe(self, path: str) -> str:
        result = subprocess.run(
            [
                self.ffprobe_bin, "-v", "error",
                "-show_entries", "format=duration",
                "-of", "default=noprint_wrappers=1:nokey=1",
                path,
            ],
            capture_output=True,
            text=True,
            check=True,
            timeout=self.timeout,
        )
        return result.stdout
