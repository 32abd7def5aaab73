"""
Encoder de video con FFmpeg.
Une la secuencia de frames con la mezcla de audio en un MP4 vertical.
"""

import logging
import subprocess
from pathlib import Path
from typing import Optional, Union

from ..domain.errors import FatalRenderError
from .capture import FRAME_PATTERN

logger = logging.getLogger(__name__)


class VideoEncoder:
    """Codifica frames + audio con FFmpeg."""

    def __init__(
        self,
        ffmpeg_bin: str = "ffmpeg",
        crf: int = 23,
        preset: str = "fast",
        hw_accel: str = "auto",  # auto, qsv, none
        audio_bitrate: str = "192k",
    ):
        """
        Inicializa el encoder.

        Args:
            ffmpeg_bin: Ejecutable de FFmpeg
            crf: Calidad para libx264
            preset: Preset de libx264
            hw_accel: Tipo de aceleración por hardware
            audio_bitrate: Bitrate AAC
        """
        self.ffmpeg_bin = ffmpeg_bin
        self.crf = crf
        self.preset = preset
        self.hw_accel = hw_accel
        self.audio_bitrate = audio_bitrate
        self._use_qsv: Optional[bool] = None

    def check_ffmpeg(self) -> bool:
        """Verifica que FFmpeg esté instalado."""
        try:
            subprocess.run([self.ffmpeg_bin, "-version"], capture_output=True, check=True)
            return True
        except (subprocess.CalledProcessError, FileNotFoundError):
            return False

    def _check_qsv(self) -> bool:
        """Verifica si el encoder h264_qsv está disponible."""
        try:
            result = subprocess.run(
                [self.ffmpeg_bin, "-hide_banner", "-encoders"],
                capture_output=True,
                text=True,
            )
            return "h264_qsv" in result.stdout
        except (OSError, subprocess.SubprocessError):
            return False

    @property
    def use_qsv(self) -> bool:
        if self._use_qsv is None:
            self._use_qsv = self.hw_accel in ("auto", "qsv") and self._check_qsv()
            if self._use_qsv:
                logger.info("Aceleración Intel QSV activada")
        return self._use_qsv

    def _video_codec(self) -> list:
        if self.use_qsv:
            return ["-c:v", "h264_qsv", "-global_quality", str(self.crf), "-look_ahead", "1"]
        return ["-c:v", "libx264", "-preset", self.preset, "-crf", str(self.crf)]

    def build_command(
        self,
        frames_dir: Union[str, Path],
        fps: int,
        audio_path: Optional[Union[str, Path]],
        total_duration: float,
        output_path: Union[str, Path],
    ) -> list:
        """Arma la línea de comandos de FFmpeg."""
        cmd = [
            self.ffmpeg_bin, "-y", "-hide_banner", "-loglevel", "error",
            "-framerate", str(fps),
            "-i", str(Path(frames_dir) / FRAME_PATTERN),
        ]
        if audio_path:
            cmd += ["-i", str(audio_path), "-map", "0:v", "-map", "1:a"]

        cmd += [*self._video_codec(), "-pix_fmt", "yuv420p", "-r", str(fps)]

        if audio_path:
            cmd += ["-c:a", "aac", "-b:a", self.audio_bitrate]
        else:
            cmd += ["-an"]

        # La duración la impone la línea de tiempo, nunca la pista más corta
        cmd += ["-t", f"{total_duration:.3f}", "-movflags", "+faststart", str(output_path)]
        return cmd

    def encode(
        self,
        frames_dir: Union[str, Path],
        fps: int,
        audio_path: Optional[Union[str, Path]],
        total_duration: float,
        output_path: Union[str, Path],
    ) -> Path:
        """
        Codifica el video final.

        Returns:
            Ruta al MP4 generado

        Raises:
            FatalRenderError: si FFmpeg no está disponible o falla
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        cmd = self.build_command(frames_dir, fps, audio_path, total_duration, output_path)

        logger.info("Codificando video final...")
        logger.debug(f"FFmpeg: {' '.join(cmd)}")
        try:
            subprocess.run(cmd, capture_output=True, check=True)
        except FileNotFoundError as e:
            raise FatalRenderError(f"FFmpeg no encontrado: {self.ffmpeg_bin}") from e
        except subprocess.CalledProcessError as e:
            if output_path.exists():
                output_path.unlink()
            stderr = (e.stderr or b"").decode(errors="replace")
            logger.error(f"Error codificando: {stderr}")
            raise FatalRenderError(f"FFmpeg falló codificando {output_path.name}") from e

        logger.info(f"Video codificado: {output_path}")
        return output_path
