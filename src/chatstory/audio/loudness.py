"""
Normalizador de Loudness (EBU R128)
Dos pasadas con el filtro loudnorm de FFmpeg sobre el video terminado:
medir primero y aplicar después con los valores medidos.

Nunca bloquea la entrega: si la medición falla se usa una pasada ciega, y si
esa también falla se conserva el archivo sin normalizar.
"""

import json
import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Optional, Union

from ..config import LoudnessConfig
from ..domain.errors import MeasurementParseError, NormalizationError
from ..domain.models import LoudnessMeasurement

logger = logging.getLogger(__name__)

MEASUREMENT_KEYS = ("input_i", "input_tp", "input_lra", "input_thresh", "target_offset")


@dataclass
class NormalizationResult:
    """Resultado de la normalización."""
    mode: Literal["two_pass", "single_pass", "skipped"]
    path: str
    measurement: Optional[LoudnessMeasurement] = None
    message: str = ""

    @property
    def normalized(self) -> bool:
        return self.mode != "skipped"


def parse_loudnorm_output(text: str) -> LoudnessMeasurement:
    """
    Extrae el bloque JSON que loudnorm imprime al final de stderr.

    Raises:
        MeasurementParseError: si no hay un bloque JSON con las claves esperadas
    """
    end = text.rfind("}")
    start = text.rfind("{", 0, end + 1) if end >= 0 else -1
    if start < 0 or end < 0:
        raise MeasurementParseError("No se encontró el bloque JSON de loudnorm")

    try:
        stats = json.loads(text[start:end + 1])
    except json.JSONDecodeError as e:
        raise MeasurementParseError(f"JSON de loudnorm inválido: {e}") from e

    missing = [k for k in MEASUREMENT_KEYS if k not in stats]
    if missing:
        raise MeasurementParseError(f"Faltan campos en la medición: {', '.join(missing)}")

    try:
        return LoudnessMeasurement(**{k: float(stats[k]) for k in MEASUREMENT_KEYS})
    except (TypeError, ValueError) as e:
        raise MeasurementParseError(f"Valores de medición no numéricos: {e}") from e


class LoudnessNormalizer:
    """Normaliza el audio de un video a un loudness integrado objetivo."""

    def __init__(self, config: Optional[LoudnessConfig] = None, ffmpeg_bin: str = "ffmpeg"):
        self.config = config or LoudnessConfig()
        self.ffmpeg_bin = ffmpeg_bin

    @property
    def _targets(self) -> str:
        c = self.config
        return f"I={c.target_lufs}:TP={c.true_peak}:LRA={c.loudness_range}"

    def measure(self, media_path: Union[str, Path]) -> LoudnessMeasurement:
        """
        Pass 1: analiza el loudness sin modificar el archivo.

        Raises:
            MeasurementParseError: si ffmpeg falla o su salida no se puede interpretar
        """
        cmd = [
            self.ffmpeg_bin, "-hide_banner", "-nostats",
            "-i", str(media_path),
            "-vn",
            "-af", f"loudnorm={self._targets}:print_format=json",
            "-f", "null", "-",
        ]
        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, encoding="utf-8", errors="replace"
            )
        except (OSError, UnicodeError) as e:
            raise MeasurementParseError(f"No se pudo ejecutar loudnorm pass 1: {e}") from e
        if result.returncode != 0:
            raise MeasurementParseError(f"loudnorm pass 1 falló: {result.stderr[-500:]}")
        return parse_loudnorm_output(result.stderr)

    def apply(
        self,
        media_path: Union[str, Path],
        measurement: Optional[LoudnessMeasurement] = None,
    ) -> Path:
        """
        Pass 2: aplica loudnorm. Con medición usa modo lineal; sin ella, una pasada ciega.
        El stream de video se copia intacto.

        Raises:
            NormalizationError: si ffmpeg falla
        """
        media_path = Path(media_path)
        tmp_path = media_path.with_name(f"{media_path.stem}.loudnorm{media_path.suffix}")

        audio_filter = f"loudnorm={self._targets}"
        if measurement is not None:
            audio_filter += (
                f":measured_I={measurement.input_i}"
                f":measured_TP={measurement.input_tp}"
                f":measured_LRA={measurement.input_lra}"
                f":measured_thresh={measurement.input_thresh}"
                f":offset={measurement.target_offset}"
                ":linear=true"
            )

        cmd = [
            self.ffmpeg_bin, "-y", "-hide_banner", "-loglevel", "error",
            "-i", str(media_path),
            "-map", "0",
            "-c:v", "copy",
            "-af", audio_filter,
            "-c:a", "aac",
            "-b:a", self.config.audio_bitrate,
            str(tmp_path),
        ]
        try:
            subprocess.run(cmd, capture_output=True, check=True)
        except (subprocess.CalledProcessError, OSError) as e:
            if tmp_path.exists():
                tmp_path.unlink()
            stderr = getattr(e, "stderr", None) or b""
            raise NormalizationError(f"loudnorm falló: {stderr.decode(errors='replace')[-500:] or e}") from e

        try:
            os.replace(tmp_path, media_path)
        except OSError as e:
            if tmp_path.exists():
                tmp_path.unlink()
            raise NormalizationError(f"No se pudo reemplazar {media_path.name}: {e}") from e
        return media_path

    def normalize(self, media_path: Union[str, Path]) -> NormalizationResult:
        """
        Ejecuta las dos pasadas con sus fallbacks.

        Returns:
            NormalizationResult (mode='skipped' si todo falló; el archivo queda intacto)
        """
        media_path = Path(media_path)

        measurement: Optional[LoudnessMeasurement] = None
        try:
            measurement = self.measure(media_path)
            logger.info(
                f"Loudness medido: {measurement.input_i:.1f} LUFS, "
                f"TP {measurement.input_tp:.1f} dBTP, LRA {measurement.input_lra:.1f}"
            )
        except MeasurementParseError as e:
            logger.warning(f"Medición de loudness fallida ({e}). Usando pasada única")

        try:
            self.apply(media_path, measurement)
        except NormalizationError as e:
            if measurement is None:
                logger.warning(f"Normalización fallida, se entrega sin normalizar: {e}")
                return NormalizationResult(mode="skipped", path=str(media_path), message=str(e))
            logger.warning(f"Pass 2 fallido ({e}). Reintentando en pasada única")
            try:
                self.apply(media_path, None)
            except NormalizationError as e2:
                logger.warning(f"Normalización fallida, se entrega sin normalizar: {e2}")
                return NormalizationResult(
                    mode="skipped", path=str(media_path), measurement=measurement, message=str(e2)
                )
            return NormalizationResult(mode="single_pass", path=str(media_path), measurement=measurement)

        mode = "two_pass" if measurement is not None else "single_pass"
        logger.info(f"Audio normalizado ({mode}) a {self.config.target_lufs} LUFS")
        return NormalizationResult(mode=mode, path=str(media_path), measurement=measurement)
