"""
Mezclador de Audio
Materializa un MixGraph en un único archivo usando pydub.
"""

import logging
from pathlib import Path
from typing import Dict, Union

from pydub import AudioSegment
from pydub.utils import ratio_to_db

from ..domain.models import MixGraph

logger = logging.getLogger(__name__)


class MixRenderer:
    """Suma las pistas del grafo sobre una base silenciosa de duración exacta."""

    def __init__(self, sample_rate: int = 48000, channels: int = 2):
        self.sample_rate = sample_rate
        self.channels = channels

    def mixdown(self, graph: MixGraph) -> AudioSegment:
        """
        Mezcla en memoria.

        La base mide exactamente graph.total_duration: overlay() nunca extiende
        el segmento base, así que una pista en loop se recorta al final y las
        pistas cortas no acortan la mezcla.
        """
        mix = (
            AudioSegment.silent(duration=graph.total_duration_ms, frame_rate=self.sample_rate)
            .set_channels(self.channels)
        )
        sources: Dict[str, AudioSegment] = {}

        for track in graph.tracks:
            if track.gain <= 0:
                continue
            if track.start_offset_ms >= len(mix):
                logger.debug(f"Pista {track.role} fuera de rango ({track.start_offset_ms}ms), se omite")
                continue

            segment = sources.get(track.source)
            if segment is None:
                try:
                    segment = self._load(track.source)
                except Exception as e:
                    logger.warning(f"No se pudo cargar {track.source}: {e}. Se omite la pista")
                    continue
                sources[track.source] = segment

            if track.gain != 1.0:
                segment = segment.apply_gain(ratio_to_db(track.gain))

            mix = mix.overlay(segment, position=track.start_offset_ms, loop=track.loop)

        return mix

    def render(self, graph: MixGraph, output_path: Union[str, Path], format: str = "wav") -> Path:
        """
        Mezcla y exporta.

        Returns:
            Ruta del archivo de audio generado
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        mix = self.mixdown(graph)
        mix.export(str(output_path), format=format)
        logger.info(f"Mezcla exportada: {output_path} ({len(mix) / 1000:.2f}s, {len(graph.tracks)} pistas)")
        return output_path

    def _load(self, source: str) -> AudioSegment:
        segment = AudioSegment.from_file(source)
        return segment.set_frame_rate(self.sample_rate).set_channels(self.channels)
