"""
Compositor de Pistas de Audio
Traduce la línea de tiempo en un grafo de mezcla con offsets al milisegundo.

Política de mezcla: las pistas se suman (nunca se promedian), sin ducking.
La duración final siempre es la duración total del video: nunca se extiende
por una pista en loop ni se corta a la pista más corta.
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from ..config import AudioConfig
from ..domain.errors import AssetMissingError
from ..domain.models import AudioTrack, IntroTiming, MixGraph, Timeline, TimelineEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AudioAssets:
    """Assets opcionales de la mezcla. None = pista omitida."""
    narration: Optional[str] = None
    sting: Optional[str] = None
    bgm: Optional[str] = None
    notification: Optional[str] = None


def seconds_to_ms(seconds: float) -> int:
    return int(round(seconds * 1000))


def require_asset(path: Optional[str], role: str) -> str:
    """Verifica que el asset exista; lanza AssetMissingError si no."""
    if not path:
        raise AssetMissingError(f"Sin asset para '{role}'")
    if not Path(path).exists():
        raise AssetMissingError(f"Asset de '{role}' no encontrado: {path}")
    return str(path)


class AudioTrackComposer:
    """Construye el MixGraph (narración, transición, música y notificaciones)."""

    def __init__(self, config: Optional[AudioConfig] = None):
        self.config = config or AudioConfig()

    def compose_timeline(self, timeline: Timeline, assets: AudioAssets) -> MixGraph:
        return self.compose(timeline.intro, timeline.entries, assets, timeline.total_duration)

    def compose(
        self,
        intro: IntroTiming,
        entries: Sequence[TimelineEntry],
        assets: AudioAssets,
        total_duration: float,
    ) -> MixGraph:
        """
        Arma el grafo de mezcla.

        Args:
            intro: Tiempos de la intro
            entries: Entradas de la línea de tiempo
            assets: Assets opcionales
            total_duration: Duración final del video (segundos)

        Returns:
            MixGraph (vacío si no hay assets: salida silenciosa válida)
        """
        tracks: List[AudioTrack] = []

        narration = self._available(assets.narration, "narration")
        if narration:
            tracks.append(AudioTrack(
                source=narration,
                start_offset_ms=seconds_to_ms(intro.delay_before_reveal),
                gain=self.config.narration_gain,
                role="narration",
            ))

        # La transición suena justo en el límite intro -> conversación
        sting = self._available(assets.sting, "sting")
        if sting:
            tracks.append(AudioTrack(
                source=sting,
                start_offset_ms=seconds_to_ms(intro.total),
                gain=self.config.sting_gain,
                role="sting",
            ))

        bgm = self._available(assets.bgm, "bgm")
        if bgm:
            tracks.append(AudioTrack(
                source=bgm,
                start_offset_ms=seconds_to_ms(intro.total),
                gain=self.config.bgm_gain,
                loop=True,
                role="bgm",
            ))

        notification = self._available(assets.notification, "notification")
        if notification:
            # Una por entrada (separadores incluidos) hasta el límite
            limit = self.config.max_notification_tracks
            if len(entries) > limit:
                logger.info(f"Notificaciones limitadas a {limit} de {len(entries)} entradas")
            for entry in list(entries)[:limit]:
                tracks.append(AudioTrack(
                    source=notification,
                    start_offset_ms=seconds_to_ms(entry.appear_time),
                    gain=self.config.sfx_gain,
                    role="notification",
                ))

        graph = MixGraph(tracks=tuple(tracks), total_duration=total_duration)
        logger.info(f"MixGraph: {len(graph.tracks)} pistas, {total_duration:.2f}s")
        return graph

    def _available(self, path: Optional[str], role: str) -> Optional[str]:
        if not path:
            return None
        try:
            return require_asset(path, role)
        except AssetMissingError as e:
            logger.warning(f"{e}. Se omite la pista")
            return None
