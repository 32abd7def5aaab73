"""
Estado Visual por Frame
Dado un instante t, define qué debe verse: intro, mensajes visibles,
indicador de escritura, efectos de cámara y captions.

Es una función pura de (timeline, t): consultar el mismo t dos veces, o en
cualquier orden, devuelve exactamente la misma escena.
"""
from bisect import bisect_right
from typing import Dict, Optional, Sequence, Tuple

from ..config import EffectsConfig
from ..domain.models import (
    PARTNER_SIDE,
    IntroTiming,
    MediaAnimation,
    Timeline,
    TimelineEntry,
    TypingIndicator,
    VisualScene,
)

INTRO_START_SCALE = 0.9

HIDDEN_MEDIA = MediaAnimation(scale=0.0, translate_y=0.0, opacity=0.0)
STEADY_MEDIA = MediaAnimation(scale=1.0, translate_y=0.0, opacity=1.0)


def ease_out_cubic(x: float) -> float:
    """Easing cúbico de salida, x acotado a [0, 1]."""
    x = min(max(x, 0.0), 1.0)
    return 1.0 - (1.0 - x) ** 3


def intro_reveal(intro: IntroTiming, t: float) -> Tuple[float, float]:
    """
    Opacidad y escala de la tarjeta de título en t.

    Returns:
        (opacity, scale): (0, 0.9) antes del reveal, rampa durante el fade, (1, 1) después
    """
    if t < intro.delay_before_reveal:
        return 0.0, INTRO_START_SCALE
    if t < intro.reveal_end and intro.fade_in_duration > 0:
        progress = ease_out_cubic((t - intro.delay_before_reveal) / intro.fade_in_duration)
        return progress, INTRO_START_SCALE + (1.0 - INTRO_START_SCALE) * progress
    return 1.0, 1.0


def media_pop_state(
    local_time: float,
    duration: float = 0.35,
    start_scale: float = 0.6,
    offset_px: float = 40.0,
) -> MediaAnimation:
    """
    Animación pop-in de un mensaje con imagen, en función de t - appear_time.
    Independiente del orden global de los mensajes.
    """
    if local_time < 0:
        return HIDDEN_MEDIA
    if duration <= 0 or local_time >= duration:
        return STEADY_MEDIA
    p = ease_out_cubic(local_time / duration)
    return MediaAnimation(
        scale=start_scale + (1.0 - start_scale) * p,
        translate_y=offset_px * (1.0 - p),
        opacity=p,
    )


class FrameStateFunction:
    """Evalúa la escena visual para cualquier t de una línea de tiempo."""

    def __init__(self, timeline: Timeline, effects: Optional[EffectsConfig] = None):
        self.timeline = timeline
        self.effects = effects or EffectsConfig()
        self._entries: Sequence[TimelineEntry] = timeline.entries
        # Ordenados por construcción (appear_time no decreciente)
        self._appear_times = [e.appear_time for e in self._entries]

    def __call__(self, t: float) -> VisualScene:
        return self.scene_at(t)

    def scene_at(self, t: float) -> VisualScene:
        intro = self.timeline.intro

        if t < intro.total:
            opacity, scale = intro_reveal(intro, t)
            return VisualScene(time=t, phase="intro", intro_opacity=opacity, intro_scale=scale)

        visible = self._entries[:bisect_right(self._appear_times, t)]

        return VisualScene(
            time=t,
            phase="conversation",
            intro_opacity=0.0,
            intro_scale=1.0,
            visible_message_ids=frozenset(e.index for e in visible),
            message_appear_times={e.index: e.appear_time for e in visible},
            typing_indicator=self._typing_at(t),
            camera_zoomed=self._zoomed_at(visible, t),
            camera_effect=self._short_effect_at(visible, t),
            overlay_text=self._overlay_at(t),
            media_animations=self._media_at(visible, t),
        )

    def _typing_at(self, t: float) -> TypingIndicator:
        # Solo el interlocutor muestra "escribiendo..."; ante empate gana el índice mayor
        speaker: Optional[TimelineEntry] = None
        for entry in self._entries:
            if entry.typing_start > t:
                break
            if entry.kind == "time_divider" or entry.side != PARTNER_SIDE:
                continue
            if entry.typing_start <= t < entry.typing_end:
                speaker = entry
        if speaker is None:
            return TypingIndicator()
        return TypingIndicator(active=True, speaker_side=speaker.side, speaker_id=speaker.sender)

    def _zoomed_at(self, visible: Sequence[TimelineEntry], t: float) -> bool:
        window = self.effects.zoom_window
        return any(
            e.camera_effect in self.effects.zoom_tags and t < e.appear_time + window
            for e in visible
        )

    def _short_effect_at(self, visible: Sequence[TimelineEntry], t: float) -> Optional[str]:
        window = self.effects.short_effect_window
        for entry in reversed(visible):
            if t >= entry.appear_time + window:
                # appear_time no decreciente: los anteriores también expiraron
                break
            if entry.camera_effect in self.effects.shake_tags:
                return "shake"
            if entry.camera_effect in self.effects.darken_tags:
                return "darken"
        return None

    def _overlay_at(self, t: float) -> Optional[str]:
        for entry in self._entries:
            if entry.typing_start > t:
                break
            if entry.kind == "time_divider" and entry.typing_start <= t < entry.appear_time:
                return entry.caption or ""
        return None

    def _media_at(self, visible: Sequence[TimelineEntry], t: float) -> Dict[int, MediaAnimation]:
        return {
            e.index: media_pop_state(
                t - e.appear_time,
                duration=self.effects.media_pop_duration,
                start_scale=self.effects.media_pop_start_scale,
                offset_px=self.effects.media_pop_offset_px,
            )
            for e in visible
            if e.kind == "media"
        }


def compute_scene(timeline: Timeline, t: float, effects: Optional[EffectsConfig] = None) -> VisualScene:
    """Atajo funcional: escena de `timeline` en el instante t."""
    return FrameStateFunction(timeline, effects).scene_at(t)
