"""
Calculadora de Línea de Tiempo
Convierte el guión en un calendario determinista de eventos visuales.

Modelo aditivo y causal (leer -> escribir -> enviar): cada mensaje empieza
cuando termina el anterior, así que los tiempos de aparición nunca retroceden.
Se precalcula todo porque la captura avanza frame a frame, no en tiempo real.
"""
import logging
from typing import List, Optional

from ..config import Settings
from ..director.themes import ThemeProfile, resolve_theme
from ..domain.models import (
    PARTNER_SIDE,
    ChatScript,
    DialogueEvent,
    IntroTiming,
    Timeline,
    TimelineEntry,
)
from ..audio.probe import DurationProbe

logger = logging.getLogger(__name__)


class TimelineCalculator:
    """Calcula IntroTiming + TimelineEntries + duración total de un guión."""

    def __init__(self, settings: Optional[Settings] = None, probe: Optional[DurationProbe] = None):
        """
        Args:
            settings: Configuración del motor (defaults si es None)
            probe: Medidor de duración para la narración de la intro
        """
        self.settings = settings or Settings()
        self.timing = self.settings.timing
        self.probe = probe or DurationProbe(
            ffprobe_bin=self.settings.paths.ffprobe_bin,
            timeout=self.settings.audio.probe_timeout,
            fallback_duration=self.settings.intro.min_narration_duration,
        )

    def calculate(self, script: ChatScript) -> Timeline:
        """
        Calcula la línea de tiempo completa.

        Returns:
            Timeline con entradas ordenadas, intro y duración total
        """
        theme = resolve_theme(script.category, self.settings)
        intro = self.intro_timing(script, theme)

        entries: List[TimelineEntry] = []
        current_time = intro.total

        for index, dialogue in enumerate(script.dialogues):
            side = script.side_of(dialogue.sender)
            reaction = self.reaction_delay(dialogue, index)
            typing_total = self.typing_total(dialogue, index, side)

            typing_start = current_time + reaction
            typing_end = typing_start + typing_total * self.timing.typing_ratio
            appear_time = current_time + reaction + typing_total

            entries.append(TimelineEntry(
                index=index,
                sender=dialogue.sender,
                side=side,
                kind=dialogue.kind,
                reaction=reaction,
                typing_total=typing_total,
                typing_start=typing_start,
                typing_end=typing_end,
                appear_time=appear_time,
                camera_effect=dialogue.camera_effect,
                caption=dialogue.message if dialogue.is_time_divider else None,
            ))
            current_time = appear_time

        last_appear = entries[-1].appear_time if entries else intro.total
        total_duration = last_appear + theme.ending_buffer

        logger.info(
            f"Timeline: {len(entries)} mensajes en {total_duration:.2f}s "
            f"(intro {intro.total:.2f}s, tema '{theme.name}')"
        )

        return Timeline(
            entries=tuple(entries),
            intro=intro,
            total_duration=total_duration,
            trailing_buffer=theme.ending_buffer,
            theme=theme.name,
        )

    def intro_timing(self, script: ChatScript, theme: Optional[ThemeProfile] = None) -> IntroTiming:
        """
        Tiempos de la tarjeta de título.
        Con narración se mide el audio real; sin ella (o en temas de suspenso) se usa el mínimo.
        """
        theme = theme or resolve_theme(script.category, self.settings)
        cfg = self.settings.intro

        if script.narration_path and not theme.skip_narration:
            narration = self.probe.duration_or_fallback(script.narration_path, cfg.min_narration_duration)
            has_narration = True
        else:
            if script.narration_path:
                logger.info(f"Tema '{theme.name}': intro solo texto, se ignora la narración")
            narration = cfg.min_narration_duration
            has_narration = False

        return IntroTiming.build(
            delay_before_reveal=cfg.delay_before_reveal,
            fade_in_duration=cfg.fade_in_duration,
            narration_duration=narration,
            hold_after_duration=cfg.hold_after_duration,
            has_narration=has_narration,
        )

    def reaction_delay(self, dialogue: DialogueEvent, index: int) -> float:
        """Tiempo de 'lectura' antes de empezar a escribir (0 para el primer mensaje)."""
        if index == 0:
            return 0.0
        if dialogue.reaction_delay is not None:
            return dialogue.reaction_delay
        return self.timing.default_reaction_delay

    def typing_total(self, dialogue: DialogueEvent, index: int, side: Optional[str]) -> float:
        """
        Tiempo total de composición del mensaje (indicador + latencia silenciosa).
        """
        # El primer mensaje usa una constante fija según el lado, ignorando cualquier override
        if index == 0 and side is not None and self.timing.first_message_override:
            if side == PARTNER_SIDE:
                return self.timing.first_partner_typing
            return self.timing.first_self_typing

        # delay=0 se trata como ausente
        if dialogue.delay:
            return dialogue.delay

        if dialogue.is_time_divider:
            return self.timing.time_divider_duration

        return self.computed_typing(dialogue)

    def computed_typing(self, dialogue: DialogueEvent) -> float:
        """base + ritmo por carácter, ajustado por velocidad (bonus y tope solo si se configuran)."""
        length = len(dialogue.message)
        delay = self.timing.base_delay + self.timing.delay_per_char * length

        delay *= self.timing.speed_multiplier.get(dialogue.typing_speed, 1.0)
        if length > self.timing.long_message_threshold:
            delay *= self.timing.long_message_bonus

        delay = max(delay, self.timing.min_typing_delay)
        if self.timing.max_typing_delay is not None:
            delay = min(delay, self.timing.max_typing_delay)
        return delay
