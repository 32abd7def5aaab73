"""
Modelos de Dominio (Clean Architecture)
Definen la estructura de datos central del sistema: guión, línea de tiempo,
estado visual por frame y grafo de mezcla de audio.
"""
import json
from pathlib import Path
from typing import Dict, FrozenSet, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

TIME_DIVIDER = "time_divider"

Side = Literal["left", "right"]
EntryKind = Literal["text", "media", "time_divider"]
TypingSpeed = Literal["fast", "normal", "slow"]

# Lado del interlocutor (el que "escribe"); el narrador/yo va a la derecha
PARTNER_SIDE = "left"
SELF_SIDE = "right"


class Character(BaseModel):
    """Un participante del chat."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Nombre visible en la burbuja")
    side: Side = Field("left", description="Lado de la conversación (left=interlocutor, right=yo)")
    avatar: Optional[str] = Field(None, description="Ruta al avatar")


class DialogueEvent(BaseModel):
    """
    Un mensaje del guión.
    Los tiempos explícitos son opcionales; si faltan se calculan.
    """
    model_config = ConfigDict(frozen=True)

    sender: str
    message: str = ""
    image_path: Optional[str] = Field(None, description="Imagen/GIF enviado en lugar de (o junto a) texto")
    delay: Optional[float] = Field(None, ge=0, description="Override del tiempo total de escritura")
    reaction_delay: Optional[float] = Field(None, ge=0, description="Override del tiempo de lectura")
    typing_speed: TypingSpeed = "normal"
    camera_effect: Optional[str] = None

    @field_validator("message", mode="before")
    @classmethod
    def _none_message(cls, value):
        return value or ""

    @field_validator("typing_speed", mode="before")
    @classmethod
    def _default_speed(cls, value):
        return value or "normal"

    @field_validator("camera_effect", mode="before")
    @classmethod
    def _normal_effect(cls, value):
        if not value or value == "normal":
            return None
        return value

    @property
    def is_time_divider(self) -> bool:
        return self.sender == TIME_DIVIDER

    @property
    def is_media(self) -> bool:
        return bool(self.image_path) and not self.is_time_divider

    @property
    def kind(self) -> EntryKind:
        if self.is_time_divider:
            return "time_divider"
        return "media" if self.is_media else "text"


class ChatScript(BaseModel):
    """El guión completo de la conversación (inmutable durante el render)."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str = "Sin título"
    category: str = "default"
    intro_text: str = Field("", alias="room_name", description="Texto de la tarjeta de intro")
    narration_path: Optional[str] = Field(None, alias="intro_audio", description="Audio de narración de la intro")
    characters: Dict[str, Character] = Field(default_factory=dict)
    dialogues: Tuple[DialogueEvent, ...] = ()

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, value):
        return (value or "default").strip().lower()

    @model_validator(mode="after")
    def _check_senders(self) -> "ChatScript":
        unknown = sorted({
            d.sender for d in self.dialogues
            if not d.is_time_divider and d.sender not in self.characters
        })
        if unknown:
            raise ValueError(f"Remitentes sin personaje definido: {', '.join(unknown)}")
        return self

    def character_for(self, sender: str) -> Optional[Character]:
        return self.characters.get(sender)

    def side_of(self, sender: str) -> Optional[str]:
        character = self.characters.get(sender)
        return character.side if character else None

    def slice(self, start: int, end: int) -> "ChatScript":
        """
        Devuelve una parte del guión (exportación multi-parte).

        Args:
            start: Primer diálogo (1-indexado, inclusivo)
            end: Último diálogo (1-indexado, inclusivo)
        """
        if start < 1 or end < start:
            raise ValueError(f"Rango inválido: {start}-{end}")
        return self.model_copy(update={"dialogues": self.dialogues[start - 1:end]})


class TimelineEntry(BaseModel):
    """Tiempos derivados de un mensaje (uno por DialogueEvent)."""
    model_config = ConfigDict(frozen=True)

    index: int
    sender: str
    side: Optional[Side] = None
    kind: EntryKind = "text"
    reaction: float
    typing_total: float
    typing_start: float
    typing_end: float
    appear_time: float
    camera_effect: Optional[str] = None
    caption: Optional[str] = None


class IntroTiming(BaseModel):
    """Tiempos de la tarjeta de título que precede a la conversación."""
    model_config = ConfigDict(frozen=True)

    delay_before_reveal: float = Field(..., ge=0)
    fade_in_duration: float = Field(..., ge=0)
    narration_duration: float = Field(..., ge=0)
    hold_after_duration: float = Field(..., ge=0)
    total: float = Field(..., gt=0)
    has_narration: bool = False

    @classmethod
    def build(
        cls,
        delay_before_reveal: float,
        fade_in_duration: float,
        narration_duration: float,
        hold_after_duration: float,
        has_narration: bool = False,
    ) -> "IntroTiming":
        total = delay_before_reveal + narration_duration + hold_after_duration
        return cls(
            delay_before_reveal=delay_before_reveal,
            fade_in_duration=fade_in_duration,
            narration_duration=narration_duration,
            hold_after_duration=hold_after_duration,
            total=total,
            has_narration=has_narration,
        )

    @property
    def reveal_end(self) -> float:
        return self.delay_before_reveal + self.fade_in_duration


class Timeline(BaseModel):
    """
    Resultado del TimelineCalculator.
    Se serializa como artefacto de diagnóstico (útil como fixture de tests).
    """
    model_config = ConfigDict(frozen=True)

    entries: Tuple[TimelineEntry, ...] = ()
    intro: IntroTiming
    total_duration: float = Field(..., gt=0)
    trailing_buffer: float = Field(..., ge=0)
    theme: str = "default"

    @property
    def appear_times(self) -> List[float]:
        return [e.appear_time for e in self.entries]

    @property
    def conversation_start(self) -> float:
        return self.intro.total

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")

    def write_json(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, ensure_ascii=False, indent=2)
        return path

    @classmethod
    def read_json(cls, path: Union[str, Path]) -> "Timeline":
        with open(path, "r", encoding="utf-8") as f:
            return cls.model_validate(json.load(f))


class TypingIndicator(BaseModel):
    model_config = ConfigDict(frozen=True)

    active: bool = False
    speaker_side: Optional[Side] = None
    speaker_id: Optional[str] = None


class MediaAnimation(BaseModel):
    """Estado local de la animación pop-in de un mensaje con imagen."""
    model_config = ConfigDict(frozen=True)

    scale: float
    translate_y: float
    opacity: float


class VisualScene(BaseModel):
    """Lo que debe verse en pantalla en el instante `time`."""
    model_config = ConfigDict(frozen=True)

    time: float
    phase: Literal["intro", "conversation"]
    intro_opacity: float = 0.0
    intro_scale: float = 0.9
    visible_message_ids: FrozenSet[int] = frozenset()
    message_appear_times: Dict[int, float] = Field(default_factory=dict)
    typing_indicator: TypingIndicator = Field(default_factory=TypingIndicator)
    camera_zoomed: bool = False
    camera_effect: Optional[str] = None
    overlay_text: Optional[str] = None
    media_animations: Dict[int, MediaAnimation] = Field(default_factory=dict)


TrackRole = Literal["narration", "sting", "bgm", "notification"]


class AudioTrack(BaseModel):
    """Una pista del grafo de mezcla."""
    model_config = ConfigDict(frozen=True)

    source: str
    start_offset_ms: int = Field(..., ge=0)
    gain: float = Field(1.0, ge=0)
    loop: bool = False
    role: TrackRole


class MixGraph(BaseModel):
    """Pistas con offset y ganancia, listas para sumarse en un único stream."""
    model_config = ConfigDict(frozen=True)

    tracks: Tuple[AudioTrack, ...] = ()
    total_duration: float = Field(..., gt=0)

    @property
    def is_empty(self) -> bool:
        return not self.tracks

    @property
    def total_duration_ms(self) -> int:
        return int(round(self.total_duration * 1000))

    def by_role(self, role: str) -> List[AudioTrack]:
        return [t for t in self.tracks if t.role == role]


class LoudnessMeasurement(BaseModel):
    """Medición del pass 1 de loudnorm (EBU R128)."""
    model_config = ConfigDict(frozen=True)

    input_i: float
    input_tp: float
    input_lra: float
    input_thresh: float
    target_offset: float
