"""
Configuración del motor.
Carga config/config.yaml sobre los valores por defecto y aplica overrides de entorno.
"""

import logging
import os
from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/config.yaml"


class TimingConfig(BaseModel):
    """Cadencia de la conversación (lectura -> escritura -> envío)."""
    base_delay: float = 1.0
    delay_per_char: float = 0.05
    default_reaction_delay: float = 0.8
    # 80% escribiendo, 20% pausa silenciosa antes de enviar
    typing_ratio: float = Field(0.8, gt=0, lt=1)
    speed_multiplier: Dict[str, float] = Field(
        default_factory=lambda: {"fast": 0.7, "normal": 1.0, "slow": 1.4}
    )
    # Ajustes opcionales: bonus 1.0 y sin tope mantienen base + ritmo * largo
    long_message_threshold: int = 50
    long_message_bonus: float = 1.0
    min_typing_delay: float = 0.5
    max_typing_delay: Optional[float] = None
    time_divider_duration: float = 2.0
    first_message_override: bool = True
    first_partner_typing: float = 1.0
    first_self_typing: float = 0.5
    ending_buffer: float = 2.0
    dramatic_ending_buffer: float = 4.0


class IntroConfig(BaseModel):
    delay_before_reveal: float = 0.5
    fade_in_duration: float = 0.6
    min_narration_duration: float = 1.5
    hold_after_duration: float = 1.0


class EffectsConfig(BaseModel):
    zoom_window: float = 2.5
    short_effect_window: float = 0.6
    media_pop_duration: float = 0.35
    media_pop_start_scale: float = 0.6
    media_pop_offset_px: float = 40.0
    zoom_tags: List[str] = Field(default_factory=lambda: ["zoom_in", "zoom-in", "zoom_shake"])
    shake_tags: List[str] = Field(default_factory=lambda: ["shake", "zoom_shake"])
    darken_tags: List[str] = Field(default_factory=lambda: ["darken"])


class AudioConfig(BaseModel):
    narration_gain: float = 1.0
    sting_gain: float = 1.0
    bgm_gain: float = 0.3
    sfx_gain: float = 0.5
    max_notification_tracks: int = 20
    sample_rate: int = 48000
    probe_timeout: float = 10.0
    # Solo para medidas fuera de la intro; la intro cae a intro.min_narration_duration
    probe_fallback_duration: float = 1.5


class LoudnessConfig(BaseModel):
    enabled: bool = True
    target_lufs: float = -14.0
    true_peak: float = -1.5
    loudness_range: float = 11.0
    audio_bitrate: str = "192k"


class RenderConfig(BaseModel):
    width: int = 1080
    height: int = 1920
    fps: int = 30
    crf: int = 23
    preset: str = "fast"
    hw_accel: str = "auto"  # auto, qsv, none
    keep_frames: bool = False


class PathsConfig(BaseModel):
    output_dir: str = "./output"
    temp_dir: str = "./temp"
    cache_dir: str = "./cache"
    assets_dir: str = "./assets"
    ffmpeg_bin: str = "ffmpeg"
    ffprobe_bin: str = "ffprobe"


class ThemesConfig(BaseModel):
    # Categorías que mapean al tema de suspenso (el resto usa 'default')
    category_theme_map: Dict[str, str] = Field(default_factory=lambda: {
        "horror": "horror",
        "ghost": "horror",
        "scary": "horror",
        "thriller": "horror",
        "creepy": "horror",
    })
    # Temas/categorías con intro solo-texto y buffer final largo
    suspense: List[str] = Field(default_factory=lambda: ["horror", "drama"])


class Settings(BaseModel):
    """Configuración completa del motor."""
    timing: TimingConfig = Field(default_factory=TimingConfig)
    intro: IntroConfig = Field(default_factory=IntroConfig)
    effects: EffectsConfig = Field(default_factory=EffectsConfig)
    audio: AudioConfig = Field(default_factory=AudioConfig)
    loudness: LoudnessConfig = Field(default_factory=LoudnessConfig)
    render: RenderConfig = Field(default_factory=RenderConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    themes: ThemesConfig = Field(default_factory=ThemesConfig)


# Variables de entorno -> (sección, campo)
ENV_OVERRIDES = {
    "FFMPEG_BIN": ("paths", "ffmpeg_bin"),
    "FFPROBE_BIN": ("paths", "ffprobe_bin"),
    "CHATSTORY_OUTPUT_DIR": ("paths", "output_dir"),
    "CHATSTORY_TEMP_DIR": ("paths", "temp_dir"),
    "CHATSTORY_CACHE_DIR": ("paths", "cache_dir"),
}


def _load_yaml(path: Path) -> dict:
    """Carga el YAML de configuración (vacío si no existe)."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning(f"Archivo de configuración no encontrado: {path}. Usando valores por defecto")
        return {}


def load_settings(
    path: Optional[Union[str, Path]] = DEFAULT_CONFIG_PATH,
    overrides: Optional[dict] = None,
) -> Settings:
    """
    Construye la configuración efectiva.

    Orden de prioridad (menor a mayor): defaults, YAML, entorno, overrides.

    Args:
        path: Ruta al YAML (None para ignorarlo)
        overrides: Diccionario por secciones, p.ej. {"audio": {"bgm_gain": 0.2}}

    Returns:
        Settings validado
    """
    load_dotenv()

    data = _load_yaml(Path(path)) if path else {}

    for env_var, (section, key) in ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value:
            data.setdefault(section, {})[key] = value

    for section, values in (overrides or {}).items():
        data.setdefault(section, {}).update(values)

    return Settings.model_validate(data)
