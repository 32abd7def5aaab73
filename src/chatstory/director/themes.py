"""
Temas visuales y de ritmo por categoría.
"""
from dataclasses import dataclass

from ..config import Settings

DEFAULT_THEME = "default"


@dataclass(frozen=True)
class ThemeProfile:
    """Perfil de ritmo derivado de la categoría del guión."""
    name: str
    suspense: bool
    ending_buffer: float

    @property
    def skip_narration(self) -> bool:
        # Las intros de suspenso son solo texto
        return self.suspense


def resolve_theme(category: str, settings: Settings) -> ThemeProfile:
    """
    Resuelve el tema de una categoría.

    Args:
        category: Categoría del guión (p.ej. 'horror', 'funny')
        settings: Configuración del motor

    Returns:
        ThemeProfile con el buffer final correspondiente
    """
    category = (category or DEFAULT_THEME).lower()
    name = settings.themes.category_theme_map.get(category, DEFAULT_THEME)
    suspense = name in settings.themes.suspense or category in settings.themes.suspense
    buffer = settings.timing.dramatic_ending_buffer if suspense else settings.timing.ending_buffer
    return ThemeProfile(name=name, suspense=suspense, ending_buffer=buffer)
