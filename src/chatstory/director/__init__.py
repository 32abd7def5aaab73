from .parser import ScriptParser
from .themes import ThemeProfile, resolve_theme

__all__ = ["ScriptParser", "ThemeProfile", "resolve_theme"]
