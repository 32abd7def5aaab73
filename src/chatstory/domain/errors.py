"""
Jerarquía de errores del motor.
Las degradaciones de timing/audio se absorben; los fallos estructurales abortan el render.
"""


class ChatStoryError(Exception):
    """Error base del proyecto."""
    pass


class ScriptValidationError(ChatStoryError):
    """El guión no cumple la estructura mínima para calcular tiempos."""
    pass


class AssetMissingError(ChatStoryError):
    """Un asset de audio referenciado no existe. La pista se omite."""
    pass


class ProbeError(ChatStoryError):
    """La medición de duración falló o superó el timeout."""
    pass


class MeasurementParseError(ChatStoryError):
    """No se pudo interpretar la salida de medición de loudness."""
    pass


class NormalizationError(ChatStoryError):
    """La normalización de loudness falló (el video se entrega igual)."""
    pass


class FatalRenderError(ChatStoryError):
    """Fallo del compositor o encoder: el render se descarta completo."""
    pass
