"""Módulo de utilidades"""

from .cache import DurationCache
from .backoff import with_retry

__all__ = ["DurationCache", "with_retry"]
