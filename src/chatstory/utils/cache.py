"""
Cache en disco para duraciones de assets.
Evita volver a medir el mismo archivo en renders por lote.
"""

import logging
import os
from datetime import timedelta
from pathlib import Path
from typing import Optional, Union

from diskcache import Cache

logger = logging.getLogger(__name__)


class DurationCache:
    """Cache persistente de duraciones, indexado por ruta + tamaño + mtime."""

    def __init__(self, cache_dir: str = "./cache", default_ttl_hours: int = 24 * 30):
        """
        Inicializa el cache.

        Args:
            cache_dir: Directorio para almacenar el cache
            default_ttl_hours: Tiempo de vida por defecto en horas
        """
        self.cache_dir = Path(cache_dir) / "durations"
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.cache = Cache(str(self.cache_dir))
        self.default_ttl = timedelta(hours=default_ttl_hours)

    def _generate_key(self, path: Union[str, Path]) -> Optional[str]:
        """Clave única del archivo; None si no existe."""
        try:
            stat = os.stat(path)
        except OSError:
            return None
        return f"duration:{Path(path).resolve()}:{stat.st_size}:{int(stat.st_mtime)}"

    def get(self, path: Union[str, Path]) -> Optional[float]:
        """
        Obtiene la duración almacenada.

        Returns:
            Segundos o None si no existe/expiró/cambió el archivo
        """
        key = self._generate_key(path)
        if key is None:
            return None
        return self.cache.get(key)

    def set(self, path: Union[str, Path], seconds: float) -> None:
        key = self._generate_key(path)
        if key is None:
            return
        self.cache.set(key, float(seconds), expire=self.default_ttl.total_seconds())

    def clear(self) -> int:
        """Limpia todo el cache."""
        count = len(self.cache)
        self.cache.clear()
        logger.info(f"Cache de duraciones limpiado: {count} entradas eliminadas")
        return count

    def close(self) -> None:
        self.cache.close()
