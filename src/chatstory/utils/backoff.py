"""
Política de reintentos para herramientas externas (ffprobe, ffmpeg).
Implementa exponential backoff acotado.
"""

import logging

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    before_sleep_log,
)

logger = logging.getLogger(__name__)


def with_retry(
    max_attempts: int = 3,
    min_wait: float = 0.5,
    max_wait: float = 10.0,
    exceptions: tuple = (Exception,),
):
    """
    Decorador para reintentar funciones con exponential backoff.

    Args:
        max_attempts: Número máximo de intentos
        min_wait: Tiempo mínimo de espera entre intentos (segundos)
        max_wait: Tiempo máximo de espera entre intentos (segundos)
        exceptions: Tupla de excepciones a capturar

    Returns:
        Decorador configurado (relanza la última excepción al agotar intentos)
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=min_wait, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(exceptions),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
