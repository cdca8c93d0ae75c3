"""
Configuracion de logging (loguru).
"""
import sys

from loguru import logger


def configure_logging(level: str = "INFO", log_file: str = "") -> None:
    """
    Reemplaza el sink por defecto de loguru.

    Args:
        level: nivel minimo para stderr y archivo
        log_file: si se indica, agrega un archivo con rotacion
    """
    logger.remove()
    logger.add(sys.stderr, level=level)
    if log_file:
        logger.add(
            log_file,
            rotation="500 MB",
            retention="10 days",
            level=level
        )
    logger.debug(f"Logging configurado (nivel={level}, archivo={log_file or '-'})")
