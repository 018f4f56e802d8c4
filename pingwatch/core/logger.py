import sys

from loguru import logger

from pingwatch.core.constants import LOG_FILE

STDERR_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)

# Configure logger
logger.remove()  # Remove default handler

_stderr_handler_id = None

# Add stderr handler only if available (not in windowed exe)
if sys.stderr:
    _stderr_handler_id = logger.add(sys.stderr, format=STDERR_FORMAT, level="DEBUG")

# Add file handler
logger.add(
    LOG_FILE,
    rotation="1 MB",
    retention="10 days",
    format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
    level="DEBUG",
)


def set_level(level: str) -> None:
    """Re-install the stderr sink at a different level (file sink stays at DEBUG)."""
    global _stderr_handler_id

    if not sys.stderr:
        return
    if _stderr_handler_id is not None:
        logger.remove(_stderr_handler_id)
    _stderr_handler_id = logger.add(sys.stderr, format=STDERR_FORMAT, level=level.upper())
