# personaflow/core/logging.py
import sys
from loguru import logger
from personaflow.core.config import settings


def configure_logging(level: str = None) -> None:
    """Replace loguru's default sink with one honoring LOG_LEVEL."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=(level or settings.LOG_LEVEL).upper(),
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | {name}:{function}:{line} - {message}",
    )
