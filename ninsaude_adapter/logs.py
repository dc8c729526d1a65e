import sys
from loguru import logger


def configure_logging(level: str = "INFO") -> None:
    """Send loguru output to stderr at the configured level."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} - {message}")
