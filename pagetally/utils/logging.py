import sys

from loguru import logger

from ..config import settings

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} - {message}"


def setup_logging(level: str = None, sink=sys.stdout):
    """Route loguru to a single sink. Level defaults to LOG_LEVEL."""
    logger.remove()
    logger.add(
        sink,
        format=LOG_FORMAT,
        level=(level or settings.LOG_LEVEL).upper(),
        backtrace=False,
        diagnose=False,
    )
    return logger
