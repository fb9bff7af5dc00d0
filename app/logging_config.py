"""
Logging configuration for the Bank Cards API.

All application code logs through loguru (`from loguru import logger`).
Libraries that use the standard logging module (uvicorn, SQLAlchemy) are
routed into the same sink by InterceptHandler, so there is one format and
one level switch for the whole process.

Card numbers are only ever logged masked; CVVs never.
"""

import inspect
import logging
import sys

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


class InterceptHandler(logging.Handler):
    """Forward stdlib log records to loguru, keeping the caller's location."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Walk back past the logging module so loguru reports the real caller
        frame, depth = inspect.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logging(level: str = "INFO") -> None:
    """
    Configure loguru and hook the standard logging module into it.

    Safe to call more than once: existing sinks are removed first.
    """
    level = level.upper()
    logger.remove()
    logger.add(sys.stderr, level=level, format=LOG_FORMAT, backtrace=False)

    # Records below the sink level are dropped before reaching InterceptHandler
    root_level = logging.getLevelName(level)
    if not isinstance(root_level, int):
        root_level = logging.DEBUG  # loguru-only levels such as TRACE
    logging.basicConfig(handlers=[InterceptHandler()], level=root_level, force=True)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).handlers = [InterceptHandler()]

    # SQL echo is controlled by settings.DEBUG on the engine itself
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
