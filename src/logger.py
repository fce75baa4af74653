import logging
import sys

from loguru import logger

from src.config import settings

log_format = " | ".join(
    (
        "<g>{time:YYYY-MM-DD HH:mm:ss.SSS}</>",
        "<lvl>{level:<8}</>",
        "<c>{name}:{function}:{line}</>",
        "{message}",
    )
)


class InterceptHandler(logging.Handler):
    """Route stdlib logging records (uvicorn, sqlalchemy) into loguru"""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging() -> None:
    min_log_level = "DEBUG" if settings.DEBUG else "INFO"

    logger.remove()
    logger.add(sys.stdout, format=log_format, level=min_log_level, enqueue=True)

    if settings.LOG_FILE:
        logger.add(
            settings.LOG_FILE,
            format=log_format,
            level=min_log_level,
            rotation="1 day",
            retention="7 days",
            compression="gz",
            enqueue=True,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
