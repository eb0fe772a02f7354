"""Routing of stdlib logging records into loguru."""

from __future__ import annotations

import logging
import sys

from loguru import logger

from emily_booking.core.config import get_settings


class InterceptHandler(logging.Handler):
    """Forwards records emitted via ``logging`` to the loguru sink."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str | None = None) -> None:
    settings = get_settings()
    level_name = (level or settings.log_level or "INFO").upper()

    logger.remove()
    logger.add(
        sys.stderr,
        level=level_name,
        serialize=settings.app_env == "prod",
        backtrace=settings.app_env != "prod",
    )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "httpx"):
        logging.getLogger(name).handlers = [InterceptHandler()]
        logging.getLogger(name).propagate = False


__all__ = ["InterceptHandler", "setup_logging"]
