"""
logging_config.py — Centralized Logging Configuration for QuoteDesk

Sets up Loguru as the single logging backend. Intercepts Python's stdlib
logging module so the services' getLogger("quotedesk.x") calls route
through Loguru with the same format, rotation, and request context.

Business Rules:
- All logs go through Loguru (no direct print())
- JSON format in production for machine parsing
- Human-readable format in development
- Request ID from middleware is included when available
- Log rotation: 50MB files, 7-day retention

Called by: app/main.py (lifespan), app/seed.py
Depends on: app/config.py (log_level, app_env, log_file)
"""

import logging
import sys

from loguru import logger

from .config import settings


def setup_logging(level: str | None = None, production: bool | None = None) -> None:
    """Configure Loguru and intercept stdlib logging.

    Arguments default to the loaded settings; pass them to override.
    """
    logger.remove()

    log_level = (level or settings.log_level).upper()
    is_production = settings.is_production if production is None else production

    if is_production:
        # JSON lines to stdout (container runtimes capture these)
        logger.add(sys.stdout, level=log_level, format="{message}", serialize=True)
        if settings.log_file:
            logger.add(
                settings.log_file,
                level=log_level,
                rotation="50 MB",
                retention="7 days",
                compression="gz",
                serialize=True,
            )
    else:
        logger.add(
            sys.stdout,
            level=log_level,
            format=(
                "<green>{time:HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{extra[request_id]}</cyan> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
                "{message}"
            ),
            colorize=True,
        )

    # Records logged outside a request still need the request_id key
    logger.configure(extra={"request_id": "-"})

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)

    for noisy in ("httpx", "uvicorn.access", "sqlalchemy.engine", "multipart"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger.info("Logging configured", level=log_level, production=is_production)


class _InterceptHandler(logging.Handler):
    """Route stdlib logging records to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip frames inside the logging module so {name}/{line} point at the caller
        frame, depth = logging.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())
