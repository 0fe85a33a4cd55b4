"""Shared rate limiter.

In-memory storage by default; set RATE_LIMIT_STORAGE_URI (e.g. a
redis:// or memcached:// URI supported by the limits package) to share
limits across workers. Disabled under TESTING.
"""

import os

from loguru import logger
from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import settings


def _enabled() -> bool:
    if os.environ.get("TESTING"):
        return False
    return settings.rate_limit_enabled


def _storage_uri() -> str | None:
    if settings.rate_limit_storage_uri:
        logger.info("Rate limiter using shared storage")
        return settings.rate_limit_storage_uri
    return None


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.rate_limit_default],
    enabled=_enabled(),
    storage_uri=_storage_uri(),
)
