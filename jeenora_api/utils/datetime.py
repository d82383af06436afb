"""Timezone handling for notification timestamps.

The domain works with aware datetimes in the application timezone. SQL
columns store the same wall-clock time without an offset.
"""

from __future__ import annotations

import logging
from datetime import datetime, tzinfo
from functools import lru_cache

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from jeenora_api.config import get_settings

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "Asia/Kolkata"


@lru_cache(maxsize=1)
def get_app_timezone() -> tzinfo:
    name = (get_settings().app_timezone or "").strip() or DEFAULT_TIMEZONE
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown APP_TIMEZONE %r, using %s", name, DEFAULT_TIMEZONE)
        return ZoneInfo(DEFAULT_TIMEZONE)


def now_in_app_timezone() -> datetime:
    return datetime.now(tz=get_app_timezone())


def from_storage_datetime(value: datetime | None) -> datetime | None:
    """Attach the application timezone to a value read from the database."""

    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=get_app_timezone())
    return value.astimezone(get_app_timezone())


def to_storage_datetime(value: datetime | None) -> datetime | None:
    """Convert ``value`` to application wall-clock time without ``tzinfo``."""

    localized = from_storage_datetime(value)
    return localized.replace(tzinfo=None) if localized is not None else None


def storage_now() -> datetime:
    """Column default: the current application wall-clock time."""

    return now_in_app_timezone().replace(tzinfo=None)
