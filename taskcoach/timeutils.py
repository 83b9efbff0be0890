"""Timezone helpers shared by the sweep engines."""

import logging
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)


def as_utc(value: datetime | None) -> datetime | None:
    """Return ``value`` as an aware UTC datetime.

    SQLite drops tzinfo on round-trip, so naive values read back from the
    store are taken to be UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def resolve_zone(name: str | None) -> ZoneInfo:
    """Look up an IANA timezone, falling back to UTC."""
    if not name:
        return ZoneInfo("UTC")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone {name!r}, using UTC")
        return ZoneInfo("UTC")


def local_date(value: datetime, zone: ZoneInfo) -> date:
    """Calendar date of ``value`` in ``zone``."""
    return as_utc(value).astimezone(zone).date()


def day_bounds(day: date, zone: ZoneInfo) -> tuple[datetime, datetime]:
    """UTC bounds of ``day``'s [00:00, 24:00) window in ``zone``."""
    start = datetime.combine(day, time.min, tzinfo=zone)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=zone)
    return start.astimezone(UTC), end.astimezone(UTC)


def at_local_time(day: date, at: time | None, zone: ZoneInfo, fallback: time) -> datetime:
    """Combine ``day`` with a local time of day and convert to UTC."""
    moment = at or fallback
    local = datetime.combine(day, time(moment.hour, moment.minute), tzinfo=zone)
    return local.astimezone(UTC)
