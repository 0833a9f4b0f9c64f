"""Time helpers shared by the scheduling engines."""

from collections.abc import Callable
from datetime import UTC, datetime, tzinfo
from zoneinfo import ZoneInfo

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def clinic_zone(name: str) -> tzinfo:
    """Resolve the clinic's IANA timezone."""
    return ZoneInfo(name)


def as_aware(value: datetime, zone: tzinfo) -> datetime:
    """Attach ``zone`` to naive datetimes; aware datetimes are returned unchanged."""
    if value.tzinfo is None:
        return value.replace(tzinfo=zone)
    return value


def hours_between(start: datetime, end: datetime) -> float:
    """Signed number of hours from ``start`` to ``end``."""
    return (end - start).total_seconds() / 3600
