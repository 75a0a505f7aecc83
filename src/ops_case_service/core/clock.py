"""Time helpers bound to the business reference time zone."""

from datetime import date, datetime, time, timezone
from typing import Any, Callable, Optional
from zoneinfo import ZoneInfo

Clock = Callable[[], datetime]

# Sort key for cases that carry no start date
EPOCH_FLOOR = datetime.min.replace(tzinfo=timezone.utc)


def reference_tz(name: Optional[str] = None) -> ZoneInfo:
    """Return the configured business time zone."""
    if name is None:
        from ops_case_service.config import settings

        name = settings.reference_timezone
    return ZoneInfo(name)


def system_clock(tz: Optional[ZoneInfo] = None) -> Clock:
    """Clock returning aware "now" in the reference zone."""
    zone = tz or reference_tz()
    return lambda: datetime.now(zone)


def parse_timestamp(value: Any, tz: ZoneInfo) -> Optional[datetime]:
    """Parse an upstream ISO timestamp into an aware datetime.

    Naive values are read as wall-clock time in ``tz``. Empty or unparsable
    values yield ``None``.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    return ensure_aware(parsed, tz)


def ensure_aware(value: datetime, tz: ZoneInfo) -> datetime:
    """Attach ``tz`` to naive values; aware values pass through."""
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value


def start_of_day(day: date, tz: ZoneInfo) -> datetime:
    """Midnight opening ``day`` in ``tz``."""
    return datetime.combine(day, time.min, tzinfo=tz)


def end_of_day(day: date, tz: ZoneInfo) -> datetime:
    """Last millisecond of ``day`` (23:59:59.999)."""
    return datetime.combine(day, time(23, 59, 59, 999000), tzinfo=tz)


def local_date(value: datetime, tz: ZoneInfo) -> date:
    """Calendar date of ``value`` as seen in ``tz``."""
    return value.astimezone(tz).date()
