from datetime import datetime, timezone as dt_timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from taskreminder.core.config import settings

DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S"


def _load_zone(name: Optional[str]) -> Optional[ZoneInfo]:
    if not name or not isinstance(name, str):
        return None
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return None


def default_zone_name(default: Optional[str] = None) -> str:
    """The configured fallback zone, or UTC if even that one is unknown."""
    for candidate in (default, settings.DEFAULT_TIMEZONE):
        if _load_zone(candidate) is not None:
            return candidate.strip()
    return "UTC"


def resolve_zone(candidate: Optional[str], default: Optional[str] = None) -> str:
    """
    Return `candidate` when it names a known IANA zone, otherwise the default zone.
    Never raises.
    """
    if _load_zone(candidate) is not None:
        return candidate.strip()
    return default_zone_name(default)


def get_zoneinfo(candidate: Optional[str] = None, default: Optional[str] = None) -> ZoneInfo:
    return ZoneInfo(resolve_zone(candidate, default))


def now_utc() -> datetime:
    return datetime.now(dt_timezone.utc)


def to_utc_aware(dt: datetime | None) -> datetime | None:
    """
    Normalize any datetime to UTC-aware (tzinfo=UTC).
    - Aware datetimes are converted to UTC
    - Naive datetimes are assumed UTC and tz attached
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=dt_timezone.utc)
    return dt.astimezone(dt_timezone.utc)


def format_local(instant: datetime, zone: Optional[str] = None, default: Optional[str] = None) -> str:
    """Render an absolute instant as `YYYY-MM-DD HH:mm:ss` wall time in `zone`."""
    local = to_utc_aware(instant).astimezone(get_zoneinfo(zone, default))
    return local.strftime(DISPLAY_FORMAT)
