from __future__ import annotations

import math
import re
from datetime import date, datetime, timedelta, timezone
from typing import Callable

from emily_booking.core.config import get_settings

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
DISPLAY_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def hotel_now(clock: Clock | None = None) -> datetime:
    """Current wall time at the hotel (fixed UTC offset, no DST)."""
    settings = get_settings()
    now = (clock or utc_now)()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone(timedelta(hours=settings.hotel_utc_offset_hours)))


def min_check_in_date(clock: Clock | None = None) -> date:
    """Earliest bookable arrival: today, or tomorrow once the same-day cutoff passed."""
    settings = get_settings()
    local = hotel_now(clock)
    if local.hour >= settings.same_day_cutoff_hour:
        return local.date() + timedelta(days=1)
    return local.date()


def is_valid_iso_date(value: object) -> bool:
    if not isinstance(value, str) or not ISO_DATE_RE.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def parse_iso_date(value: object) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not is_valid_iso_date(value):
        return None
    return date.fromisoformat(value)  # type: ignore[arg-type]


def nights_between(check_in: object, check_out: object) -> int | None:
    start = parse_iso_date(check_in)
    end = parse_iso_date(check_out)
    if start is None or end is None:
        return None
    return (end - start).days


def format_display_date(value: date | str | None) -> str:
    """DD/MM/YYYY, the format guests see in the date fields."""
    parsed = parse_iso_date(value)
    if parsed is None:
        return ""
    return parsed.strftime("%d/%m/%Y")


def format_long_date(value: date | str | None) -> str:
    parsed = parse_iso_date(value)
    if parsed is None:
        return ""
    return f"{parsed:%A}, {parsed:%B} {parsed.day}"


def to_iso_date(value: str | None) -> str | None:
    """Accepts DD/MM/YYYY input and returns YYYY-MM-DD; other strings pass through."""
    if not value:
        return None
    match = DISPLAY_DATE_RE.match(value.strip())
    if not match:
        return value
    day, month, year = match.groups()
    return f"{year}-{month.zfill(2)}-{day.zfill(2)}"


def parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def seconds_until(expiry: datetime, clock: Clock | None = None) -> int:
    now = (clock or utc_now)()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return math.ceil((expiry - now).total_seconds())


__all__ = [
    "Clock",
    "utc_now",
    "hotel_now",
    "min_check_in_date",
    "is_valid_iso_date",
    "parse_iso_date",
    "nights_between",
    "format_display_date",
    "format_long_date",
    "to_iso_date",
    "parse_timestamp",
    "format_timestamp",
    "seconds_until",
]
