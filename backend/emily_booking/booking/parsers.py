from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping
from urllib.parse import parse_qs

from emily_booking.booking.dates import is_valid_iso_date, parse_iso_date
from emily_booking.booking.models import GuestDetails
from emily_booking.core.config import get_settings

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
NG_PHONE_RE = re.compile(r"^\+?234[789]\d{9}$|^0[789]\d{9}$")
LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


class BookingValidationError(ValueError):
    """Raised for guest or party input that cannot be accepted."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__(", ".join(errors))
        self.errors = errors


def parse_int(value: Any) -> int | None:
    """Reads the leading integer of ``value``: ``"2.5"`` gives 2, ``"3abc"`` gives 3."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    match = LEADING_INT_RE.match(str(value))
    if match is None:
        return None
    return int(match.group(1))


def parse_children_ages(raw: str | None, declared: int, *, max_age: int | None = None) -> list[int]:
    """Parses comma separated ages typed by the guest.

    Only the first ``declared`` entries are considered; entries that are not
    integers or fall outside ``0..max_age`` are dropped.
    """
    if not raw or declared <= 0:
        return []
    limit = get_settings().child_age_max if max_age is None else max_age
    ages: list[int] = []
    for chunk in raw.split(",")[:declared]:
        age = parse_int(chunk)
        if age is None or age < 0 or age > limit:
            continue
        ages.append(age)
    return ages


@dataclass
class QueryOverrides:
    check_in: str | None = None
    check_out: str | None = None
    adults: int | None = None
    children: int | None = None

    @property
    def has_both_dates(self) -> bool:
        return self.check_in is not None and self.check_out is not None


def _first(params: Mapping[str, Any], key: str) -> str | None:
    value = params.get(key)
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None:
        return None
    return str(value)


def parse_booking_query(query: str | Mapping[str, Any] | None) -> QueryOverrides:
    """Extracts valid ``arrival``/``departure``/``guests``/``adults``/``children`` values."""
    settings = get_settings()
    if not query:
        return QueryOverrides()
    if isinstance(query, str):
        params: Mapping[str, Any] = parse_qs(query.lstrip("?"), keep_blank_values=True)
    else:
        params = query

    overrides = QueryOverrides()

    arrival = _first(params, "arrival")
    if arrival is not None and is_valid_iso_date(arrival):
        overrides.check_in = arrival

    departure = _first(params, "departure")
    if departure is not None and is_valid_iso_date(departure):
        overrides.check_out = departure

    # adults wins over guests when both are given
    for key in ("guests", "adults"):
        count = parse_int(_first(params, key))
        if count is not None and count >= 1:
            overrides.adults = min(count, settings.max_adults)

    children = parse_int(_first(params, "children"))
    if children is not None and children >= 0:
        overrides.children = min(children, settings.max_children)

    return overrides


def is_valid_email(value: str | None) -> bool:
    return bool(value) and bool(EMAIL_RE.match(value or ""))


def is_valid_phone(value: str | None) -> bool:
    if not value:
        return False
    return bool(NG_PHONE_RE.match(re.sub(r"[\s-]", "", value)))


def validate_guest_details(details: GuestDetails) -> GuestDetails:
    """Returns trimmed details or raises :class:`BookingValidationError`."""
    cleaned = GuestDetails(
        full_name=details.full_name.strip(),
        email=details.email.strip(),
        phone=details.phone.strip(),
        special_requests=details.special_requests.strip(),
    )
    errors: list[str] = []
    if len(cleaned.full_name) < 2:
        errors.append("Please enter your full name")
    if not is_valid_email(cleaned.email):
        errors.append("Please enter a valid email address")
    if not is_valid_phone(cleaned.phone):
        errors.append("Please enter a valid phone number")
    if errors:
        raise BookingValidationError(errors)
    return cleaned


def validate_booking_request(payload: Mapping[str, Any], *, today: date | None = None) -> list[str]:
    """Checks a booking submission the way the booking endpoint does."""
    errors: list[str] = []
    today = today or date.today()

    if not payload.get("roomId"):
        errors.append("Room ID is required")

    check_in = payload.get("checkIn")
    check_out = payload.get("checkOut")
    check_in_date = parse_iso_date(check_in)
    check_out_date = parse_iso_date(check_out)

    if not check_in:
        errors.append("Check-in date is required")
    elif check_in_date is None:
        errors.append("Invalid check-in date")

    if not check_out:
        errors.append("Check-out date is required")
    elif check_out_date is None:
        errors.append("Invalid check-out date")

    if check_in_date and check_out_date:
        if check_out_date <= check_in_date:
            errors.append("Check-out date must be after check-in date")
        if check_in_date < today:
            errors.append("Check-in date cannot be in the past")

    guests = parse_int(payload.get("guests"))
    if guests is None or guests < 1:
        errors.append("At least 1 guest is required")

    name = str(payload.get("guestName") or "").strip()
    if len(name) < 2:
        errors.append("Guest name is required")

    if not is_valid_email(payload.get("guestEmail")):
        errors.append("Valid guest email is required")

    try:
        total_price = float(payload.get("totalPrice") or 0)
    except (TypeError, ValueError):
        total_price = 0
    if total_price <= 0:
        errors.append("Valid total price is required")

    return errors


__all__ = [
    "BookingValidationError",
    "QueryOverrides",
    "parse_int",
    "parse_children_ages",
    "parse_booking_query",
    "is_valid_email",
    "is_valid_phone",
    "validate_guest_details",
    "validate_booking_request",
]
