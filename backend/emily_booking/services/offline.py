"""Deterministic demo data served when the booking backend is unreachable."""

from __future__ import annotations

import math
import time
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from emily_booking.booking.dates import Clock, format_timestamp, parse_iso_date, utc_now
from emily_booking.booking.models import RateQuote, RoomAvailability, format_money
from emily_booking.core.config import get_settings

ATLANTIC_SUITE_ID = "atlantic"

DEMO_ROOMS = (
    ("ocean-view", "Ocean View Suite"),
    ("garden-terrace", "Garden Terrace"),
    (ATLANTIC_SUITE_ID, "Atlantic Suite"),
    ("presidential", "Presidential Suite"),
)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def demo_nights(check_in: Any, check_out: Any) -> int:
    start = parse_iso_date(check_in)
    end = parse_iso_date(check_out)
    if start is None or end is None:
        return 1
    return max(1, math.ceil((end - start).days))


def demo_rates(
    check_in: Any,
    check_out: Any,
    *,
    base_rate: int | None = None,
    tax_rate: float | None = None,
) -> RateQuote:
    settings = get_settings()
    rate = settings.demo_base_rate if base_rate is None else base_rate
    tax_share = settings.demo_tax_rate if tax_rate is None else tax_rate
    nights = demo_nights(check_in, check_out)

    subtotal = rate * nights
    # halves round up
    tax = int(Decimal(subtotal * tax_share).quantize(Decimal(1), rounding=ROUND_HALF_UP))
    total = subtotal + tax
    return RateQuote(
        base_rate=rate,
        per_night=rate,
        subtotal=subtotal,
        tax=tax,
        total=total,
        nights=nights,
        currency=settings.currency,
        formatted_total=format_money(total, settings.currency_symbol),
    )


def demo_availability(check_in: Any) -> list[RoomAvailability]:
    """Every third day of the month only the Atlantic suite stays open."""
    parsed = parse_iso_date(check_in)
    blocked_day = parsed is not None and parsed.day % 3 == 0
    return [
        RoomAvailability(
            id=room_id,
            name=name,
            available=not blocked_day or room_id == ATLANTIC_SUITE_ID,
        )
        for room_id, name in DEMO_ROOMS
    ]


def demo_booking_id(now: datetime | None = None) -> str:
    moment = now or utc_now()
    return "BK-" + _base36(int(moment.timestamp() * 1000)).upper()


def demo_booking(data: dict[str, Any], *, clock: Clock | None = None) -> dict[str, Any]:
    now = (clock or utc_now)()
    bank_transfer = data.get("paymentMethod") == "bank_transfer"
    pending_expiry = None
    if bank_transfer:
        pending_expiry = format_timestamp(now + timedelta(minutes=get_settings().pending_minutes))
    return {
        "id": demo_booking_id(now),
        **data,
        "status": "pending" if bank_transfer else "confirmed",
        "createdAt": format_timestamp(now),
        "pendingExpiry": pending_expiry,
    }


def demo_waitlist_entry() -> dict[str, Any]:
    return {
        "success": True,
        "id": f"WL-{int(time.time() * 1000)}",
        "message": "You have been added to the waitlist",
    }


def demo_receipt_upload(filename: str, booking_id: str) -> dict[str, Any]:
    return {
        "success": True,
        "url": f"local://receipts/{booking_id}/{filename}",
        "message": "Receipt uploaded successfully",
    }


__all__ = [
    "ATLANTIC_SUITE_ID",
    "DEMO_ROOMS",
    "demo_nights",
    "demo_rates",
    "demo_availability",
    "demo_booking_id",
    "demo_booking",
    "demo_waitlist_entry",
    "demo_receipt_upload",
]
