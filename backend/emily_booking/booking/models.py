from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


def _to_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _to_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _pick(payload: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return None


def format_money(amount: float, symbol: str = "₦") -> str:
    return f"{symbol}{amount:,.0f}"


@dataclass
class GuestDetails:
    full_name: str = ""
    email: str = ""
    phone: str = ""
    special_requests: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "full_name": self.full_name,
            "email": self.email,
            "phone": self.phone,
            "special_requests": self.special_requests,
        }

    @classmethod
    def from_dict(cls, raw: Any) -> GuestDetails:
        raw = _as_dict(raw)
        return cls(
            full_name=str(raw.get("full_name") or ""),
            email=str(raw.get("email") or ""),
            phone=str(raw.get("phone") or ""),
            special_requests=str(raw.get("special_requests") or ""),
        )


@dataclass
class WaitlistEntry:
    active: bool = False
    room_id: str | None = None
    email: str | None = None
    phone: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "active": self.active,
            "room_id": self.room_id,
            "email": self.email,
            "phone": self.phone,
        }


@dataclass
class RateQuote:
    """Price breakdown for a date range and occupancy."""

    base_rate: float
    per_night: float
    subtotal: float
    tax: float
    total: float
    nights: int
    currency: str = "NGN"
    formatted_total: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "base_rate": self.base_rate,
            "per_night": self.per_night,
            "subtotal": self.subtotal,
            "tax": self.tax,
            "total": self.total,
            "nights": self.nights,
            "currency": self.currency,
            "formatted_total": self.formatted_total,
        }

    def to_payload(self) -> dict[str, Any]:
        return {
            "baseRate": self.base_rate,
            "perNight": self.per_night,
            "subtotal": self.subtotal,
            "tax": self.tax,
            "total": self.total,
            "nights": self.nights,
            "currency": self.currency,
            "formattedTotal": self.formatted_total,
        }

    @classmethod
    def from_payload(cls, raw: dict[str, Any] | None) -> RateQuote | None:
        """Builds a quote from either the camelCase wire shape or the stored snake_case one."""
        if not isinstance(raw, dict):
            return None
        total = _pick(raw, "total")
        if total is None:
            return None
        base_rate = _to_float(_pick(raw, "baseRate", "base_rate"))
        currency = str(_pick(raw, "currency") or "NGN").upper()
        total_value = _to_float(total)
        formatted = _pick(raw, "formattedTotal", "formatted_total")
        return cls(
            base_rate=base_rate,
            per_night=_to_float(_pick(raw, "perNight", "per_night"), base_rate),
            subtotal=_to_float(_pick(raw, "subtotal")),
            tax=_to_float(_pick(raw, "tax")),
            total=total_value,
            nights=_to_int(_pick(raw, "nights")),
            currency=currency,
            formatted_total=str(formatted) if formatted else format_money(total_value),
        )


@dataclass(frozen=True)
class PendingBooking:
    booking_id: str
    expiry: datetime


@dataclass
class RoomAvailability:
    id: str
    name: str
    available: bool

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "available": self.available}


@dataclass
class ReceiptFile:
    filename: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


def default_rates() -> dict[str, Any]:
    return {"base_rate": 0, "subtotal": 0, "tax": 0, "total": 0, "nights": 0}


@dataclass
class BookingDraft:
    check_in: str | None = None
    check_out: str | None = None
    adults: int = 2
    children: int = 0
    children_ages: list[int] = field(default_factory=list)
    rooms: int = 1
    selected_room: Any = None
    guest_details: GuestDetails = field(default_factory=GuestDetails)
    payment_method: str = "card"
    pending_booking_id: str | None = None
    pending_expiry: str | None = None
    rates: dict[str, Any] = field(default_factory=default_rates)
    waitlist: WaitlistEntry = field(default_factory=WaitlistEntry)

    def to_dict(self) -> dict[str, Any]:
        return {
            "check_in": self.check_in,
            "check_out": self.check_out,
            "adults": self.adults,
            "children": self.children,
            "children_ages": list(self.children_ages),
            "rooms": self.rooms,
            "selected_room": self.selected_room,
            "guest_details": self.guest_details.to_dict(),
            "payment_method": self.payment_method,
            "pending_booking_id": self.pending_booking_id,
            "pending_expiry": self.pending_expiry,
            "rates": dict(self.rates),
            "waitlist": self.waitlist.to_dict(),
        }

    @classmethod
    def from_dict(cls, raw: Any) -> BookingDraft:
        """Builds a draft from stored JSON, replacing values of the wrong shape with defaults."""
        raw = _as_dict(raw)
        waitlist = _as_dict(raw.get("waitlist"))
        ages = raw.get("children_ages")
        if not isinstance(ages, list):
            ages = []
        return cls(
            check_in=_as_str(raw.get("check_in")),
            check_out=_as_str(raw.get("check_out")),
            adults=_to_int(raw.get("adults"), 2),
            children=_to_int(raw.get("children"), 0),
            children_ages=[_to_int(age) for age in ages if isinstance(age, (int, float, str))],
            rooms=_to_int(raw.get("rooms"), 1),
            selected_room=raw.get("selected_room"),
            guest_details=GuestDetails.from_dict(raw.get("guest_details")),
            payment_method=str(raw.get("payment_method") or "card"),
            pending_booking_id=_as_str(raw.get("pending_booking_id")),
            pending_expiry=_as_str(raw.get("pending_expiry")),
            rates={**default_rates(), **_as_dict(raw.get("rates"))},
            waitlist=WaitlistEntry(
                active=bool(waitlist.get("active")),
                room_id=waitlist.get("room_id"),
                email=waitlist.get("email"),
                phone=waitlist.get("phone"),
            ),
        )


__all__ = [
    "GuestDetails",
    "WaitlistEntry",
    "RateQuote",
    "PendingBooking",
    "RoomAvailability",
    "ReceiptFile",
    "BookingDraft",
    "default_rates",
    "format_money",
]
