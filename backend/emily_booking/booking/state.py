"""
Reactive store for the booking draft of one browsing session.

The store is the single writer of the draft. Components receive it explicitly
and either read it (``get``/``get_state``) or submit partial updates via
``set``. Every effective change is persisted to session storage and then
broadcast to subscribers.
"""

from __future__ import annotations

import copy
import json
import logging
import math
from datetime import timedelta
from typing import Any, Callable, Mapping
from urllib.parse import urlencode

from emily_booking.booking.dates import (
    Clock,
    format_timestamp,
    nights_between,
    parse_iso_date,
    parse_timestamp,
    utc_now,
)
from emily_booking.booking.models import BookingDraft, PendingBooking
from emily_booking.booking.parsers import parse_booking_query, parse_int
from emily_booking.core.config import get_settings
from emily_booking.session.storage import (
    InMemorySessionStorage,
    SessionStorage,
    StorageError,
    create_session_storage,
)

logger = logging.getLogger(__name__)

Subscriber = Callable[[dict[str, Any], "BookingStateStore"], None]

SIGNED_OUT_EVENT = "SIGNED_OUT"


class BookingStateStore:
    def __init__(
        self,
        storage: SessionStorage | None = None,
        *,
        session_id: str | None = None,
        storage_key: str | None = None,
        clock: Clock | None = None,
    ) -> None:
        settings = get_settings()
        if storage is None:
            storage = create_session_storage(session_id) if session_id else InMemorySessionStorage()
        self._storage = storage
        self._storage_key = storage_key or settings.session_storage_key
        self._clock = clock or utc_now
        self._state: dict[str, Any] = BookingDraft().to_dict()
        self._subscribers: list[Subscriber] = []

    # === lifecycle ===

    def init(self, query: str | Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Restores the stored snapshot, then applies URL query overrides.

        A check-out that does not fall after the resulting check-in is
        dropped, whether it came from storage or from the URL.
        """
        snapshot = self._load()
        if snapshot:
            normalized = BookingDraft.from_dict(snapshot).to_dict()
            for key in snapshot:
                if key in self._state:
                    self._state[key] = normalized[key]

        overrides = parse_booking_query(query)
        if overrides.check_in is not None:
            self._state["check_in"] = overrides.check_in
        if overrides.check_out is not None:
            self._state["check_out"] = overrides.check_out

        nights = nights_between(self._state["check_in"], self._state["check_out"])
        if nights is not None and nights <= 0:
            logger.info(
                "Dropping check-out %s not after check-in %s",
                self._state["check_out"],
                self._state["check_in"],
            )
            self._state["check_out"] = None
        elif overrides.has_both_dates and nights is not None:
            self._state["rates"] = {**self._state["rates"], "nights": nights}
        if overrides.adults is not None:
            self._state["adults"] = overrides.adults
        if overrides.children is not None:
            self._state["children"] = overrides.children

        self._persist()
        self._notify()
        return self.get_state()

    def reset(self) -> BookingStateStore:
        self._state = BookingDraft().to_dict()
        self._persist()
        self._notify()
        return self

    def handle_auth_event(self, event: str) -> None:
        """Hook for the identity collaborator's auth-state callback."""
        if event == SIGNED_OUT_EVENT:
            logger.info("Identity signed out, discarding booking draft")
            self.reset()

    # === reads ===

    def get_state(self) -> dict[str, Any]:
        return copy.deepcopy(self._state)

    @property
    def draft(self) -> BookingDraft:
        return BookingDraft.from_dict(self._state)

    def get(self, path: str) -> Any:
        """Returns the value at a dotted path such as ``guest_details.email``."""
        if not path or not isinstance(path, str):
            return None
        value: Any = self._state
        for part in path.split("."):
            if isinstance(value, dict) and part in value:
                value = value[part]
            else:
                return None
        return copy.deepcopy(value)

    # === writes ===

    def set(self, updates: Mapping[str, Any] | None = None, **kwargs: Any) -> BookingStateStore:
        """Merges known top-level keys.

        Mapping values are merged one level deep into mapping fields; lists
        and scalars replace the stored value.
        """
        merged = {**(updates or {}), **kwargs}
        changed = False
        for key, value in merged.items():
            if key not in self._state:
                logger.debug("Ignoring unknown booking state key %s", key)
                continue
            current = self._state[key]
            if isinstance(value, Mapping) and isinstance(current, dict):
                new_value: Any = {**current, **copy.deepcopy(dict(value))}
            else:
                new_value = copy.deepcopy(value)
            if new_value != current:
                self._state[key] = new_value
                changed = True

        if changed:
            self._persist()
            self._notify()
        return self

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Registers ``callback`` and calls it once with the current state."""
        if not callable(callback):
            raise TypeError("subscriber must be callable")
        self._subscribers.append(callback)
        self._call_subscriber(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    # === derived values ===

    def is_valid(self) -> bool:
        check_in = parse_iso_date(self._state.get("check_in"))
        check_out = parse_iso_date(self._state.get("check_out"))
        adults = self._state.get("adults") or 0
        return bool(check_in and check_out and adults >= 1 and check_out > check_in)

    def get_nights(self) -> int:
        nights = nights_between(self._state.get("check_in"), self._state.get("check_out"))
        if nights is not None and nights > 0:
            return nights
        rates = self._state.get("rates")
        stored = parse_int(rates.get("nights")) if isinstance(rates, dict) else None
        return max(0, stored or 0)

    def to_query_string(self) -> str:
        params: dict[str, Any] = {}
        if self._state["check_in"]:
            params["arrival"] = self._state["check_in"]
        if self._state["check_out"]:
            params["departure"] = self._state["check_out"]
        if self._state["adults"]:
            params["adults"] = self._state["adults"]
        if self._state["children"]:
            params["children"] = self._state["children"]
        if self._state["rooms"]:
            params["rooms"] = self._state["rooms"]
        return urlencode(params)

    def get_rooms_url(self) -> str:
        query = self.to_query_string()
        base = get_settings().rooms_url
        return f"{base}?{query}" if query else base

    # === pending bank-transfer booking ===

    @property
    def pending_booking(self) -> PendingBooking | None:
        booking_id = self._state.get("pending_booking_id")
        expiry = parse_timestamp(self._state.get("pending_expiry"))
        if not booking_id or expiry is None:
            return None
        return PendingBooking(booking_id=booking_id, expiry=expiry)

    def create_pending_booking(self, booking_id: str, expires_in_minutes: int | None = None) -> str:
        minutes = get_settings().pending_minutes if expires_in_minutes is None else expires_in_minutes
        expiry = self._clock() + timedelta(minutes=minutes)
        self.set(pending_booking_id=booking_id, pending_expiry=format_timestamp(expiry))
        return booking_id

    def clear_pending(self) -> None:
        self.set(pending_booking_id=None, pending_expiry=None)

    def is_pending_valid(self) -> bool:
        expiry = parse_timestamp(self._state.get("pending_expiry"))
        if expiry is None:
            return False
        return expiry > self._clock()

    def get_pending_seconds(self) -> int:
        expiry = parse_timestamp(self._state.get("pending_expiry"))
        if expiry is None:
            return 0
        remaining = (expiry - self._clock()).total_seconds()
        return max(0, math.ceil(remaining))

    # === waitlist ===

    def set_waitlist(self, room_id: str, email: str | None, phone: str | None) -> None:
        self.set(waitlist={"active": True, "room_id": room_id, "email": email, "phone": phone})

    def clear_waitlist(self) -> None:
        self.set(waitlist={"active": False, "room_id": None, "email": None, "phone": None})

    # === internals ===

    def _load(self) -> dict[str, Any] | None:
        try:
            stored = self._storage.get_item(self._storage_key)
        except StorageError as exc:
            logger.warning("Failed to read stored booking state: %s", exc)
            return None
        if not stored:
            return None
        try:
            parsed = json.loads(stored)
        except ValueError as exc:
            logger.error("Failed to parse stored booking state: %s", exc)
            return None
        return parsed if isinstance(parsed, dict) else None

    def _persist(self) -> None:
        try:
            payload = json.dumps(self._state, ensure_ascii=False)
            self._storage.set_item(self._storage_key, payload)
        except (TypeError, ValueError, StorageError) as exc:
            logger.error("Failed to persist booking state: %s", exc)

    def _notify(self) -> None:
        for callback in list(self._subscribers):
            self._call_subscriber(callback)

    def _call_subscriber(self, callback: Subscriber) -> None:
        try:
            callback(self.get_state(), self)
        except Exception:
            logger.exception("Booking state subscriber failed")


__all__ = ["BookingStateStore", "Subscriber", "SIGNED_OUT_EVENT"]
