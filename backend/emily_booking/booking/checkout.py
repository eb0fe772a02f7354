from __future__ import annotations

import logging
from typing import Any

from emily_booking.booking.countdown import CountdownTimer
from emily_booking.booking.dates import parse_timestamp
from emily_booking.booking.models import GuestDetails
from emily_booking.booking.notifications import LoggingNotifier, Notification, NotificationKind, Notifier
from emily_booking.booking.parsers import BookingValidationError, validate_guest_details
from emily_booking.booking.state import BookingStateStore
from emily_booking.services.booking_api import BookingApiClient

logger = logging.getLogger(__name__)

BANK_TRANSFER = "bank_transfer"


class PendingPaymentFlow:
    """Guest details → booking → pending bank-transfer window."""

    def __init__(
        self,
        store: BookingStateStore,
        api: BookingApiClient,
        timer: CountdownTimer,
        *,
        notifier: Notifier | None = None,
    ) -> None:
        self._store = store
        self._api = api
        self._timer = timer
        self._notifier = notifier or LoggingNotifier()

    async def submit(
        self,
        guest_details: GuestDetails,
        payment_method: str = "card",
        *,
        room_id: str | None = None,
    ) -> dict[str, Any] | None:
        try:
            details = validate_guest_details(guest_details)
        except BookingValidationError as exc:
            self._notify_error(exc.errors[0], "Guest Details")
            return None

        if not self._store.is_valid():
            self._notify_error("Please select both check-in and check-out dates.", "Incomplete Booking")
            return None

        self._store.set(guest_details=details.to_dict(), payment_method=payment_method)
        payload = self._booking_payload(room_id)

        result = await self._api.create_booking(payload)
        if not result.has_data:
            self._notify_error("We could not create your booking. Please try again.", "Error")
            return None

        booking = result.data
        booking_id = str(booking.get("id") or "")
        if payment_method == BANK_TRANSFER and booking_id:
            expiry = booking.get("pendingExpiry")
            if expiry and parse_timestamp(expiry) is not None:
                self._store.set(pending_booking_id=booking_id, pending_expiry=expiry)
            else:
                self._store.create_pending_booking(booking_id)
            self._start_timer()

        logger.info(
            "Booking %s created payment=%s demo=%s", booking_id, payment_method, result.demo
        )
        return booking

    def resume(self) -> bool:
        """Restarts the countdown for a pending booking restored from storage."""
        if self._store.pending_booking is None:
            return False
        if not self._store.is_pending_valid():
            logger.info("Stored pending booking already expired, clearing")
            self._store.clear_pending()
            return False
        self._start_timer()
        return True

    async def confirm(self) -> bool:
        pending = self._store.pending_booking
        if pending is None:
            return False

        result = await self._api.update_booking_status(pending.booking_id, "confirmed")
        if not result.ok:
            self._notify_error("We could not confirm your payment yet. Please try again.", "Error")
            return False

        self._timer.stop()
        self._store.clear_pending()
        return True

    def _start_timer(self) -> None:
        expiry = self._store.get("pending_expiry")
        self._timer.start_from_expiry(expiry, on_expire=self._on_expired)

    def _on_expired(self) -> None:
        logger.info("Pending booking %s expired", self._store.get("pending_booking_id"))
        self._store.clear_pending()

    def _booking_payload(self, room_id: str | None) -> dict[str, Any]:
        draft = self._store.draft
        selected = draft.selected_room
        if room_id is None:
            room_id = selected.get("id") if isinstance(selected, dict) else selected
        return {
            "roomId": room_id,
            "checkIn": draft.check_in,
            "checkOut": draft.check_out,
            "guests": draft.adults + draft.children,
            "adults": draft.adults,
            "children": draft.children,
            "childrenAges": list(draft.children_ages),
            "guestName": draft.guest_details.full_name,
            "guestEmail": draft.guest_details.email,
            "guestPhone": draft.guest_details.phone,
            "specialRequests": draft.guest_details.special_requests,
            "totalPrice": draft.rates.get("total"),
            "paymentMethod": draft.payment_method,
        }

    def _notify_error(self, message: str, title: str) -> None:
        self._notifier.show(Notification(kind=NotificationKind.ERROR, title=title, message=message))


__all__ = ["PendingPaymentFlow", "BANK_TRANSFER"]
