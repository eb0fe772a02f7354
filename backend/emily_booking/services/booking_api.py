from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Generic, TypeVar

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from emily_booking.booking.dates import Clock, format_timestamp, min_check_in_date, utc_now
from emily_booking.booking.models import RateQuote, ReceiptFile, RoomAvailability
from emily_booking.core.config import get_settings
from emily_booking.services import offline

logger = logging.getLogger(__name__)

T = TypeVar("T")

ALLOWED_RECEIPT_TYPES = frozenset({"image/jpeg", "image/png", "image/webp", "application/pdf"})
MAX_RECEIPT_BYTES = 10 * 1024 * 1024

AVAILABILITY_PATH = "/availability"
RATES_PATH = "/rates"
BOOKINGS_PATH = "/bookings"
WAITLIST_PATH = "/waitlist"
UPLOAD_PATH = "/upload"
NOTIFICATIONS_PATH = "/notifications/send"


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return isinstance(exc, httpx.TransportError)


class BookingApiError(RuntimeError):
    """Base error of the booking API client."""


class BookingApiUnavailableError(BookingApiError):
    """Transport failure, non-2xx status or unusable response body."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ReceiptValidationError(BookingApiError):
    """Receipt rejected before upload."""


@dataclass
class ApiResult(Generic[T]):
    """Outcome of a booking API call.

    ``demo`` is set when ``data`` comes from the offline fallback; ``error``
    then still carries the failure that triggered it.
    """

    data: T | None = None
    error: BookingApiError | None = None
    demo: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def has_data(self) -> bool:
        return self.data is not None


class BookingApiClient:
    """Client for the availability, rate and booking endpoints."""

    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        retries: int | None = None,
        retry_wait: float | None = None,
        mock_fallback: bool | None = None,
        client: httpx.AsyncClient | None = None,
        clock: Clock | None = None,
    ) -> None:
        settings = get_settings()
        self._retries = settings.booking_api_retries if retries is None else retries
        self._retry_wait = settings.booking_api_retry_wait if retry_wait is None else retry_wait
        self._mock_fallback = (
            settings.mock_fallback_enabled if mock_fallback is None else mock_fallback
        )
        self._clock = clock or utc_now
        self._client = client or httpx.AsyncClient(
            base_url=(base_url or settings.booking_api_base_url).rstrip("/"),
            timeout=timeout or settings.booking_api_timeout,
            headers={"Accept": "application/json"},
        )

    @property
    def mock_fallback(self) -> bool:
        return self._mock_fallback

    async def close(self) -> None:
        await self._client.aclose()

    def min_check_in_date(self) -> date:
        return min_check_in_date(self._clock)

    # ---- availability and rates ----------------------------------------

    async def check_availability(
        self,
        *,
        check_in: str | None,
        check_out: str | None = None,
        room_id: str | None = None,
        guests: int | None = None,
    ) -> ApiResult[list[RoomAvailability]]:
        params = self._stay_params(check_in, check_out, room_id, guests)
        try:
            payload = await self._request("GET", AVAILABILITY_PATH, params=params, retry=True)
            rooms = self._extract_rooms(payload)
        except BookingApiError as exc:
            logger.error("Availability check failed: %s", exc)
            return self._fallback(exc, lambda: offline.demo_availability(check_in))
        return ApiResult(data=rooms)

    async def get_rates(
        self,
        *,
        check_in: str | None,
        check_out: str | None,
        room_id: str | None = None,
        guests: int | None = None,
        children: int | None = None,
        children_ages: list[int] | None = None,
    ) -> ApiResult[RateQuote]:
        params = self._stay_params(check_in, check_out, room_id, guests)
        if children:
            params["children"] = children
            if children_ages:
                params["children_ages"] = ",".join(str(age) for age in children_ages[:children])
        try:
            payload = await self._request("GET", RATES_PATH, params=params, retry=True)
            quote = RateQuote.from_payload(payload.get("rates") or payload)
            if quote is None:
                raise BookingApiUnavailableError("rate response without total")
        except BookingApiError as exc:
            logger.error("Rate fetch failed: %s", exc)
            return self._fallback(exc, lambda: offline.demo_rates(check_in, check_out))
        return ApiResult(data=quote)

    # ---- bookings --------------------------------------------------------

    async def create_booking(self, booking_data: dict[str, Any]) -> ApiResult[dict[str, Any]]:
        body = {
            **booking_data,
            "status": "pending",
            "paymentMethod": booking_data.get("paymentMethod") or "card",
        }
        try:
            payload = await self._request("POST", BOOKINGS_PATH, json=body)
        except BookingApiError as exc:
            logger.error("Booking creation failed: %s", exc)
            return self._fallback(exc, lambda: offline.demo_booking(body, clock=self._clock))
        booking = payload.get("booking") or payload.get("data") or payload
        return ApiResult(data=booking if isinstance(booking, dict) else {})

    async def update_booking_status(self, booking_id: str, status: str) -> ApiResult[dict[str, Any]]:
        try:
            payload = await self._request(
                "PATCH", f"{BOOKINGS_PATH}/{booking_id}", json={"status": status}
            )
        except BookingApiError as exc:
            logger.error("Status update failed for %s: %s", booking_id, exc)
            return ApiResult(error=exc)
        return ApiResult(data=payload)

    async def submit_waitlist(self, waitlist_data: dict[str, Any]) -> ApiResult[dict[str, Any]]:
        body = {**waitlist_data, "submittedAt": format_timestamp(self._clock())}
        try:
            payload = await self._request("POST", WAITLIST_PATH, json=body)
        except BookingApiError as exc:
            logger.error("Waitlist submission failed: %s", exc)
            return self._fallback(exc, offline.demo_waitlist_entry)
        return ApiResult(data=payload)

    async def upload_receipt(self, receipt: ReceiptFile, booking_id: str) -> ApiResult[dict[str, Any]]:
        validation_error = self.validate_receipt(receipt)
        if validation_error is not None:
            return ApiResult(error=validation_error)

        files = {"receipt": (receipt.filename, receipt.content, receipt.content_type)}
        try:
            payload = await self._request(
                "POST", UPLOAD_PATH, files=files, data={"bookingId": booking_id}
            )
        except BookingApiError as exc:
            logger.error("Receipt upload failed: %s", exc)
            return self._fallback(
                exc, lambda: offline.demo_receipt_upload(receipt.filename, booking_id)
            )
        return ApiResult(data=payload)

    async def send_notification(self, kind: str, data: dict[str, Any]) -> ApiResult[dict[str, Any]]:
        try:
            payload = await self._request("POST", NOTIFICATIONS_PATH, json={"type": kind, **data})
        except BookingApiError as exc:
            logger.error("Notification send failed: %s", exc)
            return ApiResult(error=exc)
        return ApiResult(data=payload)

    @staticmethod
    def validate_receipt(receipt: ReceiptFile) -> ReceiptValidationError | None:
        if receipt.content_type not in ALLOWED_RECEIPT_TYPES:
            return ReceiptValidationError("Invalid file type. Please upload JPG, PNG, WEBP or PDF.")
        if receipt.size > MAX_RECEIPT_BYTES:
            return ReceiptValidationError("File too large. Maximum size is 10MB.")
        return None

    # ---- HTTP helpers ----------------------------------------------------

    async def _request(
        self, method: str, path: str, *, retry: bool = False, **kwargs: Any
    ) -> dict[str, Any]:
        """Sends one request. Only calls made with ``retry=True`` are repeated on transient failures."""
        attempts = self._retries + 1 if retry else 1
        try:
            async for attempt in AsyncRetrying(
                reraise=True,
                stop=stop_after_attempt(attempts),
                wait=wait_exponential(multiplier=self._retry_wait, min=self._retry_wait, max=4),
                retry=retry_if_exception(_is_transient),
            ):
                with attempt:
                    response = await self._client.request(method, path, **kwargs)
                    response.raise_for_status()
                    return self._safe_json(response)
        except httpx.HTTPStatusError as exc:
            raise BookingApiUnavailableError(
                f"HTTP_{exc.response.status_code} at {path}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise BookingApiUnavailableError(f"{type(exc).__name__} at {path}: {exc}") from exc
        return {}

    def _fallback(self, error: BookingApiError, build: Callable[[], Any]) -> ApiResult[Any]:
        if not self._mock_fallback:
            return ApiResult(error=error)
        logger.warning("Serving demo data after backend failure: %s", error)
        return ApiResult(data=build(), error=error, demo=True)

    @staticmethod
    def _stay_params(
        check_in: str | None, check_out: str | None, room_id: str | None, guests: int | None
    ) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if check_in:
            params["arrival"] = check_in
        if check_out:
            params["departure"] = check_out
        if room_id:
            params["room_id"] = room_id
        if guests:
            params["guests"] = guests
        return params

    @staticmethod
    def _safe_json(response: httpx.Response) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise BookingApiUnavailableError("response body is not JSON") from exc
        if isinstance(payload, dict):
            return payload
        if isinstance(payload, list):
            return {"data": payload}
        return {}

    @staticmethod
    def _extract_rooms(payload: dict[str, Any]) -> list[RoomAvailability]:
        raw_rooms = payload.get("available") or payload.get("rooms") or payload.get("data")
        if not isinstance(raw_rooms, list):
            raise BookingApiUnavailableError("availability response without rooms")
        rooms: list[RoomAvailability] = []
        for item in raw_rooms:
            if not isinstance(item, dict) or not item.get("id"):
                continue
            rooms.append(
                RoomAvailability(
                    id=str(item["id"]),
                    name=str(item.get("name") or item["id"]),
                    available=bool(item.get("available")),
                )
            )
        return rooms


__all__ = [
    "ApiResult",
    "BookingApiClient",
    "BookingApiError",
    "BookingApiUnavailableError",
    "ReceiptValidationError",
    "ALLOWED_RECEIPT_TYPES",
    "MAX_RECEIPT_BYTES",
]
