"""Clients for the booking backend and its offline demo data."""

from .booking_api import (
    ApiResult,
    BookingApiClient,
    BookingApiError,
    BookingApiUnavailableError,
    ReceiptValidationError,
)

__all__ = [
    "ApiResult",
    "BookingApiClient",
    "BookingApiError",
    "BookingApiUnavailableError",
    "ReceiptValidationError",
]
