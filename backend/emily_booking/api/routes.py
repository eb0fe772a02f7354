from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from emily_booking.booking.parsers import parse_children_ages, validate_booking_request
from emily_booking.services import offline

logger = logging.getLogger(__name__)

router = APIRouter()

BOOKING_STATUSES = frozenset({"pending", "confirmed", "cancelled"})
NOTIFICATION_TYPES = frozenset({"booking_confirmation", "pending_payment", "waitlist"})


class BookingRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    room_id: str | None = Field(default=None, alias="roomId")
    check_in: str | None = Field(default=None, alias="checkIn")
    check_out: str | None = Field(default=None, alias="checkOut")
    guests: int | None = None
    guest_name: str | None = Field(default=None, alias="guestName")
    guest_email: str | None = Field(default=None, alias="guestEmail")
    guest_phone: str | None = Field(default=None, alias="guestPhone")
    total_price: float | None = Field(default=None, alias="totalPrice")
    payment_method: str = Field(default="card", alias="paymentMethod")


class StatusUpdate(BaseModel):
    status: str


class WaitlistRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    room_id: str | None = Field(default=None, alias="roomId")
    email: str | None = None
    phone: str | None = None


class NotificationRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/availability")
async def availability(
    arrival: str | None = Query(None),
    departure: str | None = Query(None),
    room_id: str | None = Query(None),
) -> dict[str, Any]:
    rooms = offline.demo_availability(arrival)
    if room_id:
        rooms = [room for room in rooms if room.id == room_id]
    return {"available": [room.to_dict() for room in rooms]}


@router.get("/rates")
async def rates(
    arrival: str | None = Query(None),
    departure: str | None = Query(None),
    guests: int | None = Query(None, ge=1),
    children: int | None = Query(None, ge=0),
    children_ages: str | None = Query(None),
) -> dict[str, Any]:
    quote = offline.demo_rates(arrival, departure)
    payload: dict[str, Any] = {"rates": quote.to_payload()}
    if children:
        payload["childrenAges"] = parse_children_ages(children_ages, children)
    return payload


@router.post("/bookings", status_code=status.HTTP_201_CREATED)
async def create_booking(payload: BookingRequest) -> dict[str, Any]:
    body = payload.model_dump(by_alias=True)
    errors = validate_booking_request(body)
    if errors:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=", ".join(errors))

    booking = offline.demo_booking(body)
    logger.info("Stub booking %s created status=%s", booking["id"], booking["status"])
    return {
        "success": True,
        "data": {
            "id": booking["id"],
            "check_in": booking["checkIn"],
            "check_out": booking["checkOut"],
            "total_price": booking["totalPrice"],
            "status": booking["status"],
            "pendingExpiry": booking["pendingExpiry"],
        },
    }


@router.patch("/bookings/{booking_id}")
async def update_booking(booking_id: str, payload: StatusUpdate) -> dict[str, Any]:
    if payload.status not in BOOKING_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown status: {payload.status}"
        )
    return {"success": True, "id": booking_id, "status": payload.status}


@router.post("/waitlist", status_code=status.HTTP_201_CREATED)
async def join_waitlist(payload: WaitlistRequest) -> dict[str, Any]:
    if not payload.room_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Room ID is required")
    if not payload.email and not payload.phone:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Email or phone is required"
        )
    return offline.demo_waitlist_entry()


@router.post("/notifications/send")
async def send_notification(payload: NotificationRequest) -> dict[str, Any]:
    if payload.type not in NOTIFICATION_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown notification type: {payload.type}"
        )
    logger.info("Stub notification queued type=%s", payload.type)
    return {"success": True, "type": payload.type}


__all__ = ["router"]
