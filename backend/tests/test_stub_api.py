import pytest
from fastapi.testclient import TestClient

from _helpers import BACKEND_DIR  # noqa: F401

from emily_booking.main import create_app

BOOKING = {
    "roomId": "atlantic",
    "checkIn": "2030-01-10",
    "checkOut": "2030-01-13",
    "guests": 2,
    "guestName": "Tunde Bello",
    "guestEmail": "tunde@example.com",
    "guestPhone": "08031234567",
    "totalPrice": 148_500,
}


@pytest.fixture()
def client():
    return TestClient(create_app())


def test_health(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_rates_use_demo_pricing(client):
    response = client.get("/api/rates", params={"arrival": "2030-01-10", "departure": "2030-01-13"})

    rates = response.json()["rates"]
    assert rates["total"] == 148_500
    assert rates["formattedTotal"] == "₦148,500"
    assert rates["perNight"] == 45_000


def test_rates_echo_parsed_children_ages(client):
    response = client.get(
        "/api/rates",
        params={"arrival": "2030-01-10", "departure": "2030-01-12", "children": 2, "children_ages": "4,x,9"},
    )

    assert response.json()["childrenAges"] == [4]


def test_availability_filters_by_room(client):
    response = client.get("/api/availability", params={"arrival": "2030-01-12", "room_id": "ocean-view"})

    assert response.json() == {
        "available": [{"id": "ocean-view", "name": "Ocean View Suite", "available": False}]
    }


def test_create_booking(client):
    response = client.post("/api/bookings", json=BOOKING)

    assert response.status_code == 201
    payload = response.json()
    assert payload["success"] is True
    assert payload["data"]["id"].startswith("BK-")
    assert payload["data"]["check_in"] == "2030-01-10"
    assert payload["data"]["total_price"] == 148_500
    assert payload["data"]["status"] == "confirmed"


def test_bank_transfer_booking_is_pending(client):
    response = client.post("/api/bookings", json={**BOOKING, "paymentMethod": "bank_transfer"})

    data = response.json()["data"]
    assert data["status"] == "pending"
    assert data["pendingExpiry"].endswith("Z")


def test_invalid_booking_lists_every_problem(client):
    response = client.post(
        "/api/bookings",
        json={**BOOKING, "roomId": None, "checkOut": "2030-01-09", "guestEmail": "nope"},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == (
        "Room ID is required, Check-out date must be after check-in date, Valid guest email is required"
    )


def test_status_update(client):
    response = client.patch("/api/bookings/BK-1", json={"status": "confirmed"})

    assert response.json() == {"success": True, "id": "BK-1", "status": "confirmed"}
    assert client.patch("/api/bookings/BK-1", json={"status": "lost"}).status_code == 400


def test_waitlist_requires_contact(client):
    assert client.post("/api/waitlist", json={"roomId": "atlantic"}).status_code == 400

    response = client.post("/api/waitlist", json={"roomId": "atlantic", "email": "guest@example.com"})
    assert response.status_code == 201
    assert response.json()["id"].startswith("WL-")


def test_notifications(client):
    response = client.post("/api/notifications/send", json={"type": "pending_payment", "bookingId": "BK-1"})

    assert response.json() == {"success": True, "type": "pending_payment"}
    assert client.post("/api/notifications/send", json={"type": "sms"}).status_code == 400
