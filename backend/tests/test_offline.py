from datetime import datetime, timezone

from _helpers import FixedClock

from emily_booking.services.offline import (
    demo_availability,
    demo_booking,
    demo_booking_id,
    demo_nights,
    demo_rates,
    demo_receipt_upload,
)


def test_three_night_demo_quote():
    quote = demo_rates("2030-01-10", "2030-01-13")

    assert quote.nights == 3
    assert quote.subtotal == 135_000
    assert quote.tax == 13_500
    assert quote.total == 148_500
    assert quote.currency == "NGN"
    assert quote.formatted_total == "₦148,500"


def test_demo_nights_never_drop_below_one():
    assert demo_nights("2030-01-10", "2030-01-10") == 1
    assert demo_nights("2030-01-10", "2030-01-08") == 1
    assert demo_nights(None, "2030-01-08") == 1


def test_custom_rate_and_tax():
    quote = demo_rates("2030-01-10", "2030-01-12", base_rate=50_000, tax_rate=0.075)

    assert quote.subtotal == 100_000
    assert quote.tax == 7_500
    assert quote.total == 107_500


def test_availability_depends_on_check_in_day():
    open_day = demo_availability("2030-01-10")
    blocked_day = demo_availability("2030-01-09")

    assert all(room.available for room in open_day)
    assert [room.id for room in blocked_day if room.available] == ["atlantic"]
    assert len(blocked_day) == 4


def test_booking_ids_are_uppercase_base36_millis():
    moment = datetime(2030, 1, 10, 9, 0, tzinfo=timezone.utc)

    booking_id = demo_booking_id(moment)

    assert booking_id.startswith("BK-")
    assert int(booking_id[3:], 36) == int(moment.timestamp() * 1000)
    assert booking_id[3:] == booking_id[3:].upper()


def test_card_booking_is_confirmed_immediately():
    booking = demo_booking({"roomId": "atlantic", "paymentMethod": "card"}, clock=FixedClock())

    assert booking["status"] == "confirmed"
    assert booking["pendingExpiry"] is None
    assert booking["createdAt"] == "2030-01-10T09:00:00Z"
    assert booking["roomId"] == "atlantic"


def test_receipt_upload_url():
    assert demo_receipt_upload("slip.png", "BK-1")["url"] == "local://receipts/BK-1/slip.png"


def test_demo_tax_rounds_halves_up():
    quote = demo_rates("2030-01-10", "2030-01-11", base_rate=25, tax_rate=0.1)

    assert quote.subtotal == 25
    assert quote.tax == 3
    assert quote.total == 28
