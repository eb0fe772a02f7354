import asyncio
from datetime import date, datetime, timezone

import httpx

from _helpers import (
    FixedClock,
    RecordingNavigator,
    RecordingNotifier,
    make_api,
    offline_handler,
    rates_payload,
)

from emily_booking.booking.notifications import NotificationKind
from emily_booking.booking.state import BookingStateStore
from emily_booking.booking.widget import BookingWidget, WidgetPhase


def rates_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json=rates_payload())


def build_widget(handler=rates_handler, *, clock=None, store=None):
    clock = clock or FixedClock()
    store = store or BookingStateStore(clock=clock)
    notifier = RecordingNotifier()
    navigator = RecordingNavigator()
    widget = BookingWidget(store, make_api(handler, clock=clock), notifier=notifier, navigator=navigator)
    return widget, store, notifier, navigator


def test_check_in_unlocks_departure_with_next_day_minimum():
    widget, store, _, _ = build_widget()

    assert widget.phase is WidgetPhase.INITIAL
    assert asyncio.run(widget.select_check_in("2030-01-15")) is True

    assert widget.phase is WidgetPhase.CHECK_IN_SELECTED
    assert widget.state.departure_enabled is True
    assert widget.state.check_out_min == date(2030, 1, 16)
    assert store.get("check_in") == "2030-01-15"


def test_check_out_before_check_in_is_rejected():
    widget, store, notifier, _ = build_widget()

    assert asyncio.run(widget.select_check_out("2030-01-15")) is False

    assert store.get("check_out") is None
    assert notifier.current.kind is NotificationKind.ERROR


def test_check_out_not_after_check_in_is_corrected():
    widget, store, _, _ = build_widget()

    async def scenario():
        await widget.select_check_in("2030-01-15")
        await widget.select_check_out("2030-01-14")

    asyncio.run(scenario())

    assert widget.state.check_out == date(2030, 1, 16)
    assert store.get("check_out") == "2030-01-16"
    assert widget.phase is WidgetPhase.RANGE_SELECTED


def test_moving_check_in_past_check_out_pushes_check_out():
    widget, _, _, _ = build_widget()

    async def scenario():
        await widget.select_check_in("2030-01-15")
        await widget.select_check_out("2030-01-17")
        await widget.select_check_in("2030-01-20")

    asyncio.run(scenario())

    assert widget.state.check_out == date(2030, 1, 21)


def test_check_in_before_earliest_date_is_rejected():
    # 18:30 in Lagos, past the same-day cutoff
    clock = FixedClock(datetime(2030, 1, 10, 17, 30, tzinfo=timezone.utc))
    widget, store, notifier, _ = build_widget(clock=clock)
    assert widget.min_check_in == date(2030, 1, 11)

    assert asyncio.run(widget.select_check_in("2030-01-10")) is False

    assert store.get("check_in") is None
    assert "11/01/2030" in notifier.current.message


def test_rates_are_quoted_once_both_dates_are_known():
    widget, store, _, _ = build_widget()

    async def scenario():
        await widget.select_check_in("2030-01-10")
        await widget.select_check_out("2030-01-13")

    asyncio.run(scenario())

    assert widget.state.rates.total == 148_500
    assert widget.state.rates_demo is False
    assert widget.price_label == "₦148,500"
    assert widget.browse_label == "From ₦148,500"
    assert store.get("rates.total") == 148_500
    assert store.get("rates.nights") == 3


def test_demo_rates_are_flagged_when_backend_is_down():
    widget, _, _, _ = build_widget(offline_handler)

    async def scenario():
        await widget.select_check_in("2030-01-10")
        await widget.select_check_out("2030-01-13")

    asyncio.run(scenario())

    assert widget.state.rates_demo is True
    assert widget.state.rates.total == 148_500


def test_rate_failure_without_fallback_notifies():
    clock = FixedClock()
    store = BookingStateStore(clock=clock)
    notifier = RecordingNotifier()
    api = make_api(offline_handler, clock=clock, mock_fallback=False)
    widget = BookingWidget(store, api, notifier=notifier, navigator=RecordingNavigator())

    async def scenario():
        await widget.select_check_in("2030-01-10")
        await widget.select_check_out("2030-01-13")

    asyncio.run(scenario())

    assert widget.state.rates is None
    assert widget.price_label == "--"
    assert notifier.current.message == "Unable to fetch current rates. Please try again."


def test_stale_rate_quote_is_discarded():
    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params["departure"] == "2030-01-13":
            await asyncio.sleep(0.05)
            return httpx.Response(200, json=rates_payload(total=111_000))
        return httpx.Response(200, json=rates_payload(total=222_000, nights=2))

    widget, _, _, _ = build_widget(handler)

    async def scenario():
        widget.state.check_in = date(2030, 1, 10)
        widget.state.check_out = date(2030, 1, 13)
        slow = asyncio.create_task(widget.refresh_rates())
        await asyncio.sleep(0)
        widget.state.check_out = date(2030, 1, 12)
        fresh = await widget.refresh_rates()
        stale = await slow
        return fresh, stale

    fresh, stale = asyncio.run(scenario())

    assert stale is None
    assert fresh.total == 222_000
    assert widget.state.rates.total == 222_000
    assert widget.state.is_loading is False


def test_large_party_gets_suite_suggestion():
    widget, store, notifier, _ = build_widget()

    assert widget.set_adults(5) == 5

    assert notifier.current.kind is NotificationKind.SUGGESTION
    assert notifier.current.action_url == "/rooms.html?suite=atlantic"
    assert store.get("adults") == 5

    widget.set_adults(2)
    assert notifier.current is None


def test_adults_are_clamped():
    widget, _, _, _ = build_widget()

    assert widget.set_adults(10) == 6
    assert widget.set_adults(0) == 1
    assert widget.set_adults("abc") == 2


def test_children_toggle_and_ages():
    widget, store, notifier, _ = build_widget()

    widget.toggle_children(True)
    assert widget.state.children == 1
    assert notifier.current.requires_input is True

    widget.set_children(2)
    ages = widget.save_children_ages("5, abc, 20, 3")

    assert ages == [5]
    assert store.get("children_ages") == [5]

    widget.toggle_children(False)
    assert store.get("children") == 0
    assert store.get("children_ages") == []


def test_submit_requires_both_dates():
    widget, _, notifier, navigator = build_widget()

    assert widget.submit() is None
    assert notifier.current.message == "Please select both check-in and check-out dates."
    assert navigator.visited == []


def test_submit_navigates_to_rooms_with_query():
    widget, _, _, navigator = build_widget()

    async def scenario():
        await widget.select_check_in("2030-01-10")
        await widget.select_check_out("2030-01-13")

    asyncio.run(scenario())
    url = widget.submit()

    assert url == "/rooms.html?arrival=2030-01-10&departure=2030-01-13&adults=2&rooms=1"
    assert navigator.visited == [url]


def test_init_restores_draft_and_quotes():
    clock = FixedClock()
    store = BookingStateStore(clock=clock)
    store.init("arrival=2030-01-10&departure=2030-01-13&adults=4")
    widget, _, notifier, _ = build_widget(clock=clock, store=store)

    asyncio.run(widget.init())

    assert widget.phase is WidgetPhase.RANGE_SELECTED
    assert widget.state.adults == 4
    assert widget.state.rates.total == 148_500
    assert notifier.shown[0].kind is NotificationKind.SUGGESTION


def test_summary_lists_stay_and_prices():
    widget, _, _, _ = build_widget()

    async def scenario():
        await widget.select_check_in("2030-01-10")
        await widget.select_check_out("2030-01-13")

    asyncio.run(scenario())
    widget.set_children(1)
    summary = widget.summary()

    assert summary["check_in"] == "Thursday, January 10"
    assert summary["guests"] == "2 Adults, 1 Child"
    assert summary["nights"] == "3 nights"
    assert summary["subtotal"] == "₦135,000"
    assert summary["total"] == "₦148,500"


def test_reset_clears_widget_and_store():
    widget, store, _, _ = build_widget()

    asyncio.run(widget.select_check_in("2030-01-10"))
    widget.reset()

    assert widget.phase is WidgetPhase.INITIAL
    assert store.get("check_in") is None


def test_init_repairs_a_reversed_stored_range():
    clock = FixedClock()
    store = BookingStateStore(clock=clock)
    store.set(check_in="2030-01-13", check_out="2030-01-10")
    widget, _, _, _ = build_widget(clock=clock, store=store)

    asyncio.run(widget.init())

    assert widget.state.check_out == date(2030, 1, 14)
    assert widget.state.check_out_min == date(2030, 1, 14)
    assert store.get("check_out") == "2030-01-14"
    assert store.is_valid() is True
    assert widget.state.rates is not None


def test_init_from_reversed_url_waits_for_check_out():
    clock = FixedClock()
    store = BookingStateStore(clock=clock)
    store.init("?arrival=2030-01-13&departure=2030-01-10")
    widget, _, _, _ = build_widget(clock=clock, store=store)

    asyncio.run(widget.init())

    assert widget.phase is WidgetPhase.CHECK_IN_SELECTED
    assert widget.state.check_out is None
    assert widget.state.rates is None


def test_display_formatted_dates_are_accepted():
    widget, store, _, _ = build_widget()

    assert asyncio.run(widget.select_check_in("15/01/2030")) is True

    assert store.get("check_in") == "2030-01-15"
