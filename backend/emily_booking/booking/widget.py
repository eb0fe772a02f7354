"""
Booking widget coordinator.

Keeps the check-in/check-out pair consistent (check-out stays locked until a
check-in is chosen and never precedes it), applies party-size rules and
re-quotes rates whenever both dates are known.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Any

from emily_booking.booking.dates import (
    format_display_date,
    format_long_date,
    parse_iso_date,
    to_iso_date,
)
from emily_booking.booking.models import RateQuote, format_money
from emily_booking.booking.notifications import (
    LoggingNavigator,
    LoggingNotifier,
    Navigator,
    Notification,
    NotificationKind,
    Notifier,
)
from emily_booking.booking.parsers import parse_children_ages, parse_int
from emily_booking.booking.state import BookingStateStore
from emily_booking.core.config import get_settings
from emily_booking.services.booking_api import BookingApiClient

logger = logging.getLogger(__name__)


class WidgetPhase(Enum):
    INITIAL = "initial"
    CHECK_IN_SELECTED = "check_in_selected"
    RANGE_SELECTED = "range_selected"


@dataclass
class WidgetState:
    check_in: date | None = None
    check_out: date | None = None
    adults: int = 2
    children: int = 0
    children_ages: list[int] = field(default_factory=list)
    rooms: int = 1
    rates: RateQuote | None = None
    rates_demo: bool = False
    is_loading: bool = False
    departure_enabled: bool = False
    check_out_min: date | None = None


def _plural(count: int, singular: str, plural: str) -> str:
    return f"{count} {singular if count == 1 else plural}"


class BookingWidget:
    def __init__(
        self,
        store: BookingStateStore,
        api: BookingApiClient,
        *,
        notifier: Notifier | None = None,
        navigator: Navigator | None = None,
    ) -> None:
        self._store = store
        self._api = api
        self._notifier = notifier or LoggingNotifier()
        self._navigator = navigator or LoggingNavigator()
        self._settings = get_settings()
        self._rate_generation = 0
        self.state = WidgetState()
        self.min_check_in: date = self._api.min_check_in_date()

    # ---- lifecycle -------------------------------------------------------

    async def init(self) -> BookingWidget:
        draft = self._store.draft
        self.state = WidgetState(
            check_in=parse_iso_date(draft.check_in),
            check_out=parse_iso_date(draft.check_out),
            adults=draft.adults or 2,
            children=draft.children or 0,
            children_ages=list(draft.children_ages),
            rooms=draft.rooms or 1,
        )
        self.min_check_in = self._api.min_check_in_date()

        if self.state.check_in is not None:
            self._enable_departure(self.state.check_in)
            if self.state.check_out is not None and self.state.check_out <= self.state.check_in:
                self.state.check_out = self.state.check_in + timedelta(days=1)
                self._save_state()
        elif self.state.check_out is not None:
            # check-out stays locked until a check-in exists
            self.state.check_out = None
            self._save_state()
        if self.state.adults >= self._settings.large_party_threshold:
            self._suggest_suites()
        if self.state.check_in and self.state.check_out:
            await self.refresh_rates()

        logger.info("Booking widget initialized phase=%s", self.phase.value)
        return self

    def reset(self) -> None:
        # in-flight quotes must not land on the cleared widget
        self._rate_generation += 1
        self.state = WidgetState()
        self._store.reset()
        self._notifier.hide()

    @property
    def phase(self) -> WidgetPhase:
        if not self.state.departure_enabled or self.state.check_in is None:
            return WidgetPhase.INITIAL
        if self.state.check_out is None:
            return WidgetPhase.CHECK_IN_SELECTED
        return WidgetPhase.RANGE_SELECTED

    # ---- dates -----------------------------------------------------------

    async def select_check_in(self, value: date | str) -> bool:
        selected = self._coerce_date(value, "check-in")
        if selected is None:
            return False
        if selected < self.min_check_in:
            self._notify_error(
                f"The earliest available check-in is {format_display_date(self.min_check_in)}.",
                "Invalid Dates",
            )
            return False

        self.state.check_in = selected
        self._enable_departure(selected)
        if self.state.check_out is not None and self.state.check_out <= selected:
            self.state.check_out = selected + timedelta(days=1)

        self._save_state()
        if self.state.check_out is not None:
            await self.refresh_rates()
        return True

    async def select_check_out(self, value: date | str) -> bool:
        selected = self._coerce_date(value, "check-out")
        if selected is None:
            return False
        if not self.state.departure_enabled or self.state.check_in is None:
            self._notify_error("Please select a check-in date first.", "Incomplete Booking")
            return False

        if selected <= self.state.check_in:
            selected = self.state.check_in + timedelta(days=1)
        self.state.check_out = selected

        self._save_state()
        await self.refresh_rates()
        return True

    def _enable_departure(self, check_in: date) -> None:
        self.state.departure_enabled = True
        self.state.check_out_min = check_in + timedelta(days=1)

    def _coerce_date(self, value: date | str, label: str) -> date | None:
        if isinstance(value, str):
            value = to_iso_date(value.strip()) or ""
        parsed = parse_iso_date(value)
        if parsed is None:
            self._notify_error(f"Please enter a valid {label} date.", "Invalid Dates")
        return parsed

    # ---- rates -----------------------------------------------------------

    async def refresh_rates(self) -> RateQuote | None:
        """Requests a quote; only the most recently issued request may update state."""
        if self.state.check_in is None or self.state.check_out is None:
            return None

        self._rate_generation += 1
        token = self._rate_generation
        self.state.is_loading = True
        try:
            result = await self._api.get_rates(
                check_in=self.state.check_in.isoformat(),
                check_out=self.state.check_out.isoformat(),
                guests=self.state.adults,
                children=self.state.children,
                children_ages=list(self.state.children_ages),
            )
        finally:
            if token == self._rate_generation:
                self.state.is_loading = False

        if token != self._rate_generation:
            logger.debug("Discarding stale rate quote token=%s latest=%s", token, self._rate_generation)
            return None

        if not result.has_data:
            self._notify_error("Unable to fetch current rates. Please try again.", "Error")
            return None

        self.state.rates = result.data
        self.state.rates_demo = result.demo
        self._save_state()
        return result.data

    # ---- party size ------------------------------------------------------

    def set_adults(self, count: Any) -> int:
        parsed = parse_int(count)
        adults = 2 if parsed is None else parsed
        self.state.adults = max(1, min(adults, self._settings.max_adults))

        if self.state.adults >= self._settings.large_party_threshold:
            self._suggest_suites()
        else:
            self._notifier.hide()

        self._save_state()
        return self.state.adults

    def toggle_children(self, enabled: bool) -> None:
        if enabled:
            if self.state.children == 0:
                self.state.children = 1
            self._prompt_children_ages()
        else:
            self.state.children = 0
            self.state.children_ages = []
            self._notifier.hide()
        self._save_state()

    def set_children(self, count: Any) -> int:
        parsed = parse_int(count) or 0
        self.state.children = max(0, min(parsed, self._settings.max_children))
        self.state.children_ages = self.state.children_ages[: self.state.children]
        if self.state.children > 0:
            self._prompt_children_ages()
        else:
            self._notifier.hide()
        self._save_state()
        return self.state.children

    def save_children_ages(self, raw: str | None) -> list[int]:
        self.state.children_ages = parse_children_ages(raw, self.state.children)
        self._notifier.hide()
        self._save_state()
        return list(self.state.children_ages)

    def _suggest_suites(self) -> None:
        self._notifier.show(
            Notification(
                kind=NotificationKind.SUGGESTION,
                title="Atlantic Suites",
                message=(
                    "For larger parties, our Atlantic Suites offer interconnected sanctuaries. "
                    "Would you like to view suites only?"
                ),
                action_label="View Suites",
                action_url=self._settings.suite_url,
            )
        )

    def _prompt_children_ages(self) -> None:
        many = self.state.children > 1
        self._notifier.show(
            Notification(
                kind=NotificationKind.INPUT,
                title="Children's Ages",
                message=(
                    f"Please specify the age{'s' if many else ''} of your "
                    f"child{'ren' if many else ''} for specific amenities or safety requirements."
                ),
                action_label="Confirm Ages",
                requires_input=True,
            )
        )

    # ---- submission ------------------------------------------------------

    def submit(self) -> str | None:
        if self.state.check_in is None or self.state.check_out is None:
            self._notify_error("Please select both check-in and check-out dates.", "Incomplete Booking")
            return None
        if self.state.check_out <= self.state.check_in:
            self._notify_error("Check-out must be after check-in.", "Invalid Dates")
            return None

        self._save_state()
        url = self._store.get_rooms_url()
        self._navigator.go(url)
        return url

    # ---- presentation ----------------------------------------------------

    @property
    def price_label(self) -> str:
        if self.state.is_loading:
            return "..."
        if self.state.rates is not None:
            return self.state.rates.formatted_total
        return "--"

    @property
    def browse_label(self) -> str:
        if self.state.rates is not None and not self.state.is_loading:
            return f"From {self.state.rates.formatted_total}"
        return "BROWSE ROOMS"

    def summary(self) -> dict[str, str]:
        guests = _plural(self.state.adults, "Adult", "Adults")
        if self.state.children > 0:
            guests += f", {_plural(self.state.children, 'Child', 'Children')}"

        summary = {
            "check_in": format_long_date(self.state.check_in),
            "check_out": format_long_date(self.state.check_out),
            "guests": guests,
        }
        rates = self.state.rates
        if rates is not None:
            symbol = self._settings.currency_symbol
            summary.update(
                nights=_plural(rates.nights, "night", "nights"),
                subtotal=format_money(rates.subtotal, symbol),
                tax=format_money(rates.tax, symbol),
                total=rates.formatted_total,
            )
        return summary

    # ---- internals -------------------------------------------------------

    def _notify_error(self, message: str, title: str) -> None:
        self._notifier.show(Notification(kind=NotificationKind.ERROR, title=title, message=message))

    def _save_state(self) -> None:
        updates: dict[str, Any] = {
            "check_in": self.state.check_in.isoformat() if self.state.check_in else None,
            "check_out": self.state.check_out.isoformat() if self.state.check_out else None,
            "adults": self.state.adults,
            "children": self.state.children,
            "children_ages": list(self.state.children_ages),
            "rooms": self.state.rooms,
        }
        if self.state.rates is not None:
            quote = self.state.rates
            updates["rates"] = {
                "base_rate": quote.base_rate,
                "subtotal": quote.subtotal,
                "tax": quote.tax,
                "total": quote.total,
                "nights": quote.nights,
            }
        self._store.set(updates)


__all__ = ["BookingWidget", "WidgetPhase", "WidgetState"]
