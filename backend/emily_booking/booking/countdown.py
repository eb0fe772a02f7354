"""
Countdown for the pending bank-transfer window.

The timer is a small state machine (IDLE, RUNNING, PAUSED, EXPIRED) advanced
by a ``Ticker``. Production code ticks on the asyncio loop; tests drive
``tick()`` directly.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol

from emily_booking.booking.dates import Clock, parse_timestamp, seconds_until, utc_now
from emily_booking.booking.notifications import LoggingNotifier, Notification, NotificationKind, Notifier
from emily_booking.core.config import get_settings

logger = logging.getLogger(__name__)

TICK_INTERVAL_SECONDS = 1.0
WARNING_THRESHOLD_SECONDS = 600
CRITICAL_THRESHOLD_SECONDS = 60


class TimerPhase(Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    EXPIRED = "expired"


def timer_status(remaining_seconds: int) -> str:
    if remaining_seconds <= CRITICAL_THRESHOLD_SECONDS:
        return "critical"
    if remaining_seconds <= WARNING_THRESHOLD_SECONDS:
        return "warning"
    return "normal"


def format_remaining(seconds: int) -> str:
    if seconds <= 0:
        return "00:00"
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


@dataclass(frozen=True)
class TimerSnapshot:
    phase: TimerPhase
    remaining_seconds: int
    total_seconds: int

    @property
    def status(self) -> str:
        return timer_status(self.remaining_seconds)

    @property
    def formatted(self) -> str:
        return format_remaining(self.remaining_seconds)

    @property
    def percent(self) -> float:
        if self.total_seconds <= 0:
            return 0.0
        return self.remaining_seconds / self.total_seconds * 100


UpdateCallback = Callable[[TimerSnapshot], None]
ExpireCallback = Callable[[], None]


class Ticker(Protocol):
    def start(self, interval: float, callback: Callable[[], None]) -> None: ...

    def stop(self) -> None: ...


class CountdownDisplay(Protocol):
    def render(self, snapshot: TimerSnapshot) -> None: ...

    def mark_expired(self) -> None: ...


class AsyncioTicker:
    """Repeating callback on the running event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None
        self._interval = TICK_INTERVAL_SECONDS
        self._callback: Callable[[], None] | None = None

    def start(self, interval: float, callback: Callable[[], None]) -> None:
        self.stop()
        self._interval = interval
        self._callback = callback
        self._schedule()

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._callback = None

    def _schedule(self) -> None:
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(self._interval, self._fire)

    def _fire(self) -> None:
        callback = self._callback
        if callback is None:
            return
        self._schedule()
        callback()


class CountdownTimer:
    def __init__(
        self,
        *,
        ticker: Ticker | None = None,
        clock: Clock | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self._ticker = ticker or AsyncioTicker()
        self._clock = clock or utc_now
        self._notifier = notifier or LoggingNotifier()
        self._displays: list[CountdownDisplay] = []
        self._on_update: UpdateCallback | None = None
        self._on_expire: ExpireCallback | None = None
        self.phase = TimerPhase.IDLE
        self.remaining_seconds = 0
        self.total_seconds = 0

    # ---- displays --------------------------------------------------------

    def bind(self, display: CountdownDisplay) -> Callable[[], None]:
        self._displays.append(display)

        def unbind() -> None:
            if display in self._displays:
                self._displays.remove(display)

        return unbind

    # ---- control ---------------------------------------------------------

    def start(
        self,
        minutes: float | None = None,
        *,
        on_update: UpdateCallback | None = None,
        on_expire: ExpireCallback | None = None,
    ) -> CountdownTimer:
        duration = get_settings().pending_minutes if minutes is None else minutes
        return self._start_seconds(round(duration * 60), on_update=on_update, on_expire=on_expire)

    def start_from_expiry(
        self,
        expiry_iso: str,
        *,
        on_update: UpdateCallback | None = None,
        on_expire: ExpireCallback | None = None,
    ) -> CountdownTimer:
        expiry = parse_timestamp(expiry_iso)
        if expiry is None:
            raise ValueError(f"invalid expiry timestamp: {expiry_iso!r}")

        remaining = seconds_until(expiry, self._clock)
        if remaining <= 0:
            self.stop()
            self._set_callbacks(on_update, on_expire)
            self.phase = TimerPhase.IDLE
            self.remaining_seconds = 0
            self._expire()
            return self
        return self._start_seconds(remaining, on_update=on_update, on_expire=on_expire)

    def tick(self) -> None:
        if self.phase is not TimerPhase.RUNNING:
            return
        self.remaining_seconds -= 1
        if self.remaining_seconds <= 0:
            self._expire()
        else:
            self._update_display()

    def stop(self) -> CountdownTimer:
        self._ticker.stop()
        if self.phase in (TimerPhase.RUNNING, TimerPhase.PAUSED):
            self.phase = TimerPhase.IDLE
        return self

    def pause(self) -> CountdownTimer:
        if self.phase is TimerPhase.RUNNING:
            self._ticker.stop()
            self.phase = TimerPhase.PAUSED
        return self

    def resume(self) -> CountdownTimer:
        if self.phase is TimerPhase.PAUSED and self.remaining_seconds > 0:
            self.phase = TimerPhase.RUNNING
            self._ticker.start(TICK_INTERVAL_SECONDS, self.tick)
        return self

    # ---- queries ---------------------------------------------------------

    @property
    def snapshot(self) -> TimerSnapshot:
        return TimerSnapshot(self.phase, self.remaining_seconds, self.total_seconds)

    @property
    def is_running(self) -> bool:
        return self.phase is TimerPhase.RUNNING

    @property
    def is_expired(self) -> bool:
        return self.phase is TimerPhase.EXPIRED

    @property
    def status(self) -> str:
        return timer_status(self.remaining_seconds)

    @property
    def formatted_time(self) -> str:
        return format_remaining(self.remaining_seconds)

    # ---- internals -------------------------------------------------------

    def _start_seconds(
        self,
        seconds: int,
        *,
        on_update: UpdateCallback | None,
        on_expire: ExpireCallback | None,
    ) -> CountdownTimer:
        self.stop()
        self._set_callbacks(on_update, on_expire)
        self.total_seconds = seconds
        self.remaining_seconds = seconds
        self.phase = TimerPhase.RUNNING
        self._ticker.start(TICK_INTERVAL_SECONDS, self.tick)
        self._update_display()
        logger.info("Countdown started: %s", self.formatted_time)
        return self

    def _set_callbacks(
        self, on_update: UpdateCallback | None, on_expire: ExpireCallback | None
    ) -> None:
        if on_update is not None:
            self._on_update = on_update
        if on_expire is not None:
            self._on_expire = on_expire

    def _update_display(self) -> None:
        snapshot = self.snapshot
        for display in list(self._displays):
            try:
                display.render(snapshot)
            except Exception:
                logger.exception("Countdown display failed to render")
        if self._on_update is not None:
            try:
                self._on_update(snapshot)
            except Exception:
                logger.exception("Countdown update callback error")

    def _expire(self) -> None:
        if self.phase is TimerPhase.EXPIRED:
            return
        self._ticker.stop()
        self.phase = TimerPhase.EXPIRED
        self.remaining_seconds = 0

        for display in list(self._displays):
            try:
                display.mark_expired()
            except Exception:
                logger.exception("Countdown display failed to mark expiry")

        if self._on_expire is not None:
            try:
                self._on_expire()
            except Exception:
                logger.exception("Countdown expiry callback error")

        self._notifier.show(
            Notification(
                kind=NotificationKind.EXPIRED,
                title="Time Expired",
                message=(
                    "Your pending booking has expired. "
                    "The room has been released back to inventory."
                ),
                action_label="Start New Booking",
                persistent=True,
            )
        )
        logger.info("Countdown expired")


__all__ = [
    "TimerPhase",
    "TimerSnapshot",
    "Ticker",
    "CountdownDisplay",
    "AsyncioTicker",
    "CountdownTimer",
    "timer_status",
    "format_remaining",
]
