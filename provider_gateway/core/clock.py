"""Clock and timer source shared by the breaker, deadlines and webhooks."""

import asyncio
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Protocol


class TimerHandle(Protocol):
    """Anything returned by ``call_later`` that can be cancelled."""

    def cancel(self) -> None:
        ...


class Clock(ABC):
    """
    Abstract time source.

    ``now()`` is used for persisted timestamps (and elapsed-time math against
    them), ``monotonic()`` for latency measurement and ``call_later()`` to arm
    cancellable timers on the running event loop.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Current time as a timezone-aware UTC datetime."""
        ...

    @abstractmethod
    def monotonic(self) -> float:
        """Monotonic reading in seconds."""
        ...

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        """Schedule ``callback`` after ``delay_ms`` milliseconds."""
        loop = asyncio.get_running_loop()
        return loop.call_later(max(delay_ms, 0) / 1000, callback)

    def elapsed_ms(self, since: datetime) -> float:
        """Milliseconds elapsed between ``since`` and ``now()``."""
        return (self.now() - since).total_seconds() * 1000


class SystemClock(Clock):
    """Wall clock backed by the OS."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def monotonic(self) -> float:
        return time.monotonic()


system_clock = SystemClock()
