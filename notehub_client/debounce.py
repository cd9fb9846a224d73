from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Generic, Literal, Protocol, TypeVar

logger = logging.getLogger("notehub.debounce")

T = TypeVar("T")

DebounceState = Literal["idle", "waiting", "fired"]


class TimerHandle(Protocol):
    def cancel(self) -> Any:
        ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle:
        ...


class Debouncer(Generic[T]):
    """
    Emits only the last pushed value once ``delay`` seconds pass without a new push.

    The scheduler defaults to the running asyncio loop; tests inject a fake
    clock with the same ``call_later`` signature.
    """

    def __init__(
        self,
        callback: Callable[[T], None],
        *,
        delay: float = 0.3,
        scheduler: Scheduler | None = None,
    ) -> None:
        self._callback = callback
        self.delay = delay
        self._scheduler = scheduler
        self._handle: TimerHandle | None = None
        self._pending: T | None = None
        self.state: DebounceState = "idle"
        self.disposed = False

    def push(self, value: T) -> None:
        if self.disposed:
            logger.debug("debounce_push_after_dispose")
            return
        self._cancel_timer()
        self._pending = value
        scheduler = self._scheduler or asyncio.get_running_loop()
        self._handle = scheduler.call_later(self.delay, self._fire)
        self.state = "waiting"

    def flush(self) -> None:
        if self.state == "waiting":
            self._cancel_timer()
            self._fire()

    def cancel(self) -> None:
        self._cancel_timer()
        self._pending = None
        self.state = "idle"

    def dispose(self) -> None:
        self.cancel()
        self.disposed = True

    def _cancel_timer(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        if self.disposed or self.state != "waiting":
            return
        value = self._pending
        self._handle = None
        self._pending = None
        self.state = "fired"
        self._callback(value)
