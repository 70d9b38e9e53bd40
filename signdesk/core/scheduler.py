"""Timer abstraction used by the poll supervisor."""
from __future__ import annotations

import asyncio
from typing import Callable, Protocol


class TimerToken(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Contract for delayed callbacks on a monotonic clock (seconds)."""

    def now(self) -> float: ...

    def after(self, delay: float, callback: Callable[[], None]) -> TimerToken: ...


class AsyncioScheduler:
    """Scheduler backed by the running asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def after(self, delay: float, callback: Callable[[], None]) -> TimerToken:
        return self.loop.call_later(max(delay, 0.0), callback)


__all__ = ["AsyncioScheduler", "Scheduler", "TimerToken"]
