from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

Sleep = Callable[[float], Awaitable[None]]


class Countdown:
    """
    Auto-return timer for a kiosk result screen.

    Counts down from ``seconds`` once per ``interval`` and calls ``on_done``
    when it reaches zero. ``on_done`` runs at most once per countdown no
    matter how the screen is left: expiry, ``finish()`` (early dismissal) or
    ``cancel()`` (teardown, which never calls it).
    """

    def __init__(
        self,
        seconds: int,
        on_done: Callable[[], None],
        *,
        on_tick: Callable[[int], None] | None = None,
        sleep: Sleep = asyncio.sleep,
        interval: float = 1.0,
    ):
        if seconds < 0:
            raise ValueError("seconds must be >= 0")
        self.remaining = seconds
        self._on_done = on_done
        self._on_tick = on_tick
        self._sleep = sleep
        self._interval = interval
        self._task: asyncio.Task | None = None
        self._fired = False

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def fired(self) -> bool:
        return self._fired

    def start(self) -> None:
        if self._task is not None:
            raise RuntimeError("Countdown already started")
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while self.remaining > 0:
            await self._sleep(self._interval)
            self.remaining -= 1
            if self._on_tick is not None:
                self._on_tick(self.remaining)
        self._fire()

    def _fire(self) -> None:
        if self._fired:
            return
        self._fired = True
        self._on_done()

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def finish(self) -> None:
        """Leave the screen now through the same callback path as expiry."""
        self.cancel()
        self._fire()

    async def wait(self) -> None:
        """Wait for the countdown task to end, whether it expired or was cancelled."""
        if self._task is not None:
            await asyncio.wait({self._task})

    async def __aenter__(self) -> "Countdown":
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.cancel()
        await self.wait()
