from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable
from enum import Enum

from src.kiosk.client import KioskClient, KioskResult
from src.kiosk.config import KioskSettings
from src.kiosk.timer import Countdown, Sleep
from src.observability import log_event

PIN_PATTERN = re.compile(r"^\d{4,6}$")
VALIDATION_ERROR = "VALIDATION_ERROR"
VALIDATION_MESSAGE = "Enter your Student ID and a 4-6 digit PIN."


class KioskState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    ERROR = "error"


class KioskMode(str, Enum):
    CHECK_IN = "checkin"
    CHECK_OUT = "checkout"


class KioskSession:
    """
    Screen state for one kiosk terminal.

    Idle -> Submitting -> Success | Error -> Idle. Result screens return to
    Idle on their own after a countdown, or earlier when dismissed. Only one
    submission can be in flight at a time.
    """

    def __init__(
        self,
        client: KioskClient,
        settings: KioskSettings,
        *,
        on_change: Callable[["KioskSession"], None] | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self._client = client
        self._settings = settings
        self._on_change = on_change
        self._sleep = sleep
        self._countdown: Countdown | None = None
        self._idle = asyncio.Event()
        self._idle.set()
        self.state = KioskState.IDLE
        self.mode: KioskMode | None = None
        self.result: KioskResult | None = None

    @property
    def seconds_remaining(self) -> int | None:
        if self._countdown is None:
            return None
        return self._countdown.remaining

    async def submit(self, mode: KioskMode, student_code: str, pin: str) -> KioskResult:
        if self.state is not KioskState.IDLE:
            raise RuntimeError(f"Cannot submit while {self.state.value}")

        self.mode = mode
        code = student_code.strip()
        pin = pin.strip()
        if not code or not PIN_PATTERN.match(pin):
            result = KioskResult(success=False, error=VALIDATION_ERROR, message=VALIDATION_MESSAGE)
            self._show(KioskState.ERROR, result, self._settings.error_countdown_seconds)
            return result

        self._set_state(KioskState.SUBMITTING)
        call = self._client.check_in if mode is KioskMode.CHECK_IN else self._client.check_out
        try:
            result = await asyncio.to_thread(call, code, pin)
        except Exception as exc:
            log_event(
                "kiosk_punch_crashed",
                level=logging.WARNING,
                mode=mode.value,
                error=f"{type(exc).__name__}: {exc}",
                branch_id=self._settings.branch_id,
            )
            result = KioskResult.network_error()

        if result.success:
            self._show(KioskState.SUCCESS, result, self._settings.success_countdown_seconds)
        else:
            log_event(
                "kiosk_punch_failed",
                level=logging.INFO,
                mode=mode.value,
                error=result.error,
                branch_id=self._settings.branch_id,
            )
            self._show(KioskState.ERROR, result, self._settings.error_countdown_seconds)
        return result

    def dismiss(self) -> None:
        """Done / Try Again / Cancel: leave the result screen before the countdown ends."""
        if self._countdown is not None:
            self._countdown.finish()
        elif self.state in (KioskState.SUCCESS, KioskState.ERROR):
            self._return_to_idle()

    async def wait_idle(self) -> None:
        await self._idle.wait()

    async def close(self) -> None:
        countdown = self._countdown
        if countdown is not None:
            countdown.cancel()
            await countdown.wait()
        self._countdown = None

    def _show(self, state: KioskState, result: KioskResult, seconds: int) -> None:
        if self._countdown is not None:
            self._countdown.cancel()
        self.result = result
        self._countdown = Countdown(
            seconds,
            self._return_to_idle,
            on_tick=lambda _remaining: self._notify(),
            sleep=self._sleep,
        )
        self._set_state(state)
        self._countdown.start()

    def _return_to_idle(self) -> None:
        self._countdown = None
        self.result = None
        self.mode = None
        self._set_state(KioskState.IDLE)

    def _set_state(self, state: KioskState) -> None:
        self.state = state
        if state is KioskState.IDLE:
            self._idle.set()
        else:
            self._idle.clear()
        self._notify()

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self)
