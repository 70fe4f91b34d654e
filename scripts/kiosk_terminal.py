#!/usr/bin/env python3
"""
Text-mode kiosk terminal.

Reads KIOSK_API_URL, KIOSK_SECRET and KIOSK_BRANCH_ID from the environment
or .env file. Run from project root: python scripts/kiosk_terminal.py
"""

import asyncio
import getpass
import os
import queue
import sys
import threading

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

from src.kiosk import KioskClient, KioskMode, KioskSession, KioskSettings, KioskState
from src.kiosk.screens import render
from src.observability import configure_logging

MODES = {"1": KioskMode.CHECK_IN, "2": KioskMode.CHECK_OUT}


class StdinReader:
    """Serves one console read at a time from a daemon thread. EOF reads as None.

    Reads happen on demand rather than line by line so the PIN can go through
    getpass and never echo.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self._loop = loop
        self._requests: queue.Queue = queue.Queue()
        self._pending: asyncio.Future | None = None
        threading.Thread(target=self._serve, daemon=True).start()

    def _serve(self) -> None:
        while True:
            future, label, secret = self._requests.get()
            try:
                value = getpass.getpass(label) if secret else input(label)
            except EOFError:
                value = None
            self._loop.call_soon_threadsafe(future.set_result, value)

    def read(self, label: str, secret: bool = False) -> asyncio.Future:
        if self._pending is not None and not self._pending.done():
            # The thread is still blocked on an earlier line read; that line answers this one.
            print(label, end="", flush=True)
            return self._pending
        future = self._loop.create_future()
        self._requests.put((future, label, secret))
        self._pending = future
        return future


def _draw(session: KioskSession, branch_label: str | None) -> None:
    print("\n" + "=" * 40)
    print(render(session, branch_label))


async def run(settings: KioskSettings) -> None:
    reader = StdinReader(asyncio.get_running_loop())

    with KioskClient(settings) as client:
        session = KioskSession(
            client,
            settings,
            on_change=lambda s: _draw(s, settings.branch_label),
        )
        try:
            while True:
                _draw(session, settings.branch_label)
                choice = await reader.read("> ")
                if choice is None:
                    break
                mode = MODES.get(choice.strip())
                if mode is None:
                    continue

                student_code = await reader.read("Student ID: ")
                pin = await reader.read("PIN: ", secret=True) if student_code is not None else None
                if pin is None:
                    break
                await session.submit(mode, student_code, pin)

                # Result screen: any input dismisses early, otherwise the countdown returns home.
                if session.state is not KioskState.IDLE:
                    next_line = reader.read("")
                    idle = asyncio.ensure_future(session.wait_idle())
                    done, _ = await asyncio.wait({next_line, idle}, return_when=asyncio.FIRST_COMPLETED)
                    idle.cancel()
                    if next_line in done:
                        session.dismiss()
                        if next_line.result() is None:
                            break
        finally:
            await session.close()


def main():
    settings = KioskSettings()
    configure_logging(os.getenv("LOG_LEVEL", "WARNING"))
    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        print("\nKiosk stopped.")


if __name__ == "__main__":
    main()
