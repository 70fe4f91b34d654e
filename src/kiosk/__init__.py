from src.kiosk.client import KioskClient, KioskResult
from src.kiosk.config import KioskSettings
from src.kiosk.session import KioskMode, KioskSession, KioskState
from src.kiosk.timer import Countdown

__all__ = [
    "Countdown",
    "KioskClient",
    "KioskMode",
    "KioskResult",
    "KioskSession",
    "KioskSettings",
    "KioskState",
]
