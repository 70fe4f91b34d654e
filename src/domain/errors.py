from __future__ import annotations

from fastapi import status


class AppError(Exception):
    """Base error for expected failures."""

    def __init__(self, message: str, *, http_status: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(message)
        self.message = message
        self.http_status = http_status


class Unauthorized(AppError):
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, http_status=status.HTTP_401_UNAUTHORIZED)


class KioskError(AppError):
    """Kiosk failure carrying a machine-readable code for the terminal."""

    def __init__(self, code: str, message: str, *, http_status: int, data: dict | None = None):
        super().__init__(message, http_status=http_status)
        self.code = code
        self.data = data

    def to_body(self) -> dict:
        body = {"success": False, "error": self.code, "message": self.message}
        if self.data is not None:
            body["data"] = self.data
        return body
