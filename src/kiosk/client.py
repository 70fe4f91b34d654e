from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from src.kiosk.config import KioskSettings
from src.observability import incr_metric, log_event


NETWORK_ERROR = "NETWORK_ERROR"
NETWORK_ERROR_MESSAGE = "Unable to connect. Please try again."
REQUEST_FAILED = "REQUEST_FAILED"
REQUEST_FAILED_MESSAGE = "Operation failed. Please try again."


class NetworkError(Exception):
    """The backend could not be reached or answered with something unreadable."""


class StudentSummary(BaseModel):
    model_config = ConfigDict(extra="ignore")

    student_id: str
    full_name: str
    student_code: str


class AttendanceSnapshot(BaseModel):
    model_config = ConfigDict(extra="ignore")

    attendance_id: str
    student: StudentSummary
    checkin_time: datetime
    checkout_time: datetime | None = None
    duration_minutes: int | None = None
    branch_name: str | None = None


class KioskResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    success: bool
    message: str | None = None
    error: str | None = None
    data: AttendanceSnapshot | None = None

    @classmethod
    def network_error(cls) -> "KioskResult":
        return cls(success=False, error=NETWORK_ERROR, message=NETWORK_ERROR_MESSAGE)

    @classmethod
    def from_body(cls, body: Any) -> "KioskResult":
        if not isinstance(body, dict):
            return cls(success=False, error=REQUEST_FAILED, message=REQUEST_FAILED_MESSAGE)
        if body.get("success"):
            return cls.model_validate(body)

        # Failure bodies may carry unrelated data (e.g. the open session's checkin_time).
        message = body.get("message")
        if not message:
            detail = body.get("detail")
            message = detail if isinstance(detail, str) else REQUEST_FAILED_MESSAGE
        return cls(success=False, error=body.get("error") or REQUEST_FAILED, message=message)


class KioskClient:
    """HTTP client for one kiosk terminal. Authenticates with the branch secret, not a user token."""

    def __init__(self, settings: KioskSettings, transport: httpx.BaseTransport | None = None):
        self._settings = settings
        self._client = httpx.Client(
            base_url=settings.api_url,
            timeout=settings.timeout_seconds,
            headers={
                "Content-Type": "application/json",
                "X-Kiosk-Secret": settings.secret,
            },
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "KioskClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def check_in(self, student_code: str, pin: str) -> KioskResult:
        return self._punch("checkin", student_code, pin)

    def check_out(self, student_code: str, pin: str) -> KioskResult:
        return self._punch("checkout", student_code, pin)

    def _post(self, path: str, payload: dict[str, Any]) -> Any:
        try:
            response = self._client.post(path, json=payload)
        except httpx.HTTPError as exc:
            raise NetworkError(str(exc) or type(exc).__name__) from exc
        try:
            return response.json()
        except ValueError as exc:
            raise NetworkError(f"Unreadable response (HTTP {response.status_code})") from exc

    def _punch(self, action: str, student_code: str, pin: str) -> KioskResult:
        payload = {
            "student_code": student_code,
            "pin": pin,
            "branch_id": self._settings.branch_id,
        }
        try:
            body = self._post(f"/kiosk/{action}", payload)
            result = KioskResult.from_body(body)
        except (NetworkError, ValidationError) as exc:
            incr_metric("kiosk_client.request", action=action, outcome=NETWORK_ERROR)
            log_event("kiosk_client_network_error", level=logging.WARNING, action=action, error=str(exc))
            return KioskResult.network_error()

        incr_metric("kiosk_client.request", action=action, outcome="success" if result.success else result.error)
        return result
