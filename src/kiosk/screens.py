from __future__ import annotations

from datetime import datetime

from src.kiosk.session import KioskMode, KioskSession, KioskState

SUPPORT_HINT = "Need help? Contact reception"


def format_duration(minutes: int) -> str:
    """125 -> '2h 5m', 45 -> '45 minutes'."""
    hours, mins = divmod(minutes, 60)
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins} minutes"


def format_time(value: datetime) -> str:
    return value.astimezone().strftime("%I:%M %p")


def render_idle(branch_label: str | None = None) -> str:
    lines = ["Student Attendance"]
    if branch_label:
        lines.append(branch_label)
    lines += ["", "[1] Check In", "[2] Check Out"]
    return "\n".join(lines)


def render_submitting(mode: KioskMode | None) -> str:
    if mode is KioskMode.CHECK_OUT:
        return "Checking out..."
    return "Checking in..."


def render_success(session: KioskSession) -> str:
    result = session.result
    lines = ["Success!"]
    if result is not None and result.data is not None:
        snapshot = result.data
        name = snapshot.student.full_name
        if session.mode is KioskMode.CHECK_OUT:
            lines.append(f"Goodbye, {name}")
            if snapshot.checkout_time is not None:
                lines.append(f"Checked out at {format_time(snapshot.checkout_time)}")
            if snapshot.duration_minutes is not None:
                lines.append(f"Duration: {format_duration(snapshot.duration_minutes)}")
        else:
            lines.append(f"Welcome, {name}")
            lines.append(f"Checked in at {format_time(snapshot.checkin_time)}")
        if snapshot.branch_name:
            lines.append(snapshot.branch_name)
    elif result is not None and result.message:
        lines.append(result.message)
    lines += ["", _countdown_line(session), "[Enter] Done"]
    return "\n".join(lines)


def render_error(session: KioskSession) -> str:
    result = session.result
    message = result.message if result is not None and result.message else "Operation failed"
    lines = [
        "Oops!",
        message,
        "",
        SUPPORT_HINT,
        "",
        _countdown_line(session),
        "[Enter] Try Again",
    ]
    return "\n".join(lines)


def render(session: KioskSession, branch_label: str | None = None) -> str:
    if session.state is KioskState.SUBMITTING:
        return render_submitting(session.mode)
    if session.state is KioskState.SUCCESS:
        return render_success(session)
    if session.state is KioskState.ERROR:
        return render_error(session)
    return render_idle(branch_label)


def _countdown_line(session: KioskSession) -> str:
    remaining = session.seconds_remaining
    if remaining is None:
        return ""
    unit = "second" if remaining == 1 else "seconds"
    return f"Returning to home in {remaining} {unit}..."
