from __future__ import annotations

import math
from datetime import datetime, timezone


def parse_timestamp(value: str | datetime) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def elapsed_minutes(checkin: str | datetime, checkout: str | datetime) -> float:
    delta = parse_timestamp(checkout) - parse_timestamp(checkin)
    return delta.total_seconds() / 60


def duration_minutes(checkin: str | datetime, checkout: str | datetime) -> int:
    """Whole minutes between check-in and check-out, rounded half up."""
    return int(math.floor(elapsed_minutes(checkin, checkout) + 0.5))


def checkout_too_soon(checkin: str | datetime, now: str | datetime, min_stay_minutes: int) -> bool:
    return elapsed_minutes(checkin, now) < min_stay_minutes


def summarize_sessions(records: list[dict]) -> dict:
    """Unique students, completed sessions and average duration over session rows."""
    unique_students: set[str] = set()
    completed = 0
    total_minutes = 0.0
    for record in records:
        unique_students.add(record["student_id"])
        if record.get("checkout_time"):
            completed += 1
            total_minutes += elapsed_minutes(record["checkin_time"], record["checkout_time"])
    average = int(math.floor(total_minutes / completed + 0.5)) if completed else 0
    return {
        "total_sessions": len(records),
        "unique_students": len(unique_students),
        "completed_sessions": completed,
        "average_duration_minutes": average,
    }
