from __future__ import annotations

import json
import logging
import sys
from collections import Counter
from threading import Lock
from typing import Any


logger = logging.getLogger("school_attendance")

_metrics_lock = Lock()
_metrics_counter: Counter[str] = Counter()


def configure_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt="%(asctime)s %(levelname)s %(name)s %(message)s"))
    # Replace existing handlers to avoid duplicates under reload.
    logger.handlers = [handler]
    logger.setLevel(level.upper())


def _normalize(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, dict):
        return {str(k): _normalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_normalize(v) for v in value]
    return str(value)


def metric_key(name: str, **labels: Any) -> str:
    if not labels:
        return name
    ordered = ",".join(f"{k}={labels[k]}" for k in sorted(labels))
    return f"{name}|{ordered}"


def incr_metric(name: str, value: int = 1, **labels: Any) -> None:
    key = metric_key(name, **{k: _normalize(v) for k, v in labels.items()})
    with _metrics_lock:
        _metrics_counter[key] += value


def metrics_snapshot() -> dict[str, int]:
    with _metrics_lock:
        return dict(_metrics_counter)


def reset_metrics() -> None:
    with _metrics_lock:
        _metrics_counter.clear()


def log_event(
    event: str,
    *,
    level: int = logging.INFO,
    request_id: str | None = None,
    **fields: Any,
) -> None:
    payload = {"event": event}
    if request_id:
        payload["request_id"] = request_id
    for key, value in fields.items():
        payload[key] = _normalize(value)
    logger.log(level, json.dumps(payload, sort_keys=True))
