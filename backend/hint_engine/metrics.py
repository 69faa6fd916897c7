from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import asdict, dataclass
from typing import Any


_lock = threading.Lock()
_COUNTER_NAMES = (
    "sessions_started",
    "sessions_paused",
    "sessions_resumed",
    "sessions_completed",
    "sessions_cancelled",
    "sessions_failed",
    "transcript_events",
    "hints_requested",
    "hints_succeeded",
    "hints_failed",
    "hints_rejected",
    "hints_cancelled",
    "hints_detached",
    "relay_publish_failures",
    "persistence_failures",
    "latency_total_ms",
    "latency_samples",
)
_metrics: dict[str, float] = {name: 0.0 for name in _COUNTER_NAMES}


def increment_metric(name: str, amount: float = 1.0) -> None:
    key = str(name or "").strip()
    if not key:
        return
    with _lock:
        _metrics[key] = float(_metrics.get(key, 0.0)) + float(amount)


def observe_latency_ms(value_ms: float) -> None:
    latency = max(0.0, float(value_ms or 0.0))
    with _lock:
        _metrics["latency_total_ms"] = float(_metrics.get("latency_total_ms", 0.0)) + latency
        _metrics["latency_samples"] = float(_metrics.get("latency_samples", 0.0)) + 1.0


def reset_metrics() -> None:
    with _lock:
        for key in list(_metrics):
            _metrics[key] = 0.0


def get_metrics_snapshot(extra: dict[str, Any] | None = None) -> dict[str, Any]:
    with _lock:
        data = dict(_metrics)

    latency_samples = max(1.0, float(data.get("latency_samples") or 0.0))
    payload: dict[str, Any] = {"generated_at": time.time()}
    for key, value in data.items():
        if key == "latency_total_ms":
            payload[key] = float(value)
        else:
            payload[key] = int(value)
    payload["avg_latency_ms"] = round(float(data.get("latency_total_ms") or 0.0) / latency_samples, 2)

    if extra:
        payload.update(extra)
    return payload


@dataclass
class HintLogEntry:
    timestamp: float
    mode: str
    provider: str
    response_time_ms: float
    success: bool
    banned_phrase_hits: int = 0
    language_match: bool | None = None
    error: str | None = None


class HintMetricsLog:
    """Bounded per-request log of hint quality and latency."""

    def __init__(self, max_history: int = 100):
        self._entries: deque[HintLogEntry] = deque(maxlen=max(1, int(max_history)))
        self._lock = threading.Lock()

    def log(self, entry: HintLogEntry) -> HintLogEntry:
        with self._lock:
            self._entries.append(entry)
        if entry.success:
            observe_latency_ms(entry.response_time_ms)
        return entry

    def __len__(self) -> int:
        return len(self._entries)

    def summary(self) -> dict[str, Any]:
        with self._lock:
            entries = list(self._entries)

        count = len(entries)
        if not count:
            return {
                "total_requests": 0,
                "avg_response_time_ms": 0.0,
                "banned_phrase_hits": 0,
                "success_rate": 0.0,
                "language_match_rate": 0.0,
            }

        judged = [item for item in entries if item.language_match is not None]
        return {
            "total_requests": count,
            "avg_response_time_ms": round(sum(item.response_time_ms for item in entries) / count, 2),
            "banned_phrase_hits": sum(item.banned_phrase_hits for item in entries),
            "success_rate": round(sum(1 for item in entries if item.success) / count, 4),
            "language_match_rate": (
                round(sum(1 for item in judged if item.language_match) / len(judged), 4) if judged else 0.0
            ),
        }

    def recent_errors(self, limit: int = 5) -> list[dict[str, Any]]:
        with self._lock:
            failed = [item for item in self._entries if not item.success]
        if limit <= 0:
            return []
        return [
            {"mode": item.mode, "error": item.error, "time": item.timestamp}
            for item in failed[-int(limit):]
        ]

    def entries(self) -> list[dict[str, Any]]:
        with self._lock:
            return [asdict(item) for item in self._entries]
