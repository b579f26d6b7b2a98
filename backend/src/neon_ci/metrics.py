"""Call accounting for Neon API requests made during one invocation.

Calls are grouped by method and path template (ids replaced by
placeholders) so a run's summary reads like ``GET /projects/{project}/branches``
rather than one line per branch.
"""

from __future__ import annotations

import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List

# Path segments whose following segment is an identifier.
_PLACEHOLDERS = {
    "projects": "{project}",
    "branches": "{branch}",
    "roles": "{role}",
    "data-api": "{database}",
    "data_api": "{database}",
}


def path_template(path: str) -> str:
    """``/projects/p1/branches/br-x/endpoints?x=1`` -> ``/projects/{project}/branches/{branch}/endpoints``."""

    parts = path.split("?", 1)[0].split("/")
    for index in range(1, len(parts)):
        placeholder = _PLACEHOLDERS.get(parts[index - 1])
        if placeholder and parts[index]:
            parts[index] = placeholder
    return "/".join(parts)


@dataclass
class CallStats:
    count: int = 0
    total: float = 0.0
    max_value: float = 0.0
    statuses: Counter = field(default_factory=Counter)

    def record(self, status: int, duration: float) -> None:
        self.count += 1
        self.total += duration
        self.statuses[status] += 1
        if duration > self.max_value:
            self.max_value = duration

    def summary(self) -> Dict[str, object]:
        avg = self.total / self.count if self.count else 0.0
        return {
            "count": self.count,
            "avg_ms": avg * 1000.0,
            "max_ms": self.max_value * 1000.0,
            "statuses": dict(sorted(self.statuses.items())),
        }


class CallMonitor:
    def __init__(self) -> None:
        self._stats: Dict[str, CallStats] = {}
        self._lock = threading.Lock()

    def record(self, method: str, path: str, status: int, duration: float) -> None:
        key = f"{method.upper()} {path_template(path)}"
        with self._lock:
            self._stats.setdefault(key, CallStats()).record(status, duration)

    def snapshot(self) -> Dict[str, Dict[str, object]]:
        with self._lock:
            return {key: stats.summary() for key, stats in self._stats.items()}

    def statuses(self) -> Counter:
        totals: Counter = Counter()
        with self._lock:
            for stats in self._stats.values():
                totals.update(stats.statuses)
        return totals

    def reset(self) -> None:
        with self._lock:
            self._stats.clear()


monitor = CallMonitor()


def record_call(method: str, path: str, status: int, duration: float) -> None:
    monitor.record(method, path, status, duration)


def call_summary() -> Dict[str, Dict[str, object]]:
    return monitor.snapshot()


def format_call_summary() -> str:
    """One line such as ``5 (200x4, 404x1)``; status 0 is a transport error."""

    totals = monitor.statuses()
    if not totals:
        return "0"
    counts: List[str] = [f"{status}x{count}" for status, count in sorted(totals.items())]
    return f"{sum(totals.values())} ({', '.join(counts)})"


__all__ = ["CallMonitor", "call_summary", "format_call_summary", "monitor", "path_template", "record_call"]
