# ─────────────────────────────────────────────────────────────────────────────
# Studio Metrics — thread-safe request/task tracking
# ─────────────────────────────────────────────────────────────────────────────
# Tracks admissions, rejections, per-task outcomes by failure code, and
# upstream latency. Exposed via GET /metrics and /metrics/prometheus.
#
# Bounded: latency history uses deque(maxlen=1000), auto-evicts oldest.
# ─────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import threading
import time
from collections import Counter, deque
from dataclasses import dataclass, field
from typing import Any


@dataclass
class StudioMetrics:
    """Thread-safe generation metrics."""

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    requests_admitted: int = 0
    requests_rejected: int = 0
    batches_total: int = 0
    tasks_succeeded: int = 0
    tasks_failed: int = 0
    prompts_drafted: int = 0

    _failures_by_code: Counter[str] = field(default_factory=Counter, repr=False)

    # Bounded -- only keeps last 1000 latencies, oldest auto-evicted
    _latency_history: deque[float] = field(default_factory=lambda: deque(maxlen=1000), repr=False)

    _start_time: float = field(default_factory=time.time, repr=False)

    def record_admission(self, allowed: bool) -> None:
        with self._lock:
            if allowed:
                self.requests_admitted += 1
            else:
                self.requests_rejected += 1

    def record_batch(self) -> None:
        with self._lock:
            self.batches_total += 1

    def record_task(self, latency_ms: float, error_code: str | None = None) -> None:
        """Record one finished task. error_code=None means it succeeded."""
        with self._lock:
            self._latency_history.append(latency_ms)
            if error_code is None:
                self.tasks_succeeded += 1
            else:
                self.tasks_failed += 1
                self._failures_by_code[error_code] += 1

    def record_prompt(self) -> None:
        with self._lock:
            self.prompts_drafted += 1

    def failures_by_code(self) -> dict[str, int]:
        with self._lock:
            return dict(self._failures_by_code)

    def to_dict(self) -> dict[str, Any]:
        """Serialize metrics for the /metrics endpoint."""
        with self._lock:
            latencies = sorted(self._latency_history)
            n = len(latencies)
            tasks_total = self.tasks_succeeded + self.tasks_failed
            return {
                "requests_admitted": self.requests_admitted,
                "requests_rejected": self.requests_rejected,
                "batches_total": self.batches_total,
                "tasks_succeeded": self.tasks_succeeded,
                "tasks_failed": self.tasks_failed,
                "task_success_rate": round(self.tasks_succeeded / max(tasks_total, 1), 3),
                "failures_by_code": dict(self._failures_by_code),
                "prompts_drafted": self.prompts_drafted,
                "latency_p50_ms": round(latencies[n // 2], 1) if n else 0,
                "latency_p95_ms": round(latencies[int(n * 0.95)], 1) if n else 0,
                "latency_mean_ms": round(sum(latencies) / n, 1) if n else 0,
                "uptime_seconds": int(time.time() - self._start_time),
            }
