# ─────────────────────────────────────────────────────────────────────────────
# Rate Limiting — fixed-window admission per client identifier
# ─────────────────────────────────────────────────────────────────────────────
# Two layers, mirroring how the routes are protected:
#
#   http_limiter          slowapi, keyed by remote address. Coarse DoS guard
#                         applied as a route decorator.
#   FixedWindowRateLimiter
#                         The generation budget. Keyed by X-Forwarded-For and
#                         checked by the admit dependency before the body is
#                         even parsed.
#
# Fixed window, not sliding: a client can land up to 2x limit across a window
# boundary (tail of one window + head of the next). That is the policy.
# ─────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import structlog
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from productshot.config import get_settings

logger = structlog.get_logger(__name__)

UNKNOWN_CLIENT = "unknown"

# Extracted to this module so route modules can import the decorator without
# importing main.py.
http_limiter = Limiter(key_func=get_remote_address)


@dataclass
class RateRecord:
    """Admission state for one identifier inside its current window."""

    count: int
    window_reset_at: int  # epoch milliseconds


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    remaining: int
    reset_in_ms: int
    limit: int

    @property
    def retry_after_seconds(self) -> int:
        return math.ceil(self.reset_in_ms / 1000)


@runtime_checkable
class RateStore(Protocol):
    """Storage for RateRecords. In-memory for one process; a shared
    TTL store is needed to keep one global budget across instances."""

    def get(self, identifier: str) -> RateRecord | None: ...

    def set(self, identifier: str, record: RateRecord) -> None: ...

    def sweep(self, now_ms: int) -> int: ...

    def __len__(self) -> int: ...


class InMemoryRateStore:
    """Process-local dict. Safe without a lock: one event loop per process."""

    def __init__(self) -> None:
        self._records: dict[str, RateRecord] = {}

    def get(self, identifier: str) -> RateRecord | None:
        return self._records.get(identifier)

    def set(self, identifier: str, record: RateRecord) -> None:
        self._records[identifier] = record

    def sweep(self, now_ms: int) -> int:
        """Drop records whose window has ended. Returns how many went."""
        stale = [key for key, rec in self._records.items() if now_ms >= rec.window_reset_at]
        for key in stale:
            del self._records[key]
        return len(stale)

    def __len__(self) -> int:
        return len(self._records)


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


class FixedWindowRateLimiter:
    """Counts admitted requests per identifier inside a fixed window.

    check() never raises and never does I/O. An expired record and a
    missing record are treated identically, which is what makes the
    periodic sweep invisible to callers.
    """

    def __init__(
        self,
        limit: int = 20,
        window_ms: int = 60_000,
        store: RateStore | None = None,
        clock: Callable[[], int] | None = None,
        sweep_interval_ms: int = 300_000,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if window_ms < 1:
            raise ValueError("window_ms must be positive")
        self.limit = limit
        self.window_ms = window_ms
        self._store: RateStore = store if store is not None else InMemoryRateStore()
        self._clock = clock or _wall_clock_ms
        self._sweep_interval_ms = sweep_interval_ms
        self._next_sweep_at = self._clock() + sweep_interval_ms

    @property
    def tracked_identifiers(self) -> int:
        return len(self._store)

    def check(self, identifier: str) -> RateDecision:
        now = self._clock()
        self._maybe_sweep(now)

        record = self._store.get(identifier)

        if record is None or now >= record.window_reset_at:
            self._store.set(identifier, RateRecord(count=1, window_reset_at=now + self.window_ms))
            return RateDecision(
                allowed=True,
                remaining=self.limit - 1,
                reset_in_ms=self.window_ms,
                limit=self.limit,
            )

        reset_in_ms = record.window_reset_at - now

        if record.count >= self.limit:
            return RateDecision(allowed=False, remaining=0, reset_in_ms=reset_in_ms, limit=self.limit)

        record.count += 1
        # Re-store so non-dict backends see the increment.
        self._store.set(identifier, record)
        return RateDecision(
            allowed=True,
            remaining=self.limit - record.count,
            reset_in_ms=reset_in_ms,
            limit=self.limit,
        )

    def _maybe_sweep(self, now: int) -> None:
        if now < self._next_sweep_at:
            return
        self._next_sweep_at = now + self._sweep_interval_ms
        removed = self._store.sweep(now)
        if removed:
            logger.debug("rate_records_swept", removed=removed, remaining=len(self._store))


def client_identifier(request: Request) -> str:
    """Rate-limit key: the raw X-Forwarded-For value.

    Requests without the header all share the "unknown" bucket.
    """
    forwarded = request.headers.get("x-forwarded-for", "").strip()
    return forwarded or UNKNOWN_CLIENT


def http_limit_value() -> str:
    """Outer guard limit, read per request so tests and reloads see changes."""
    return get_settings().http_rate_limit
