"""
Request Monitor
===============
Injectable observability sink for the API client.

Tracks:
- Requests sent / succeeded / failed (by status class)
- Re-authentication attempts, successes and exhausted sessions
- Transport failures
- Per-request timing (rolling window of the last 1000 calls)

Thread-safe: all methods use asyncio.Lock for safe concurrent access.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class RequestTiming:
    """Timing and outcome for a single HTTP attempt."""
    method: str = ""
    endpoint: str = ""
    status: int = 0
    elapsed_ms: float = 0.0
    is_retry: bool = False


@dataclass
class ClientMetrics:
    """Snapshot of all client metrics at a point in time."""
    # Requests
    requests_sent: int = 0
    requests_ok: int = 0
    requests_unauthorized: int = 0
    requests_failed: int = 0
    retried_requests: int = 0

    # Auth
    logins: int = 0
    reauth_attempts: int = 0
    reauth_successes: int = 0
    sessions_exhausted: int = 0

    # Transport
    network_errors: int = 0

    # Timing
    avg_request_ms: float = 0.0
    p95_request_ms: float = 0.0
    elapsed_sec: float = 0.0


class RequestMonitor:
    """
    Async-safe metrics sink for ``RequestExecutor`` and ``SessionFactory``.

    Usage::

        monitor = RequestMonitor()
        executor = RequestExecutor(factory, monitor=monitor)
        ...
        metrics = await monitor.snapshot()
        print(monitor.format_summary(metrics))
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._start_time = time.monotonic()

        self._requests_sent = 0
        self._requests_ok = 0
        self._requests_unauthorized = 0
        self._requests_failed = 0
        self._retried_requests = 0
        self._logins = 0
        self._reauth_attempts = 0
        self._reauth_successes = 0
        self._sessions_exhausted = 0
        self._network_errors = 0

        self._timings: deque[RequestTiming] = deque(maxlen=1000)
        self._progress_callback: Optional[Callable[[RequestTiming], None]] = None

    def set_progress_callback(self, callback: Callable[[RequestTiming], None]) -> None:
        """Set callback: callback(timing: RequestTiming), called per request."""
        self._progress_callback = callback

    async def record_request(self, timing: RequestTiming) -> None:
        async with self._lock:
            self._requests_sent += 1
            if timing.is_retry:
                self._retried_requests += 1
            if 200 <= timing.status < 300:
                self._requests_ok += 1
            elif timing.status == 401:
                self._requests_unauthorized += 1
            else:
                self._requests_failed += 1
            self._timings.append(timing)

        if self._progress_callback:
            try:
                self._progress_callback(timing)
            except Exception as e:
                logger.debug(f"[MONITOR] Progress callback error: {e}")

    async def record_login(self) -> None:
        async with self._lock:
            self._logins += 1

    async def record_reauth(self, success: bool) -> None:
        async with self._lock:
            self._reauth_attempts += 1
            if success:
                self._reauth_successes += 1

    async def record_exhausted(self) -> None:
        async with self._lock:
            self._sessions_exhausted += 1

    async def record_network_error(self) -> None:
        async with self._lock:
            self._network_errors += 1

    async def snapshot(self) -> ClientMetrics:
        """Take a consistent snapshot of all metrics."""
        async with self._lock:
            timings = [t.elapsed_ms for t in self._timings if t.elapsed_ms > 0]
            avg = sum(timings) / len(timings) if timings else 0.0

            p95 = 0.0
            if timings:
                sorted_t = sorted(timings)
                idx = int(len(sorted_t) * 0.95)
                p95 = sorted_t[min(idx, len(sorted_t) - 1)]

            return ClientMetrics(
                requests_sent=self._requests_sent,
                requests_ok=self._requests_ok,
                requests_unauthorized=self._requests_unauthorized,
                requests_failed=self._requests_failed,
                retried_requests=self._retried_requests,
                logins=self._logins,
                reauth_attempts=self._reauth_attempts,
                reauth_successes=self._reauth_successes,
                sessions_exhausted=self._sessions_exhausted,
                network_errors=self._network_errors,
                avg_request_ms=round(avg, 1),
                p95_request_ms=round(p95, 1),
                elapsed_sec=round(time.monotonic() - self._start_time, 2),
            )

    def format_summary(self, metrics: ClientMetrics) -> str:
        """Format a human-readable summary string."""
        lines = [
            "=" * 50,
            "  BIGCAPITAL CLIENT SUMMARY",
            "=" * 50,
            f"  Requests sent:       {metrics.requests_sent}",
            f"  Succeeded:           {metrics.requests_ok}",
            f"  Unauthorized (401):  {metrics.requests_unauthorized}",
            f"  Other failures:      {metrics.requests_failed}",
            f"  Retried requests:    {metrics.retried_requests}",
            "-" * 50,
            f"  Logins:              {metrics.logins}",
            f"  Re-auth attempts:    {metrics.reauth_attempts}",
            f"  Re-auth successes:   {metrics.reauth_successes}",
            f"  Sessions exhausted:  {metrics.sessions_exhausted}",
            f"  Network errors:      {metrics.network_errors}",
            "-" * 50,
            f"  Avg request time:    {metrics.avg_request_ms:.0f} ms",
            f"  P95 request time:    {metrics.p95_request_ms:.0f} ms",
            f"  Elapsed time:        {metrics.elapsed_sec:.1f} s",
            "=" * 50,
        ]
        return "\n".join(lines)
