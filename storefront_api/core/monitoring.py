"""
Monitoring utilities

In-memory request and quote metrics:
- Request metrics (latency, error counts)
- Quote outcome counters (live, fallback, freight, failures)

Exposed as JSON on /metrics/json for scraping or debugging.
"""
import logging
import re
import time
from collections import deque
from datetime import datetime, timezone, timedelta
from typing import Dict, Optional
from threading import Lock

logger = logging.getLogger(__name__)


class MetricsCollector:
    """
    In-memory metrics collector with rolling windows.

    Collects:
    - Counters (monotonically increasing values)
    - Histograms (distribution of values)
    """

    def __init__(self, max_observations: int = 10000):
        self._counters: Dict[str, int] = {}
        self._histograms: Dict[str, deque] = {}
        self._max_observations = max_observations
        self._lock = Lock()
        self._start_time = datetime.now(timezone.utc)

    def increment(self, name: str, value: int = 1, labels: Optional[Dict[str, str]] = None) -> None:
        """Increment a counter metric."""
        key = self._make_key(name, labels)
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + value

    def observe(self, name: str, value: float, labels: Optional[Dict[str, str]] = None) -> None:
        """Record a histogram observation (e.g., latency)."""
        key = self._make_key(name, labels)
        now = datetime.now(timezone.utc)
        with self._lock:
            if key not in self._histograms:
                self._histograms[key] = deque(maxlen=self._max_observations)
            self._histograms[key].append((now, value))

    def _make_key(self, name: str, labels: Optional[Dict[str, str]]) -> str:
        if not labels:
            return name
        label_str = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
        return f"{name}{{{label_str}}}"

    def get_counter(self, name: str, labels: Optional[Dict[str, str]] = None) -> int:
        """Get counter value."""
        return self._counters.get(self._make_key(name, labels), 0)

    def get_histogram_stats(self, name: str, window_seconds: int = 300) -> Dict:
        """Aggregate every labelled series of a histogram over a time window."""
        cutoff = datetime.now(timezone.utc) - timedelta(seconds=window_seconds)
        with self._lock:
            values = [
                v
                for key, series in self._histograms.items()
                if key == name or key.startswith(name + "{")
                for ts, v in series
                if ts > cutoff
            ]

        if not values:
            return {"count": 0, "avg": 0, "min": 0, "max": 0, "p95": 0}

        values.sort()
        p95_idx = min(int(len(values) * 0.95), len(values) - 1)
        return {
            "count": len(values),
            "avg": sum(values) / len(values),
            "min": values[0],
            "max": values[-1],
            "p95": values[p95_idx],
        }

    def get_all_metrics(self) -> Dict:
        """Get all metrics for export/display."""
        now = datetime.now(timezone.utc)
        with self._lock:
            counters = dict(self._counters)
        return {
            "uptime_seconds": (now - self._start_time).total_seconds(),
            "counters": counters,
            "request_latency": self.get_histogram_stats("http_request_duration_seconds"),
            "rate_provider_latency": self.get_histogram_stats("rate_provider_duration_seconds"),
            "collected_at": now.isoformat(),
        }

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._histograms.clear()


# Global metrics collector
metrics = MetricsCollector()


class RequestMetricsMiddleware:
    """
    Pure ASGI middleware to collect request metrics.

    Usage in main.py:
        app.add_middleware(RequestMetricsMiddleware)
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        status_code = 500

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            duration = time.perf_counter() - start_time
            labels = {
                "method": scope.get("method", "UNKNOWN"),
                "path": self._normalize_path(scope.get("path", "/")),
                "status": str(status_code),
            }
            metrics.observe("http_request_duration_seconds", duration, labels)
            metrics.increment("http_requests_total", labels=labels)
            if status_code >= 400:
                metrics.increment("http_errors_total", labels={"status": str(status_code)})

    def _normalize_path(self, path: str) -> str:
        """Normalize path by replacing IDs with placeholders."""
        return re.sub(r'/\d+', '/:id', path)
