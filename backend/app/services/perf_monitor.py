"""Performance monitoring utilities for the pricing engines."""
import time
import logging
import threading
import functools
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger("charter-api.perf")


def timed(func: Callable) -> Callable:
    """
    Decorator that measures an engine call, logs it at DEBUG and records it
    on the module-level tracker. Exceptions are counted, then re-raised.

    Usage::

        @timed
        def compute_something():
            ...
    """
    name = func.__qualname__

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        except Exception:
            tracker.record_error(name)
            raise
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 3)
            tracker.record_call(name, duration_ms)
            logger.debug(
                "function timed",
                extra={
                    "operation": name,
                    "duration_ms": duration_ms,
                },
            )
    return wrapper


class PerformanceTracker:
    """
    Thread-safe in-memory tracker for engine-level metrics.

    Tracks:
    - Call count and summed duration per operation
    - Average and slowest duration
    - Error count broken down by operation
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._call_counts: Dict[str, int] = {}   # operation -> count
        self._total_ms: Dict[str, float] = {}    # operation -> summed duration_ms
        self._error_counts: Dict[str, int] = {}  # operation -> count
        self._slowest_operation: Optional[str] = None
        self._slowest_operation_ms: float = 0.0

    # ------------------------------------------------------------------
    # Public write API
    # ------------------------------------------------------------------

    def record_call(self, operation: str, duration_ms: float) -> None:
        with self._lock:
            self._call_counts[operation] = self._call_counts.get(operation, 0) + 1
            self._total_ms[operation] = self._total_ms.get(operation, 0.0) + duration_ms
            if duration_ms > self._slowest_operation_ms:
                self._slowest_operation_ms = duration_ms
                self._slowest_operation = operation

    def record_error(self, operation: str) -> None:
        with self._lock:
            self._error_counts[operation] = self._error_counts.get(operation, 0) + 1

    # ------------------------------------------------------------------
    # Public read API
    # ------------------------------------------------------------------

    def get_metrics(self) -> Dict[str, Any]:
        """
        Return a snapshot of all collected metrics.

        Returns
        -------
        dict with keys:
            calls_total             : int
            calls_by_operation      : dict  {operation: count}
            avg_duration_ms         : dict  {operation: avg_ms}
            slowest_operation       : str | None
            slowest_operation_ms    : float
            error_count             : int
            error_count_by_operation: dict  {operation: count}
        """
        with self._lock:
            calls = dict(self._call_counts)
            avgs = {
                op: round(self._total_ms[op] / count, 3)
                for op, count in self._call_counts.items()
            }
            return {
                "calls_total": sum(calls.values()),
                "calls_by_operation": calls,
                "avg_duration_ms": avgs,
                "slowest_operation": self._slowest_operation,
                "slowest_operation_ms": round(self._slowest_operation_ms, 3),
                "error_count": sum(self._error_counts.values()),
                "error_count_by_operation": dict(self._error_counts),
            }

    def reset(self) -> None:
        """Reset all counters (useful in tests)."""
        with self._lock:
            self._call_counts.clear()
            self._total_ms.clear()
            self._error_counts.clear()
            self._slowest_operation = None
            self._slowest_operation_ms = 0.0


# Module-level singleton; import this instance everywhere else.
tracker = PerformanceTracker()
