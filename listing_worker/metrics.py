"""
Thread-safe in-memory metrics for the listing worker.

  - Counters: clips submitted, renders by mode, errors by kind
  - Latency: render and submit durations (last 100 samples each)
  - Gauges: active renders, process start time
  - Recent errors: last 50 failures for debugging

Everything resets on restart; the renders table is the durable record.
"""

import time
import threading
from typing import Dict, List
from collections import defaultdict

_lock = threading.Lock()

_counters: Dict[str, int] = defaultdict(int)

_latency_samples: Dict[str, List[float]] = defaultdict(list)
MAX_SAMPLES = 100

_gauges: Dict[str, float] = defaultdict(float)

_recent_errors: List[dict] = []
MAX_ERRORS = 50


def inc_counter(name: str, amount: int = 1):
    """Increment a counter (e.g. 'clips.submitted', 'renders.playlist')."""
    with _lock:
        _counters[name] += amount


def record_latency(endpoint: str, duration_ms: float):
    with _lock:
        samples = _latency_samples[endpoint]
        samples.append(duration_ms)
        if len(samples) > MAX_SAMPLES:
            _latency_samples[endpoint] = samples[-MAX_SAMPLES:]


def set_gauge(name: str, value: float):
    with _lock:
        _gauges[name] = value


def record_error(endpoint: str, error_type: str, message: str, project_id: str = ""):
    """Keep a short trail of recent failures."""
    with _lock:
        _recent_errors.append({
            "timestamp": time.time(),
            "endpoint": endpoint,
            "error_type": error_type,
            "message": message[:300],
            "project_id": project_id,
        })
        if len(_recent_errors) > MAX_ERRORS:
            _recent_errors.pop(0)


def _percentiles(samples: List[float]) -> dict:
    ordered = sorted(samples)
    n = len(ordered)
    return {
        "p50": ordered[n // 2],
        "p95": ordered[int(n * 0.95)] if n >= 20 else ordered[-1],
        "avg": sum(ordered) / n,
        "count": n,
    }


def get_snapshot() -> dict:
    """Snapshot for the /metrics endpoint."""
    now = time.time()
    with _lock:
        latency = {k: _percentiles(v) for k, v in _latency_samples.items() if v}
        return {
            "timestamp": now,
            "counters": dict(_counters),
            "gauges": dict(_gauges),
            "latency": latency,
            "recent_errors": list(_recent_errors[-10:]),
            "uptime_seconds": now - _gauges.get("start_time", now),
        }


def reset():
    """Clear all collected data. Used by tests."""
    with _lock:
        _counters.clear()
        _latency_samples.clear()
        _gauges.clear()
        _recent_errors.clear()
