"""
Metrics Module: drop-reason counters, pipeline counters, histograms.

All components share one process-wide collector:

    from pole_core.metrics import get_metrics

    metrics = get_metrics()
    metrics.increment('scans_in')
    metrics.increment_drop('ambiguous_pose')
    metrics.record_histogram('newton_iterations', 4)
"""

import threading

from .counters import MetricsCollector, CounterSnapshot

_global_metrics = None
_global_lock = threading.Lock()


def get_metrics() -> MetricsCollector:
    """Process-wide collector, created on first use."""
    global _global_metrics
    with _global_lock:
        if _global_metrics is None:
            _global_metrics = MetricsCollector()
        return _global_metrics


def reset_metrics():
    """Replace the process-wide collector with a fresh one."""
    global _global_metrics
    with _global_lock:
        _global_metrics = MetricsCollector()


__all__ = ['MetricsCollector', 'CounterSnapshot', 'get_metrics', 'reset_metrics']
