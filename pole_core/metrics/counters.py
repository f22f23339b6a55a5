"""
Metrics counters and histograms implementation.

Provides thread-safe counters for:
- Scan frame counts (received, processed, overwritten before use)
- Drop reasons, one per recoverable pipeline error
- Estimator statistics (pairs solved, holds, occluded landmarks)
- Histograms (inflation steps, Newton iterations, cycle time)

Every dropped observation, pair or frame is counted under a reason code.
"""

import logging
import threading
import time
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Optional

import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class CounterSnapshot:
    """Snapshot of counter state at a point in time."""

    timestamp: float
    counters: Dict[str, int]
    drop_reasons: Dict[str, int]
    histograms: Dict[str, List[float]]

    def total_dropped(self) -> int:
        """Total items dropped across all reasons."""
        return sum(self.drop_reasons.values())

    def hold_rate(self) -> float:
        """Share of localization cycles that kept the previous pose (0..1)."""
        holds = self.counters.get('pose_holds', 0)
        attempts = holds + self.counters.get('pose_estimates', 0)
        if attempts == 0:
            return 0.0
        return holds / attempts


class MetricsCollector:
    """
    Thread-safe metrics collection.

    The transport thread and the control loop both record into the same
    collector, so every access goes through one lock.

    Usage:
        collector = MetricsCollector()
        collector.increment('scans_in')
        collector.increment_drop('ambiguous_pose')
        collector.record_histogram('newton_iterations', 3)

        snapshot = collector.snapshot()
        print(f"Total dropped: {snapshot.total_dropped()}")
    """

    DROP_REASONS = {
        'parse_error': 'Malformed scan message',
        'stale_frame': 'Frame overwritten before the loop consumed it',
        'non_finite_range': 'Reflective beam with NaN/inf/negative range',
        'insufficient_initiation_data': 'Too few cycles in initiation window',
        'insufficient_landmarks': 'Fewer than two landmarks at initiation',
        'unmatched_observation': 'Observation with no landmark to match',
        'ambiguous_pose': 'Pose roots could not be disambiguated',
        'degenerate_geometry': 'Range circles never intersect',
        'invalid_phase_transition': 'Illegal phase change requested',
    }

    # Counters grouped the way print_summary reports them
    SUMMARY_SECTIONS = {
        'INPUT': ['scans_in', 'scans_processed', 'observations_extracted'],
        'INITIATION': ['initiation_windows'],
        'LOCALIZATION': [
            'pose_estimates',
            'pose_pairs_solved',
            'pose_holds',
            'newton_fallbacks',
            'landmarks_occluded',
            'association_conflicts',
        ],
    }

    STANDARD_COUNTERS = [name for names in SUMMARY_SECTIONS.values() for name in names]

    def __init__(self, histogram_samples: int = 10000):
        """
        Initialize metrics collector.

        Args:
            histogram_samples: Most recent samples kept per histogram
        """
        self.histogram_samples = histogram_samples
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = defaultdict(int)
        self._drop_reasons: Dict[str, int] = defaultdict(int)
        self._histograms: Dict[str, Deque[float]] = {}
        self._start_time = time.time()

        self._init_standard_counters()

    def _init_standard_counters(self):
        """Pre-populate keys so reports are consistent from the start."""
        with self._lock:
            for counter in self.STANDARD_COUNTERS:
                self._counters.setdefault(counter, 0)
            for reason in self.DROP_REASONS:
                self._drop_reasons.setdefault(reason, 0)

    def increment(self, counter_name: str, value: int = 1):
        with self._lock:
            self._counters[counter_name] += value

    def increment_drop(self, reason: str, value: int = 1):
        """
        Count dropped items under a reason code.

        Unknown codes are still counted, but logged so they get added to
        DROP_REASONS.
        """
        if reason not in self.DROP_REASONS:
            logger.warning(f"Unknown drop reason '{reason}'")

        with self._lock:
            self._drop_reasons[reason] += value
            self._counters['items_dropped'] += value

    def get_counter(self, counter_name: str) -> int:
        """Current value of a counter (0 if never touched)."""
        with self._lock:
            return self._counters.get(counter_name, 0)

    def get_drop_count(self, reason: str) -> int:
        with self._lock:
            return self._drop_reasons.get(reason, 0)

    def record_histogram(self, histogram_name: str, value: float):
        """Append a sample; the oldest sample falls out once the histogram is full."""
        with self._lock:
            samples = self._histograms.get(histogram_name)
            if samples is None:
                samples = deque(maxlen=self.histogram_samples)
                self._histograms[histogram_name] = samples
            samples.append(float(value))

    def get_histogram_stats(self, histogram_name: str) -> Optional[Dict[str, float]]:
        """
        Summary statistics for a histogram.

        Returns:
            Dict with count, min, max, mean, median, p95, p99;
            None if nothing was recorded
        """
        with self._lock:
            samples = list(self._histograms.get(histogram_name, ()))

        if not samples:
            return None

        values = np.asarray(samples)
        median, p95, p99 = np.percentile(values, [50, 95, 99])
        return {
            'count': int(values.size),
            'min': float(values.min()),
            'max': float(values.max()),
            'mean': float(values.mean()),
            'median': float(median),
            'p95': float(p95),
            'p99': float(p99),
        }

    def snapshot(self) -> CounterSnapshot:
        """Copy of the current metrics state."""
        with self._lock:
            return CounterSnapshot(
                timestamp=time.time(),
                counters=dict(self._counters),
                drop_reasons=dict(self._drop_reasons),
                histograms={k: list(v) for k, v in self._histograms.items()},
            )

    def reset(self):
        """Zero everything (tests reset between cases)."""
        with self._lock:
            self._counters.clear()
            self._drop_reasons.clear()
            self._histograms.clear()
            self._start_time = time.time()
        self._init_standard_counters()

    def get_uptime(self) -> float:
        return time.time() - self._start_time

    def print_summary(self):
        """Print a per-stage report, as shown when the node shuts down."""
        snapshot = self.snapshot()

        print("\n" + "=" * 70)
        print(f"  METRICS SUMMARY (uptime: {self.get_uptime():.1f}s)")
        print("=" * 70)

        reported = set()
        for section, names in self.SUMMARY_SECTIONS.items():
            print(f"\n{section}:")
            for name in names:
                print(f"  {name:30s}: {snapshot.counters.get(name, 0):8d}")
                reported.add(name)

        others = sorted(set(snapshot.counters) - reported)
        if others:
            print("\nOTHER:")
            for name in others:
                print(f"  {name:30s}: {snapshot.counters[name]:8d}")

        print(f"\n  {'pose hold rate':30s}: {snapshot.hold_rate() * 100:7.1f}%")

        total_dropped = snapshot.total_dropped()
        if total_dropped > 0:
            print("\nDROP REASONS:")
            for reason, count in sorted(snapshot.drop_reasons.items()):
                if count > 0:
                    pct = (count / total_dropped) * 100
                    print(f"  {reason:30s}: {count:8d} ({pct:5.1f}%)")

        for name in sorted(snapshot.histograms):
            stats = self.get_histogram_stats(name)
            if stats:
                print(f"\n{name}: count={stats['count']}, mean={stats['mean']:.3f}, "
                      f"p95={stats['p95']:.3f}, max={stats['max']:.3f}")

        print("=" * 70 + "\n")
