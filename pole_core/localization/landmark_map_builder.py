"""
Landmark Map Builder (initiation phase).

Gathers clustered pole observations for a fixed time window while the
platform stands still, averages repeated sightings of each pole, and fixes
the absolute map frame:

- origin at the first landmark
- x-axis pointing from the first landmark to the second

The resulting landmark set is fixed for the rest of the run.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional

from pole_core.errors import InsufficientInitiationData, InsufficientLandmarksDetected
from .geometry import ScanPoint, XYPoint, polar_to_xy
from .landmark import Landmark
from .scan_clusterer import cluster_scan_points
from pole_core.metrics import get_metrics

logger = logging.getLogger(__name__)


@dataclass
class InitiationConfig:
    """
    Configuration for map initiation.

    Attributes:
        window_s: Duration of the data-gathering window (s)
        min_cycles: Minimum scan cycles required in one window
        nominal_rate_hz: Expected scan rate (for progress reporting only)
        cluster_distance_m: Threshold used to merge sightings across cycles (m)
    """

    window_s: float = 2.0
    min_cycles: int = 25
    nominal_rate_hz: float = 25.0
    cluster_distance_m: float = 0.2

    def __post_init__(self):
        if self.window_s <= 0:
            raise ValueError(f"window_s must be positive: {self.window_s}")
        if self.min_cycles < 1:
            raise ValueError(f"min_cycles must be at least 1: {self.min_cycles}")


def to_map_frame(points: List[XYPoint]) -> List[XYPoint]:
    """
    Express platform-relative points in the map frame.

    Translates so points[0] is the origin, then rotates by the negative
    bearing from points[0] to points[1].

    Raises:
        InsufficientLandmarksDetected: If fewer than two points are given
    """
    if len(points) < 2:
        raise InsufficientLandmarksDetected(
            f"Need at least 2 landmarks to fix the map frame, found {len(points)}"
        )

    origin = points[0]
    rot = math.atan2(points[1].y - origin.y, points[1].x - origin.x)
    cos_r, sin_r = math.cos(rot), math.sin(rot)

    transformed = []
    for p in points:
        dx = p.x - origin.x
        dy = p.y - origin.y
        transformed.append(XYPoint(x=cos_r * dx + sin_r * dy, y=-sin_r * dx + cos_r * dy))
    return transformed


class LandmarkMapBuilder:
    """
    Build the landmark map from one initiation window.

    Usage:
        builder = LandmarkMapBuilder(config)
        builder.start_window(t0)
        while not builder.window_elapsed(now):
            builder.add_cycle(clusterer.extract(frame))
        landmarks = builder.build(now)
    """

    def __init__(self, config: Optional[InitiationConfig] = None):
        self.config = config or InitiationConfig()
        self.metrics = get_metrics()

        self._window_start: Optional[float] = None
        self._cycles: List[List[ScanPoint]] = []

    @property
    def window_open(self) -> bool:
        return self._window_start is not None

    @property
    def cycles_collected(self) -> int:
        return len(self._cycles)

    def start_window(self, t: float):
        """Discard anything gathered so far and open a new window at t."""
        self._window_start = t
        self._cycles = []
        self.metrics.increment('initiation_windows')
        logger.info("Gathering data...")

    def window_elapsed(self, t: float) -> bool:
        if self._window_start is None:
            return False
        return t - self._window_start >= self.config.window_s

    def add_cycle(self, observations: List[ScanPoint]):
        """Store the clustered observations of one scan cycle (may be empty)."""
        self._cycles.append(list(observations))

    def build(self, t: float) -> List[Landmark]:
        """
        Close the window and create the landmark set.

        Args:
            t: Current time, used as last_seen_at of every landmark

        Returns:
            Landmarks in pool order, ids 0..n-1

        Raises:
            InsufficientInitiationData: Too few cycles; data is discarded
            InsufficientLandmarksDetected: Fewer than two poles found
        """
        gathered = len(self._cycles)
        expected = int(self.config.nominal_rate_hz * self.config.window_s)
        logger.info(f"Gathered {gathered}/{expected} scans")

        cycles = self._cycles
        self._cycles = []
        self._window_start = None

        if gathered < self.config.min_cycles:
            raise InsufficientInitiationData(
                f"Gathered {gathered} scans, need {self.config.min_cycles}"
            )

        pool = [obs for cycle in cycles for obs in cycle]
        averaged = cluster_scan_points(pool, self.config.cluster_distance_m)
        for obs in averaged:
            logger.info(f"pole (polar) at {obs.distance:.6f} m {obs.angle:.6f} rad")

        map_positions = to_map_frame([polar_to_xy(obs) for obs in averaged])

        landmarks = []
        for i, (obs, pos) in enumerate(zip(averaged, map_positions)):
            logger.info(f"pole {i} (map) at [{pos.x:.6f} {pos.y:.6f}]")
            landmarks.append(Landmark(
                landmark_id=i,
                map_position=pos,
                last_observation=obs,
                last_seen_at=t,
                visible=True,
            ))

        return landmarks
