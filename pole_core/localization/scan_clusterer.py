"""
Scan Clusterer.

Turns a raw range/intensity frame into an ordered list of pole observations.
Beams whose intensity exceeds the reflectivity threshold (reflective tape on
the poles) are kept; neighbouring beams that hit the same pole are merged
into one polar reading.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from pole_core.localization.geometry import ScanPoint
from pole_core.proto.scan_frame import ScanFrame
from pole_core.metrics import get_metrics

logger = logging.getLogger(__name__)


@dataclass
class ScanClusterConfig:
    """
    Configuration for pole extraction.

    Attributes:
        intensity_threshold: Minimum intensity (exclusive) for a pole beam
        cluster_distance_m: Max chord and radial separation from the seed (m)
    """

    intensity_threshold: float = 1000.0
    cluster_distance_m: float = 0.2

    def __post_init__(self):
        if self.cluster_distance_m <= 0:
            raise ValueError(f"cluster_distance_m must be positive: {self.cluster_distance_m}")


def cluster_scan_points(
    points: Sequence[ScanPoint],
    cluster_distance_m: float = 0.2,
) -> List[ScanPoint]:
    """
    Merge readings of the same pole into one averaged reading.

    The first unconsumed point seeds a cluster. Every later unconsumed
    point joins it when both its chord separation (|d_angle| * seed
    distance) and its radial separation are below cluster_distance_m.
    The result is the mean angle and mean distance of the members, in
    seed order.

    Args:
        points: Polar readings, in scan order
        cluster_distance_m: Separation threshold (m)

    Returns:
        One ScanPoint per cluster
    """
    clusters: List[ScanPoint] = []
    consumed = [False] * len(points)

    for i, seed in enumerate(points):
        if consumed[i]:
            continue
        consumed[i] = True

        angle_sum = seed.angle
        distance_sum = seed.distance
        members = 1

        for j in range(i + 1, len(points)):
            if consumed[j]:
                continue
            candidate = points[j]
            chord = abs((seed.angle - candidate.angle) * seed.distance)
            radial = abs(seed.distance - candidate.distance)
            if chord < cluster_distance_m and radial < cluster_distance_m:
                consumed[j] = True
                angle_sum += candidate.angle
                distance_sum += candidate.distance
                members += 1

        clusters.append(ScanPoint(distance=distance_sum / members, angle=angle_sum / members))
        logger.debug(f"Cluster {len(clusters) - 1}: {members} point(s)")

    return clusters


class ScanClusterer:
    """
    Extract pole observations from scan frames.

    Usage:
        clusterer = ScanClusterer(ScanClusterConfig(intensity_threshold=1000))
        observations = clusterer.extract(frame)
    """

    def __init__(self, config: Optional[ScanClusterConfig] = None):
        self.config = config or ScanClusterConfig()
        self.metrics = get_metrics()

    def filter_reflective(self, frame: ScanFrame) -> List[ScanPoint]:
        """
        Keep beams above the intensity threshold, in beam order.

        Beams with NaN/inf or negative range are dropped and counted.
        """
        mask = frame.intensities > self.config.intensity_threshold
        if not mask.any():
            return []

        valid_range = np.isfinite(frame.ranges) & (frame.ranges >= 0.0)
        bad = int(np.count_nonzero(mask & ~valid_range))
        if bad:
            logger.debug(f"Dropping {bad} reflective beam(s) with invalid range")
            self.metrics.increment_drop('non_finite_range', bad)

        keep = np.nonzero(mask & valid_range)[0]
        angles = frame.beam_angles()
        return [
            ScanPoint(distance=float(frame.ranges[i]), angle=float(angles[i]))
            for i in keep
        ]

    def cluster(self, points: Sequence[ScanPoint]) -> List[ScanPoint]:
        """Cluster already-extracted readings with this clusterer's threshold."""
        return cluster_scan_points(points, self.config.cluster_distance_m)

    def extract(self, frame: ScanFrame) -> List[ScanPoint]:
        """
        Full extraction: filter reflective beams, then cluster.

        Args:
            frame: Raw scan frame

        Returns:
            Ordered pole observations (empty if nothing reflective)
        """
        observations = self.cluster(self.filter_reflective(frame))
        self.metrics.increment('observations_extracted', len(observations))
        return observations
