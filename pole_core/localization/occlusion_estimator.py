"""
Occlusion Estimator.

Projects the current pose onto landmarks that were not seen this cycle so
the tracker compares next cycle's observations against where those poles
should appear, rather than against a frozen reading.
"""

import logging
from typing import List

from .geometry import expected_observation
from .landmark import Landmark
from pole_core.proto.pose import Pose
from pole_core.metrics import get_metrics

logger = logging.getLogger(__name__)


class OcclusionEstimator:
    """Replace invisible landmarks' readings with pose-implied ones."""

    def __init__(self):
        self.metrics = get_metrics()

    def estimate(self, landmarks: List[Landmark], pose: Pose) -> int:
        """
        Update last_observation of every invisible landmark.

        Args:
            landmarks: Landmark set (mutated)
            pose: Current pose; nothing is changed while it is unset

        Returns:
            Number of landmarks extrapolated
        """
        if not pose.is_set:
            return 0

        count = 0
        for landmark in landmarks:
            if landmark.visible:
                continue
            expected = expected_observation(pose.position, pose.theta, landmark.map_position)
            landmark.extrapolate(expected)
            count += 1
            logger.debug(f"Pole {landmark.landmark_id} hidden, expected at "
                         f"{expected.distance:.3f} m {expected.angle:.3f} rad")

        if count:
            self.metrics.increment('landmarks_occluded', count)
        return count
