"""
Landmark Tracker.

Associates each cycle's pole observations with the known landmarks by
greedy nearest neighbour against the landmarks' last polar readings (not
their map positions). Observations are taken in scan order and each match
updates the landmark's reading immediately, so a later observation is
compared against readings already refreshed this cycle. Landmarks not
matched this cycle become invisible.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from pole_core.errors import UnmatchedObservation
from .geometry import ScanPoint, squared_distance
from .landmark import Landmark
from pole_core.metrics import get_metrics

logger = logging.getLogger(__name__)


@dataclass
class AssociationResult:
    """
    Outcome of one association pass.

    Attributes:
        matches: landmark_id -> observation that was finally written
        contested_ids: Landmarks that more than one observation picked
            (the last observation in scan order wins)
    """

    matches: Dict[int, ScanPoint] = field(default_factory=dict)
    contested_ids: List[int] = field(default_factory=list)

    @property
    def num_matched(self) -> int:
        return len(self.matches)


class LandmarkTracker:
    """
    Nearest-neighbour data association.

    Association is non-exclusive: two observations may land on the same
    landmark. That case is reported in AssociationResult.contested_ids.

    Usage:
        tracker = LandmarkTracker()
        result = tracker.update(observations, landmarks, t_now)
    """

    def __init__(self):
        self.metrics = get_metrics()

    def nearest(self, observation: ScanPoint, landmarks: List[Landmark]) -> Landmark:
        """
        Landmark whose last reading is closest to the observation.

        Raises:
            UnmatchedObservation: If there are no landmarks
        """
        if not landmarks:
            raise UnmatchedObservation(
                f"No landmarks to match observation "
                f"({observation.distance:.3f} m, {observation.angle:.3f} rad)"
            )
        return min(landmarks, key=lambda lm: squared_distance(observation, lm.last_observation))

    def update(
        self,
        observations: List[ScanPoint],
        landmarks: List[Landmark],
        t: float,
    ) -> AssociationResult:
        """
        Associate observations and refresh landmark visibility in place.

        Args:
            observations: Clustered observations of this cycle
            landmarks: Landmark set (mutated)
            t: Cycle time

        Returns:
            AssociationResult

        Raises:
            UnmatchedObservation: Observations given but landmark set empty
        """
        result = AssociationResult()

        for obs in observations:
            landmark = self.nearest(obs, landmarks)
            if landmark.landmark_id in result.matches:
                result.contested_ids.append(landmark.landmark_id)
                self.metrics.increment('association_conflicts')
                logger.debug(
                    f"Landmark {landmark.landmark_id} matched twice; "
                    f"keeping ({obs.distance:.3f} m, {obs.angle:.3f} rad)"
                )
            # Written at once: later observations compare against this reading
            landmark.observe(obs, t)
            result.matches[landmark.landmark_id] = obs

        for landmark in landmarks:
            if landmark.landmark_id not in result.matches:
                landmark.hide()

        logger.debug(f"Associated {len(observations)} observation(s) to "
                     f"{result.num_matched}/{len(landmarks)} landmark(s)")
        return result
