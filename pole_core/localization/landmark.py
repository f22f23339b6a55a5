"""
Landmark representation.

A landmark is created once during initiation and lives for the rest of the
run. Its map position is fixed; its last observation is refreshed every
cycle, either by a real match or by the occlusion estimator.
"""

from dataclasses import dataclass
from typing import List

from .geometry import ScanPoint, XYPoint
from pole_core.proto.pose import LandmarkPosition


@dataclass
class Landmark:
    """
    Reflective pole tracked across scan cycles.

    Attributes:
        landmark_id: Stable index assigned in creation order
        map_position: Absolute position in the map frame (never changes)
        last_observation: Latest platform-relative reading (real or estimated)
        last_seen_at: Time of the last real match (seconds)
        visible: True iff matched in the current cycle
    """

    landmark_id: int
    map_position: XYPoint
    last_observation: ScanPoint
    last_seen_at: float
    visible: bool = True

    def observe(self, observation: ScanPoint, t: float):
        """Record a real match this cycle."""
        self.last_observation = observation
        self.last_seen_at = t
        self.visible = True

    def hide(self):
        """Mark the landmark as not seen this cycle."""
        self.visible = False

    def extrapolate(self, observation: ScanPoint):
        """Replace the last reading with an expected one; last_seen_at is kept."""
        self.last_observation = observation

    def to_position(self, t: float) -> LandmarkPosition:
        return LandmarkPosition(
            landmark_id=self.landmark_id,
            x=self.map_position.x,
            y=self.map_position.y,
            timestamp=t,
        )


def visible_landmarks(landmarks: List[Landmark]) -> List[Landmark]:
    """Currently visible landmarks, in id order."""
    return sorted((lm for lm in landmarks if lm.visible), key=lambda lm: lm.landmark_id)
