"""
Pose and Landmark Position Output Schemas.

Pose is the per-cycle localization output; LandmarkPosition is emitted once
per landmark per cycle after the map exists. Both live in the fixed map
frame anchored at the first landmark.
"""

from dataclasses import dataclass, field
from typing import List, Tuple
import math

FIXED_FRAME_ID = "fixed_frame"


@dataclass
class Pose:
    """
    Platform pose in the map frame.

    Attributes:
        x: Position x (m)
        y: Position y (m)
        theta: Heading in (-pi, pi] (rad)
        timestamp: Estimation time (seconds)
        is_set: False only for the placeholder returned by create_unset_pose
        landmark_pairs: Landmark id pairs that contributed to the estimate

    Notes:
        - An unset pose is distinct from a real (0, 0, 0) pose
    """

    x: float
    y: float
    theta: float
    timestamp: float
    is_set: bool = True
    landmark_pairs: List[Tuple[int, int]] = field(default_factory=list)

    def __post_init__(self):
        if self.is_set and not all(math.isfinite(v) for v in (self.x, self.y, self.theta)):
            raise ValueError(f"Pose must be finite: ({self.x}, {self.y}, {self.theta})")

        if self.is_set and not -math.pi < self.theta <= math.pi:
            raise ValueError(f"Heading must be in (-pi, pi]: {self.theta}")

    @property
    def position(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'type': 'pose',
            'frame_id': FIXED_FRAME_ID,
            'x': self.x,
            'y': self.y,
            'theta': self.theta,
            'timestamp': self.timestamp,
            'landmark_pairs': [list(pair) for pair in self.landmark_pairs],
        }


def create_unset_pose(timestamp: float = 0.0) -> Pose:
    """
    Create the placeholder pose used before the first estimate.

    Args:
        timestamp: Time stamp to carry (default 0)

    Returns:
        Pose with is_set=False
    """
    return Pose(x=0.0, y=0.0, theta=0.0, timestamp=timestamp, is_set=False)


@dataclass
class LandmarkPosition:
    """Map position of one landmark, tagged with its id."""

    landmark_id: int
    x: float
    y: float
    timestamp: float

    def to_dict(self) -> dict:
        return {
            'type': 'landmark',
            'frame_id': FIXED_FRAME_ID,
            'id': self.landmark_id,
            'x': self.x,
            'y': self.y,
            'timestamp': self.timestamp,
        }
