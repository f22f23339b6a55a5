"""
Scan Frame Input Schema.

One full sweep of the range scanner: parallel range and intensity arrays
plus the angular layout of the beams.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional
import time

import numpy as np


@dataclass
class ScanFrame:
    """
    Raw range/intensity frame from the scanner.

    Attributes:
        ranges: Range per beam (m)
        intensities: Return intensity per beam (sensor units)
        angle_min: Bearing of beam 0 (rad)
        angle_increment: Bearing step between consecutive beams (rad)
        timestamp: Receive time (seconds, wall clock)
    """

    ranges: np.ndarray
    intensities: np.ndarray
    angle_min: float
    angle_increment: float
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self):
        """Coerce arrays and validate shape."""
        self.ranges = np.asarray(self.ranges, dtype=float)
        self.intensities = np.asarray(self.intensities, dtype=float)

        if self.ranges.ndim != 1 or self.intensities.ndim != 1:
            raise ValueError("ranges and intensities must be one-dimensional")

        if self.ranges.shape != self.intensities.shape:
            raise ValueError(
                f"ranges/intensities length mismatch: "
                f"{self.ranges.size} vs {self.intensities.size}"
            )

    @property
    def num_beams(self) -> int:
        return int(self.ranges.size)

    def beam_angles(self) -> np.ndarray:
        """Bearing of every beam (rad)."""
        return self.angle_min + self.angle_increment * np.arange(self.num_beams)

    @classmethod
    def from_dict(cls, message: Dict, timestamp: Optional[float] = None) -> 'ScanFrame':
        """
        Build a frame from a decoded transport message.

        Args:
            message: Dict with ranges, intensities, angle_min, angle_increment
            timestamp: Receive time (defaults to now)

        Raises:
            ValueError: If a field is missing or malformed
        """
        if not isinstance(message, dict):
            raise ValueError(f"Scan data must be an object, got {type(message).__name__}")
        try:
            return cls(
                ranges=message["ranges"],
                intensities=message["intensities"],
                angle_min=float(message["angle_min"]),
                angle_increment=float(message["angle_increment"]),
                timestamp=timestamp if timestamp is not None else time.time(),
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed scan message: {e}") from e
