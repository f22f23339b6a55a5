"""
Pytest configuration and shared fixtures for pole localization tests.

Provides synthetic scan frames, exact observations from a known pose, and
ready-made landmark sets.
"""

import sys
import math
from pathlib import Path
from typing import List, Sequence, Tuple

import numpy as np
import pytest

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from pole_core.localization import (
    Landmark,
    ScanPoint,
    XYPoint,
    normalize_angle,
)
from pole_core.metrics import get_metrics
from pole_core.proto import ScanFrame


NUM_BEAMS = 3600
ANGLE_MIN = -math.pi
ANGLE_INCREMENT = 2 * math.pi / NUM_BEAMS


@pytest.fixture(autouse=True)
def clean_metrics():
    """Every test starts with zeroed counters."""
    get_metrics().reset()
    yield
    get_metrics().reset()


# =============================================================================
# Helper Functions
# =============================================================================


def observe(
    pose_xy: Tuple[float, float],
    heading: float,
    landmark_xy: Tuple[float, float],
) -> ScanPoint:
    """
    Exact reading of a landmark from a pose.

    Args:
        pose_xy: Platform position (x, y)
        heading: Platform heading (rad)
        landmark_xy: Landmark position (x, y)

    Returns:
        ScanPoint (range, platform-relative bearing)
    """
    dx = landmark_xy[0] - pose_xy[0]
    dy = landmark_xy[1] - pose_xy[1]
    return ScanPoint(
        distance=math.hypot(dx, dy),
        angle=normalize_angle(math.atan2(dy, dx) - heading),
    )


def make_frame(
    observations: Sequence[ScanPoint],
    beams_per_pole: int = 1,
    timestamp: float = 0.0,
) -> ScanFrame:
    """
    Synthetic scan frame with one reflective hit per observation.

    Each observation lands on the beam nearest its bearing (plus
    beams_per_pole - 1 following beams at the same range); all other
    beams return a dull far wall.
    """
    ranges = np.full(NUM_BEAMS, 30.0)
    intensities = np.full(NUM_BEAMS, 100.0)

    for obs in observations:
        index = int(round((obs.angle - ANGLE_MIN) / ANGLE_INCREMENT)) % NUM_BEAMS
        for k in range(beams_per_pole):
            ranges[(index + k) % NUM_BEAMS] = obs.distance
            intensities[(index + k) % NUM_BEAMS] = 2000.0

    return ScanFrame(
        ranges=ranges,
        intensities=intensities,
        angle_min=ANGLE_MIN,
        angle_increment=ANGLE_INCREMENT,
        timestamp=timestamp,
    )


def make_landmarks(
    positions: Sequence[Tuple[float, float]],
    pose_xy: Tuple[float, float],
    heading: float,
    t: float = 0.0,
) -> List[Landmark]:
    """Landmarks at given map positions, last seen from the given pose."""
    return [
        Landmark(
            landmark_id=i,
            map_position=XYPoint(*pos),
            last_observation=observe(pose_xy, heading, pos),
            last_seen_at=t,
            visible=True,
        )
        for i, pos in enumerate(positions)
    ]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def square_map() -> List[Tuple[float, float]]:
    """Four poles on a 10 m square, first two on the map x-axis."""
    return [(0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0)]


@pytest.fixture
def platform_pose() -> Tuple[Tuple[float, float], float]:
    """Platform inside the square, turned 30 degrees."""
    return (4.0, 3.0), math.radians(30.0)


@pytest.fixture
def square_landmarks(square_map, platform_pose) -> List[Landmark]:
    pose_xy, heading = platform_pose
    return make_landmarks(square_map, pose_xy, heading)
