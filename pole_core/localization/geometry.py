"""
Planar geometry helpers shared by the localization components.

Angles are radians. Bearings are measured counter-clockwise from the
platform's forward axis; headings counter-clockwise from the map x-axis.
"""

import math
from dataclasses import dataclass
from typing import Iterable, Tuple

import numpy as np


@dataclass(frozen=True)
class ScanPoint:
    """
    Polar observation in the platform frame.

    Attributes:
        distance: Range to the reflector (m, >= 0)
        angle: Bearing relative to the platform heading (rad)
    """

    distance: float
    angle: float

    def __post_init__(self):
        if self.distance < 0:
            raise ValueError(f"Distance cannot be negative: {self.distance}")


@dataclass(frozen=True)
class XYPoint:
    """Cartesian point, platform-relative or map-absolute."""

    x: float
    y: float

    def distance_to(self, other: 'XYPoint') -> float:
        return math.hypot(other.x - self.x, other.y - self.y)


def normalize_angle(angle: float) -> float:
    """
    Wrap an angle into (-pi, pi].

    Args:
        angle: Angle in radians (any magnitude)

    Returns:
        Equivalent angle in (-pi, pi]
    """
    wrapped = math.fmod(angle + math.pi, 2.0 * math.pi)
    if wrapped <= 0.0:
        wrapped += 2.0 * math.pi
    return wrapped - math.pi


def polar_to_xy(point: ScanPoint) -> XYPoint:
    """Convert a platform-relative polar reading to Cartesian."""
    return XYPoint(
        x=point.distance * math.cos(point.angle),
        y=point.distance * math.sin(point.angle),
    )


def squared_distance(p: ScanPoint, q: ScanPoint) -> float:
    """Squared Cartesian distance between two polar readings."""
    a = polar_to_xy(p)
    b = polar_to_xy(q)
    return (a.x - b.x) ** 2 + (a.y - b.y) ** 2


def circular_mean(angles: Iterable[float]) -> float:
    """
    Mean direction of a set of angles.

    Unlike the arithmetic mean this is stable across the +/-pi wrap.

    Raises:
        ValueError: If no angles are given
    """
    values = np.asarray(list(angles), dtype=float)
    if values.size == 0:
        raise ValueError("circular_mean requires at least one angle")
    return normalize_angle(float(np.arctan2(np.sin(values).sum(), np.cos(values).sum())))


def expected_observation(
    pose_xy: Tuple[float, float],
    heading: float,
    map_position: XYPoint,
) -> ScanPoint:
    """
    Reading a landmark would produce when seen from a given pose.

    Args:
        pose_xy: Platform position (x, y) in the map frame
        heading: Platform heading in the map frame (rad)
        map_position: Landmark position in the map frame

    Returns:
        ScanPoint with range and normalized bearing
    """
    dx = pose_xy[0] - map_position.x
    dy = pose_xy[1] - map_position.y
    bearing = normalize_angle(math.atan2(dy, dx) + math.pi - heading)
    return ScanPoint(distance=math.hypot(dx, dy), angle=bearing)
