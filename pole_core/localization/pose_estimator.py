"""
Pose Estimator (two-landmark multilateration).

For every adjacent pair of visible landmarks (A, B) the platform lies on the
intersection of two circles: radius a around A and radius b around B. The
two intersection points give two candidate poses; the heading of each
follows from the observed bearing to A.

Disambiguation:
- With a previous pose: Newton-Raphson on the heading, seeded at the
  previous heading, yields a continuity point; the closer candidate wins.
  If Newton finds no root the candidate nearest the previous position wins.
- First estimate: the candidate whose predicted bearing to B matches the
  observed bearing to B wins. Exactly one candidate must pass.

Pairwise estimates are averaged: arithmetic mean for position, circular
mean for heading.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from pole_core.errors import AmbiguousPoseSolution, DegenerateCircleGeometry, LocalizationError
from .geometry import XYPoint, circular_mean, normalize_angle
from .landmark import Landmark, visible_landmarks
from pole_core.proto.pose import Pose
from pole_core.metrics import get_metrics

logger = logging.getLogger(__name__)


@dataclass
class PoseEstimatorConfig:
    """
    Configuration for pose estimation.

    Attributes:
        inflation_step_m: Range slack added to both circles per step (m)
        max_inflation_steps: Steps before giving up on a pair
        newton_tolerance_rad: Stop when successive headings differ by less (rad)
        max_newton_iterations: Iterations before giving up on a pair
        consistency_tolerance_rad: Bearing-to-B tolerance for first estimate (rad)
        coincident_tolerance_m: Candidates closer than this count as one (m)
    """

    inflation_step_m: float = 0.001
    max_inflation_steps: int = 100000
    newton_tolerance_rad: float = 0.001
    max_newton_iterations: int = 50
    consistency_tolerance_rad: float = 0.1
    coincident_tolerance_m: float = 1e-6

    def __post_init__(self):
        if self.inflation_step_m <= 0:
            raise ValueError(f"inflation_step_m must be positive: {self.inflation_step_m}")
        if self.max_inflation_steps < 0:
            raise ValueError(f"max_inflation_steps cannot be negative: {self.max_inflation_steps}")
        if self.newton_tolerance_rad <= 0:
            raise ValueError(f"newton_tolerance_rad must be positive: {self.newton_tolerance_rad}")


@dataclass
class CircleIntersection:
    """
    Intersection of the range circles of a landmark pair.

    range_a/range_b are the (possibly inflated) radii actually used.
    """

    first: XYPoint
    second: XYPoint
    range_a: float
    range_b: float
    inflation_steps: int = 0


@dataclass
class PoseCandidate:
    """One pairwise pose hypothesis."""

    x: float
    y: float
    theta: float

    def squared_distance_to(self, x: float, y: float) -> float:
        return (self.x - x) ** 2 + (self.y - y) ** 2


def circle_discriminant(d: float, a: float, b: float) -> float:
    """Heron-style product; negative when the circles do not intersect."""
    return (d + a + b) * (d + a - b) * (d - a + b) * (-d + a + b)


def intersect_circles(
    center_a: XYPoint,
    center_b: XYPoint,
    range_a: float,
    range_b: float,
    step: float = 0.001,
    max_steps: int = 100000,
) -> CircleIntersection:
    """
    Intersect two circles, widening both radii until they meet.

    Measurement noise can leave the circles slightly apart; instead of
    failing, both radii grow by `step` until the discriminant is
    non-negative.

    Args:
        center_a: Centre of circle A
        center_b: Centre of circle B
        range_a: Radius of circle A (m)
        range_b: Radius of circle B (m)
        step: Radius increment per inflation step (m)
        max_steps: Inflation steps allowed

    Returns:
        CircleIntersection with both points (equal if the circles touch)

    Raises:
        DegenerateCircleGeometry: Coincident centres, or still no
            intersection after max_steps
    """
    d = center_a.distance_to(center_b)
    if d <= 0.0:
        raise DegenerateCircleGeometry("Landmark pair shares the same map position")

    a, b = range_a, range_b
    disc = circle_discriminant(d, a, b)
    steps = 0
    while disc < 0:
        if steps >= max_steps:
            raise DegenerateCircleGeometry(
                f"No intersection after {steps} inflation steps "
                f"(D={d:.3f}, a={range_a:.3f}, b={range_b:.3f})"
            )
        a += step
        b += step
        steps += 1
        disc = circle_discriminant(d, a, b)

    # delta is the area of the triangle (A, B, intersection)
    delta = 0.25 * math.sqrt(disc)
    d2 = d * d
    xa, ya = center_a.x, center_a.y
    xb, yb = center_b.x, center_b.y

    base_x = (xa + xb) / 2 + (xb - xa) * (a * a - b * b) / (2 * d2)
    base_y = (ya + yb) / 2 + (yb - ya) * (a * a - b * b) / (2 * d2)
    off_x = 2 * (ya - yb) / d2 * delta
    off_y = 2 * (xa - xb) / d2 * delta

    return CircleIntersection(
        first=XYPoint(base_x + off_x, base_y - off_y),
        second=XYPoint(base_x - off_x, base_y + off_y),
        range_a=a,
        range_b=b,
        inflation_steps=steps,
    )


def heading_from_point(point: XYPoint, landmark: XYPoint, bearing: float) -> float:
    """Heading that makes `landmark` appear at `bearing` from `point`."""
    return normalize_angle(math.pi - bearing + math.atan2(point.y - landmark.y, point.x - landmark.x))


class PoseEstimator:
    """
    Triangulate the platform pose from visible landmark pairs.

    Usage:
        estimator = PoseEstimator(PoseEstimatorConfig())
        pose = estimator.estimate(landmarks, previous_pose, t_now)
    """

    def __init__(self, config: Optional[PoseEstimatorConfig] = None):
        self.config = config or PoseEstimatorConfig()
        self.metrics = get_metrics()

    @staticmethod
    def pair_landmarks(landmarks: List[Landmark]) -> List[Tuple[Landmark, Landmark]]:
        """Visible landmarks in id order, paired without overlap: (v0, v1), (v2, v3), ..."""
        visible = visible_landmarks(landmarks)
        return [(visible[i], visible[i + 1]) for i in range(0, len(visible) - 1, 2)]

    def estimate(
        self,
        landmarks: List[Landmark],
        previous: Pose,
        t: float,
    ) -> Pose:
        """
        Estimate the pose for this cycle.

        Args:
            landmarks: Landmark set with current visibility and readings
            previous: Last pose (may be the unset placeholder)
            t: Estimation time

        Returns:
            New pose, or `previous` unchanged if no pair produced an estimate
        """
        estimates: List[PoseCandidate] = []
        used_pairs: List[Tuple[int, int]] = []

        for lm_a, lm_b in self.pair_landmarks(landmarks):
            try:
                candidate = self.solve_pair(lm_a, lm_b, previous)
            except LocalizationError as e:
                if not e.recoverable:
                    raise
                self.metrics.increment_drop(e.reason)
                logger.warning(
                    f"Skipping poles {lm_a.landmark_id},{lm_b.landmark_id}: {e} "
                    f"(a={lm_a.last_observation.distance:.3f} m "
                    f"{lm_a.last_observation.angle:.3f} rad, "
                    f"b={lm_b.last_observation.distance:.3f} m "
                    f"{lm_b.last_observation.angle:.3f} rad)"
                )
                continue

            logger.debug(f"From poles {lm_a.landmark_id},{lm_b.landmark_id}: "
                         f"[{candidate.x:.6f} {candidate.y:.6f}] {candidate.theta:.6f} rad")
            estimates.append(candidate)
            used_pairs.append((lm_a.landmark_id, lm_b.landmark_id))

        if not estimates:
            self.metrics.increment('pose_holds')
            logger.debug("No landmark pair solved; holding previous pose")
            return previous

        self.metrics.increment('pose_estimates')
        self.metrics.increment('pose_pairs_solved', len(estimates))
        self.metrics.record_histogram('pose_pairs_used', len(estimates))

        pose = Pose(
            x=float(np.mean([c.x for c in estimates])),
            y=float(np.mean([c.y for c in estimates])),
            theta=circular_mean(c.theta for c in estimates),
            timestamp=t,
            landmark_pairs=used_pairs,
        )
        return pose

    def solve_pair(self, lm_a: Landmark, lm_b: Landmark, previous: Pose) -> PoseCandidate:
        """
        Pose hypothesis from one landmark pair.

        Raises:
            DegenerateCircleGeometry: Circles cannot be made to intersect
            AmbiguousPoseSolution: First estimate whose roots could not be told apart
        """
        obs_a = lm_a.last_observation
        obs_b = lm_b.last_observation

        circles = intersect_circles(
            lm_a.map_position,
            lm_b.map_position,
            obs_a.distance,
            obs_b.distance,
            step=self.config.inflation_step_m,
            max_steps=self.config.max_inflation_steps,
        )
        self.metrics.record_histogram('circle_inflation_steps', circles.inflation_steps)

        candidates = [
            PoseCandidate(p.x, p.y, heading_from_point(p, lm_a.map_position, obs_a.angle))
            for p in (circles.first, circles.second)
        ]

        if previous.is_set:
            return self._closest_to_newton(candidates, circles, lm_a, lm_b, previous)
        return self._angular_consistent(candidates, lm_b)

    def newton_heading(
        self,
        circles: CircleIntersection,
        lm_a: Landmark,
        lm_b: Landmark,
        seed: float,
    ) -> Tuple[float, int]:
        """
        Solve for the heading that makes both readings land on the same point.

        Root of f(theta) = x_from_A(theta) - x_from_B(theta), seeded at the
        previous heading. A heading whose residual is already negligible is
        accepted as is; for pairs level with the map x-axis f has a double
        root there and the derivative vanishes.

        Returns:
            (theta, iterations)

        Raises:
            AmbiguousPoseSolution: Zero derivative, divergence or no convergence
        """
        a, b = circles.range_a, circles.range_b
        alpha_a = lm_a.last_observation.angle
        alpha_b = lm_b.last_observation.angle
        xa, xb = lm_a.map_position.x, lm_b.map_position.x

        theta = seed
        for iteration in range(1, self.config.max_newton_iterations + 1):
            f_x = a * math.cos(alpha_a + theta - math.pi) + xa - b * math.cos(alpha_b + theta - math.pi) - xb
            if abs(f_x) < 1e-9:
                return theta, iteration
            f_prime = -a * math.sin(alpha_a + theta - math.pi) + b * math.sin(alpha_b + theta - math.pi)
            if abs(f_prime) < 1e-12:
                raise AmbiguousPoseSolution("Newton derivative vanished")

            next_theta = theta - f_x / f_prime
            if not math.isfinite(next_theta):
                raise AmbiguousPoseSolution("Newton iterate diverged")

            converged = abs(next_theta - theta) <= self.config.newton_tolerance_rad
            theta = next_theta
            if converged:
                return theta, iteration

        raise AmbiguousPoseSolution(
            f"Newton did not converge in {self.config.max_newton_iterations} iterations"
        )

    def _closest_to_newton(
        self,
        candidates: List[PoseCandidate],
        circles: CircleIntersection,
        lm_a: Landmark,
        lm_b: Landmark,
        previous: Pose,
    ) -> PoseCandidate:
        try:
            theta, iterations = self.newton_heading(circles, lm_a, lm_b, previous.theta)
        except AmbiguousPoseSolution as e:
            # Noisy readings of a level pair can leave f without a real root
            self.metrics.increment('newton_fallbacks')
            logger.debug(f"Poles {lm_a.landmark_id},{lm_b.landmark_id}: {e}; "
                         f"taking the candidate nearest the previous pose")
            return min(candidates, key=lambda c: c.squared_distance_to(previous.x, previous.y))

        self.metrics.record_histogram('newton_iterations', iterations)

        alpha_a = lm_a.last_observation.angle + theta - math.pi
        alpha_b = lm_b.last_observation.angle + theta - math.pi
        x_newton = (circles.range_a * math.cos(alpha_a) + lm_a.map_position.x
                    + circles.range_b * math.cos(alpha_b) + lm_b.map_position.x) / 2
        y_newton = (circles.range_a * math.sin(alpha_a) + lm_a.map_position.y
                    + circles.range_b * math.sin(alpha_b) + lm_b.map_position.y) / 2

        return min(candidates, key=lambda c: c.squared_distance_to(x_newton, y_newton))

    def _angular_consistent(self, candidates: List[PoseCandidate], lm_b: Landmark) -> PoseCandidate:
        bearing_b = lm_b.last_observation.angle
        pos_b = lm_b.map_position

        passing = []
        for c in candidates:
            residual = normalize_angle(
                math.pi + math.atan2(c.y - pos_b.y, c.x - pos_b.x) - c.theta - bearing_b
            )
            if abs(residual) < self.config.consistency_tolerance_rad:
                passing.append(c)

        if len(passing) == 1:
            return passing[0]

        first, second = candidates
        coincident = math.sqrt(first.squared_distance_to(second.x, second.y)) <= self.config.coincident_tolerance_m
        if len(passing) == 2 and coincident:
            return first

        raise AmbiguousPoseSolution(
            f"{len(passing)} of 2 candidates passed the bearing check"
        )
