"""
Unit tests for ScanClusterer.

Tests cover:
- Intensity filtering and beam angle computation
- Merging neighbouring beams into one pole (mean of polar components)
- Idempotence on already-clustered input
- Empty and invalid input
"""

import numpy as np
import pytest

from pole_core.localization import (
    ScanClusterer,
    ScanClusterConfig,
    ScanPoint,
    cluster_scan_points,
)
from pole_core.metrics import get_metrics
from pole_core.proto import ScanFrame
from tests.conftest import make_frame


class TestReflectiveFilter:
    """Tests for intensity filtering."""

    def test_keeps_only_bright_beams(self):
        """Beams at or below the threshold are dropped."""
        frame = ScanFrame(
            ranges=[1.0, 2.0, 3.0, 4.0],
            intensities=[500.0, 1000.0, 1000.1, 3000.0],
            angle_min=-0.1,
            angle_increment=0.05,
        )
        points = ScanClusterer().filter_reflective(frame)

        assert [p.distance for p in points] == [3.0, 4.0]
        assert points[0].angle == pytest.approx(-0.1 + 2 * 0.05)
        assert points[1].angle == pytest.approx(-0.1 + 3 * 0.05)

    def test_nothing_reflective_gives_empty_list(self):
        """No bright beams is not an error."""
        frame = make_frame([])
        assert ScanClusterer().extract(frame) == []

    def test_invalid_ranges_dropped_and_counted(self):
        """NaN/inf ranges on bright beams are skipped."""
        frame = ScanFrame(
            ranges=[np.nan, np.inf, 5.0],
            intensities=[2000.0, 2000.0, 2000.0],
            angle_min=0.0,
            angle_increment=0.5,
        )
        points = ScanClusterer().filter_reflective(frame)

        assert len(points) == 1
        assert points[0].distance == 5.0
        assert get_metrics().get_drop_count('non_finite_range') == 2

    def test_custom_threshold(self):
        frame = ScanFrame(ranges=[1.0, 2.0], intensities=[60.0, 40.0],
                          angle_min=0.0, angle_increment=0.1)
        clusterer = ScanClusterer(ScanClusterConfig(intensity_threshold=50.0))
        assert len(clusterer.filter_reflective(frame)) == 1


class TestClustering:
    """Tests for cluster_scan_points."""

    def test_neighbouring_beams_merge(self):
        """Beams on one pole average to one reading."""
        points = [
            ScanPoint(5.00, 0.100),
            ScanPoint(5.02, 0.105),
            ScanPoint(5.04, 0.110),
        ]
        clusters = cluster_scan_points(points, 0.2)

        assert len(clusters) == 1
        assert clusters[0].distance == pytest.approx(5.02)
        assert clusters[0].angle == pytest.approx(0.105)

    def test_separate_poles_stay_separate(self):
        """Poles far apart in bearing or range are not merged."""
        points = [
            ScanPoint(5.0, 0.10),
            ScanPoint(5.0, 0.50),   # 2 m chord away
            ScanPoint(7.0, 0.101),  # 2 m radially away
        ]
        clusters = cluster_scan_points(points, 0.2)
        assert len(clusters) == 3

    def test_members_compared_to_seed_not_neighbour(self):
        """A chain of small steps does not grow one cluster forever."""
        points = [ScanPoint(5.0, 0.0 + 0.03 * k) for k in range(4)]  # chord step 0.15 m
        clusters = cluster_scan_points(points, 0.2)

        assert len(clusters) == 2
        assert clusters[0].angle == pytest.approx(0.015)
        assert clusters[1].angle == pytest.approx(0.075)

    def test_non_adjacent_points_rejoin_their_seed(self):
        """Repeated sightings from different cycles collapse together."""
        a = ScanPoint(4.0, 1.0)
        b = ScanPoint(9.0, -1.0)
        clusters = cluster_scan_points([a, b, a, b, a, b], 0.2)

        assert clusters == [a, b]

    def test_idempotent_on_clustered_input(self):
        """Clustering a clustered list changes nothing."""
        clustered = [ScanPoint(3.0, -1.2), ScanPoint(6.0, 0.0), ScanPoint(6.0, 1.4)]
        assert cluster_scan_points(clustered, 0.2) == clustered
        assert cluster_scan_points(cluster_scan_points(clustered, 0.2), 0.2) == clustered

    def test_empty_input(self):
        assert cluster_scan_points([], 0.2) == []


class TestExtract:
    """End-to-end extraction from frames."""

    def test_extract_poles_from_frame(self):
        """Each multi-beam pole becomes one observation."""
        poles = [ScanPoint(6.0, -0.5), ScanPoint(3.5, 1.2)]
        frame = make_frame(poles, beams_per_pole=3)

        observations = ScanClusterer().extract(frame)

        assert len(observations) == 2
        for obs, pole in zip(observations, poles):
            assert obs.distance == pytest.approx(pole.distance)
            assert obs.angle == pytest.approx(pole.angle, abs=2 * frame.angle_increment)
        assert get_metrics().get_counter('observations_extracted') == 2

    def test_observations_in_scan_order(self):
        """Output follows increasing beam angle."""
        frame = make_frame([ScanPoint(4.0, 2.0), ScanPoint(4.0, -2.0)])
        observations = ScanClusterer().extract(frame)
        assert observations[0].angle < observations[1].angle

    def test_mismatched_frame_rejected(self):
        """Frames with unequal array lengths never reach the clusterer."""
        with pytest.raises(ValueError, match="mismatch"):
            ScanFrame(ranges=[1.0, 2.0], intensities=[1.0], angle_min=0.0, angle_increment=0.1)

    def test_config_validation(self):
        with pytest.raises(ValueError):
            ScanClusterConfig(cluster_distance_m=0.0)
