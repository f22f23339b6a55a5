"""
Unit tests for LandmarkTracker.

Tests cover:
- Stable association when readings do not change
- Non-exclusive matching (last observation wins, conflict reported)
- In-order association against readings refreshed earlier in the cycle
- Visibility and last_seen_at bookkeeping
"""

import pytest

from pole_core.errors import UnmatchedObservation
from pole_core.localization import Landmark, LandmarkTracker, ScanPoint, XYPoint
from pole_core.metrics import get_metrics
from tests.conftest import observe


class TestAssociation:
    """Tests for nearest-neighbour association."""

    def test_same_readings_match_same_ids(self, square_landmarks):
        """Observations equal to the last readings map back one-to-one."""
        observations = [lm.last_observation for lm in reversed(square_landmarks)]

        result = LandmarkTracker().update(observations, square_landmarks, t=1.0)

        assert result.num_matched == 4
        assert result.contested_ids == []
        for lm in square_landmarks:
            assert result.matches[lm.landmark_id] == lm.last_observation
            assert lm.visible

    def test_small_motion_keeps_ids(self, square_map, square_landmarks):
        """Readings from a slightly moved platform still match."""
        observations = [observe((4.2, 3.1), 0.55, pos) for pos in square_map]

        result = LandmarkTracker().update(observations, square_landmarks, t=1.0)

        for i, obs in enumerate(observations):
            assert result.matches[i] == obs

    def test_contested_landmark_last_wins(self, square_landmarks):
        """Two observations near landmark 0: the later one is kept."""
        reading = square_landmarks[0].last_observation
        first = ScanPoint(reading.distance + 0.05, reading.angle)
        second = ScanPoint(reading.distance - 0.05, reading.angle)

        result = LandmarkTracker().update([first, second], square_landmarks, t=1.0)

        assert result.contested_ids == [0]
        assert result.matches == {0: second}
        assert square_landmarks[0].last_observation == second
        assert get_metrics().get_counter('association_conflicts') == 1

    def test_later_observation_sees_updated_reading(self):
        """A match refreshes the reading before the next observation is compared."""
        landmarks = [
            Landmark(0, XYPoint(0.0, 0.0), ScanPoint(5.0, 0.0), last_seen_at=0.0),
            Landmark(1, XYPoint(4.0, 0.0), ScanPoint(5.0, 2.0), last_seen_at=0.0),
        ]
        first = ScanPoint(5.0, 0.9)
        second = ScanPoint(5.6, 1.2)

        result = LandmarkTracker().update([first, second], landmarks, t=1.0)

        # Against the old readings the second observation is nearer landmark 1
        assert result.matches == {0: second}
        assert result.contested_ids == [0]
        assert [lm.visible for lm in landmarks] == [True, False]
        assert landmarks[1].last_observation == ScanPoint(5.0, 2.0)


class TestVisibility:
    """Tests for visibility bookkeeping."""

    def test_unmatched_landmarks_hidden(self, square_landmarks):
        observations = [square_landmarks[1].last_observation]
        stale = square_landmarks[2].last_observation

        LandmarkTracker().update(observations, square_landmarks, t=3.0)

        assert [lm.visible for lm in square_landmarks] == [False, True, False, False]
        assert square_landmarks[1].last_seen_at == 3.0
        assert square_landmarks[2].last_seen_at == 0.0
        assert square_landmarks[2].last_observation == stale

    def test_no_observations_hides_all(self, square_landmarks):
        result = LandmarkTracker().update([], square_landmarks, t=1.0)

        assert result.num_matched == 0
        assert not any(lm.visible for lm in square_landmarks)

    def test_no_landmarks_raises(self):
        with pytest.raises(UnmatchedObservation):
            LandmarkTracker().update([ScanPoint(3.0, 0.0)], [], t=0.0)

    def test_no_landmarks_no_observations(self):
        assert LandmarkTracker().update([], [], t=0.0).num_matched == 0
