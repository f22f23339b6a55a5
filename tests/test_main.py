"""
Tests for the localization node control loop.

Transport is replaced with in-memory fakes; the pipeline is real.
"""

import math

import pytest

import config
from main import PoleLocalizationNode, build_pipeline_config
from pole_core.domain import Phase
from pole_core.errors import InsufficientLandmarksDetected
from pole_core.localization import ScanPoint
from pole_core.metrics import get_metrics
from tests.conftest import make_frame

TWO_POLES = [ScanPoint(6.666667, 0.0), ScanPoint(8.91667, math.pi / 2)]


class FakeServer:
    def __init__(self, frames):
        self.frames = list(frames)
        self.started = False
        self.stopped = False

    def start(self):
        self.started = True
        return True

    def stop(self):
        self.stopped = True

    def take_frame(self):
        return self.frames.pop(0) if self.frames else None


class FakePublisher:
    def __init__(self):
        self.poses = []
        self.landmarks = []
        self.connected = False

    def connect(self):
        self.connected = True
        return True

    def disconnect(self):
        self.connected = False

    def publish_pose(self, pose):
        self.poses.append(pose)
        return True

    def publish_landmarks(self, positions):
        self.landmarks.append(list(positions))
        return True


class StepClock:
    """Advances one scan period per call."""

    def __init__(self, start=0.0, step=0.04):
        self.t = start
        self.step = step

    def __call__(self):
        self.t += self.step
        return self.t


@pytest.fixture
def output_config(monkeypatch):
    monkeypatch.setitem(config.OUTPUT_CONFIG, "enable_publish", True)
    monkeypatch.setitem(config.OUTPUT_CONFIG, "enable_console_print", True)
    monkeypatch.setitem(config.OUTPUT_CONFIG, "print_interval", 2)
    monkeypatch.setitem(config.LOCALIZATION_CONFIG, "loop_rate_hz", 100000.0)


class TestPipelineConfig:
    def test_built_from_config(self, monkeypatch):
        monkeypatch.setitem(config.SCANNER_CONFIG, "intensity_threshold", 500.0)
        monkeypatch.setitem(config.INITIATION_CONFIG, "min_cycles", 10)

        pipeline_config = build_pipeline_config()

        assert pipeline_config.cluster_config.intensity_threshold == 500.0
        assert pipeline_config.initiation_config.min_cycles == 10
        assert pipeline_config.estimator_config.max_newton_iterations == 50


class TestNode:
    """Tests for PoleLocalizationNode."""

    def test_run_once_publishes_after_initiation(self, output_config, capsys):
        frames = [make_frame(TWO_POLES) for _ in range(60)]
        publisher = FakePublisher()
        node = PoleLocalizationNode(data_server=FakeServer(frames), publisher=publisher,
                                    clock=StepClock())

        results = [node.run_once() for _ in range(60)]

        completed = [i for i, r in enumerate(results) if r.initiation_completed]
        assert len(completed) == 1
        assert all(r.pose is None for r in results[:completed[0] + 1])
        assert results[-1].phase == Phase.LOCALIZING

        localized = 60 - completed[0] - 1
        assert node.pose_count == localized
        assert len(publisher.poses) == localized
        assert len(publisher.landmarks) == localized + 1
        assert [p.landmark_id for p in publisher.landmarks[-1]] == [0, 1]
        assert "Pole Localization Result" in capsys.readouterr().out

    def test_nothing_published_without_map(self, output_config):
        publisher = FakePublisher()
        node = PoleLocalizationNode(data_server=FakeServer([make_frame(TWO_POLES)]),
                                    publisher=publisher, clock=StepClock())

        node.run_once()
        node.run_once()

        assert publisher.poses == []
        assert publisher.landmarks == []
        assert node.cycle_count == 2

    def test_fatal_initiation_stops_run(self, output_config):
        frames = [make_frame([ScanPoint(5.0, 0.3)]) for _ in range(200)]
        server = FakeServer(frames)
        publisher = FakePublisher()
        node = PoleLocalizationNode(data_server=server, publisher=publisher, clock=StepClock())

        node.run()

        assert isinstance(node.fatal_error, InsufficientLandmarksDetected)
        assert not node.running
        assert server.started and server.stopped
        assert not publisher.connected
        assert get_metrics().get_drop_count('insufficient_landmarks') == 1

    def test_stop_is_idempotent(self, output_config, capsys):
        server = FakeServer([])
        node = PoleLocalizationNode(data_server=server, publisher=FakePublisher(),
                                    clock=StepClock())

        node.stop()
        node.stop()

        assert capsys.readouterr().out.count("METRICS SUMMARY") == 1
