"""
Pole Localization Pipeline.

Owns the landmark set and the current pose and runs one control-loop
iteration per call to step():

    INITIATING:  cluster -> gather into the initiation window -> build map
    LOCALIZING:  cluster -> track -> estimate pose -> estimate occlusions

It is also the per-cycle error handler: recoverable errors are logged,
counted and absorbed here; run-fatal errors propagate to the caller.

Usage:
    pipeline = PoleLocalizationPipeline(config)

    while running:
        result = pipeline.step(slot.take(), time.time())
        if result.pose is not None:
            publish(result.pose)
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from pole_core.errors import InsufficientInitiationData, LocalizationError
from pole_core.domain.phase_machine import Phase, PhaseStateMachine
from .scan_clusterer import ScanClusterer, ScanClusterConfig
from .landmark import Landmark
from .landmark_map_builder import LandmarkMapBuilder, InitiationConfig
from .landmark_tracker import LandmarkTracker
from .pose_estimator import PoseEstimator, PoseEstimatorConfig
from .occlusion_estimator import OcclusionEstimator
from pole_core.proto.pose import Pose, create_unset_pose
from pole_core.proto.scan_frame import ScanFrame
from pole_core.metrics import get_metrics

logger = logging.getLogger(__name__)


@dataclass
class PipelineConfig:
    """
    Configuration for the full pipeline.

    Attributes:
        cluster_config: ScanClusterer configuration
        initiation_config: LandmarkMapBuilder configuration
        estimator_config: PoseEstimator configuration
    """

    cluster_config: Optional[ScanClusterConfig] = None
    initiation_config: Optional[InitiationConfig] = None
    estimator_config: Optional[PoseEstimatorConfig] = None


@dataclass
class CycleResult:
    """
    What one control-loop iteration produced.

    Attributes:
        phase: Phase after the iteration
        pose: Current pose if one has ever been estimated, else None
        landmarks: Landmark set (empty until initiation succeeds)
        initiation_completed: True only on the iteration that built the map
    """

    phase: Phase
    pose: Optional[Pose] = None
    landmarks: List[Landmark] = field(default_factory=list)
    initiation_completed: bool = False


class PoleLocalizationPipeline:
    """
    Initiation and localization, one scan frame at a time.

    Features:
    - Initiation window that retries until enough scans are gathered
    - One-way transition to localization
    - Pose held when no landmark pair can be solved
    - Occluded landmarks extrapolated from the current pose
    """

    def __init__(self, config: Optional[PipelineConfig] = None):
        """
        Initialize pipeline.

        Args:
            config: Pipeline configuration (uses defaults if None)
        """
        self.config = config or PipelineConfig()
        self.metrics = get_metrics()

        self.clusterer = ScanClusterer(self.config.cluster_config)
        self.builder = LandmarkMapBuilder(self.config.initiation_config)
        self.tracker = LandmarkTracker()
        self.estimator = PoseEstimator(self.config.estimator_config)
        self.occlusion = OcclusionEstimator()
        self.phases = PhaseStateMachine()

        self.landmarks: List[Landmark] = []
        self.pose: Pose = create_unset_pose()

    @property
    def phase(self) -> Phase:
        return self.phases.phase

    def step(self, frame: Optional[ScanFrame], t: float) -> CycleResult:
        """
        Run one control-loop iteration.

        Args:
            frame: Newest scan frame, or None if nothing new arrived
            t: Current time (seconds)

        Returns:
            CycleResult for the publishing layer

        Raises:
            InsufficientLandmarksDetected: Initiation found fewer than two poles
        """
        completed = False
        if self.phases.is_initiating:
            completed = self._initiation_step(frame, t)
        elif frame is not None:
            self._localization_step(frame, t)

        if frame is not None:
            self.metrics.increment('scans_processed')

        return CycleResult(
            phase=self.phase,
            pose=self.pose if self.pose.is_set else None,
            landmarks=self.landmarks,
            initiation_completed=completed,
        )

    def _initiation_step(self, frame: Optional[ScanFrame], t: float) -> bool:
        if not self.builder.window_open:
            logger.info("started initiation")
            self.builder.start_window(t)

        if frame is not None:
            self.builder.add_cycle(self.clusterer.extract(frame))

        if not self.builder.window_elapsed(t):
            return False

        try:
            landmarks = self.builder.build(t)
        except InsufficientInitiationData as e:
            self.metrics.increment_drop(e.reason)
            logger.warning(f"Gathering data failed during initiation! {e}")
            return False

        self.landmarks = landmarks
        self.phases.complete_initiation()
        logger.info(f"Initiation complete with {len(landmarks)} pole(s)")
        return True

    def _localization_step(self, frame: ScanFrame, t: float):
        observations = self.clusterer.extract(frame)

        try:
            self.tracker.update(observations, self.landmarks, t)
        except LocalizationError as e:
            if not e.recoverable:
                raise
            self.metrics.increment_drop(e.reason, len(observations))
            logger.warning(f"Dropping {len(observations)} observation(s) this cycle: {e}")
            return

        self.pose = self.estimator.estimate(self.landmarks, self.pose, t)
        self.occlusion.estimate(self.landmarks, self.pose)

        if self.pose.is_set:
            logger.debug(f"Averaged [{self.pose.x:.6f} {self.pose.y:.6f}] {self.pose.theta:.6f} rad")
