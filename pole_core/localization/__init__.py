"""
Localization Module: pole extraction, mapping, tracking, triangulation.

Key classes:
- ScanClusterer: Reflective-beam filter and polar clustering
- LandmarkMapBuilder: Initiation window and map frame fixing
- LandmarkTracker: Nearest-neighbour association per cycle
- PoseEstimator: Two-circle multilateration and root disambiguation
- OcclusionEstimator: Expected readings for hidden landmarks
- PoleLocalizationPipeline: One control-loop iteration per scan frame
"""

from .geometry import (
    ScanPoint,
    XYPoint,
    normalize_angle,
    polar_to_xy,
    circular_mean,
    expected_observation,
)
from .scan_clusterer import (
    ScanClusterer,
    ScanClusterConfig,
    cluster_scan_points,
)
from .landmark import Landmark, visible_landmarks
from .landmark_map_builder import (
    LandmarkMapBuilder,
    InitiationConfig,
    to_map_frame,
)
from .landmark_tracker import LandmarkTracker, AssociationResult
from .pose_estimator import (
    PoseEstimator,
    PoseEstimatorConfig,
    CircleIntersection,
    intersect_circles,
    circle_discriminant,
)
from .occlusion_estimator import OcclusionEstimator
from .localization_pipeline import (
    PoleLocalizationPipeline,
    PipelineConfig,
    CycleResult,
)

__all__ = [
    # Geometry
    'ScanPoint',
    'XYPoint',
    'normalize_angle',
    'polar_to_xy',
    'circular_mean',
    'expected_observation',
    # Extraction
    'ScanClusterer',
    'ScanClusterConfig',
    'cluster_scan_points',
    # Map
    'Landmark',
    'visible_landmarks',
    'LandmarkMapBuilder',
    'InitiationConfig',
    'to_map_frame',
    # Tracking
    'LandmarkTracker',
    'AssociationResult',
    # Estimation
    'PoseEstimator',
    'PoseEstimatorConfig',
    'CircleIntersection',
    'intersect_circles',
    'circle_discriminant',
    'OcclusionEstimator',
    # Pipeline
    'PoleLocalizationPipeline',
    'PipelineConfig',
    'CycleResult',
]
