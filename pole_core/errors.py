"""
Localization error taxonomy.

Every failure path of the pipeline raises one of these instead of aborting.
Each error carries the metrics drop-reason code it is counted under and
whether the control loop may continue after it.
"""


class LocalizationError(Exception):
    """Base class for all pipeline errors."""

    reason = 'localization_error'
    recoverable = True


class InsufficientInitiationData(LocalizationError):
    """Too few scan cycles gathered during the initiation window."""

    reason = 'insufficient_initiation_data'


class InsufficientLandmarksDetected(LocalizationError):
    """Fewer than two landmarks found after a sampled initiation window."""

    reason = 'insufficient_landmarks'
    recoverable = False


class UnmatchedObservation(LocalizationError):
    """Observation could not be associated with any landmark."""

    reason = 'unmatched_observation'


class AmbiguousPoseSolution(LocalizationError):
    """Neither or both circle-intersection roots passed disambiguation."""

    reason = 'ambiguous_pose'


class DegenerateCircleGeometry(LocalizationError):
    """Range circles around a landmark pair cannot be made to intersect."""

    reason = 'degenerate_geometry'


class InvalidPhaseTransition(LocalizationError):
    """Phase change requested that the state machine does not allow."""

    reason = 'invalid_phase_transition'
    recoverable = False
