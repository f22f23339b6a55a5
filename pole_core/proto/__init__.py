"""
Protocol Module: Message schemas.

- ScanFrame: raw range/intensity sweep from the scanner
- Pose: platform pose output (with explicit unset placeholder)
- LandmarkPosition: per-landmark map position output
"""

from .scan_frame import ScanFrame
from .pose import (
    Pose,
    LandmarkPosition,
    FIXED_FRAME_ID,
    create_unset_pose,
)

__all__ = [
    'ScanFrame',
    'Pose',
    'LandmarkPosition',
    'FIXED_FRAME_ID',
    'create_unset_pose',
]
