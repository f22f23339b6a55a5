"""
I/O Module: hand-over of scan frames from the transport thread.

- LatestFrameSlot: lock-protected single-frame slot, newest frame wins
"""

from .latest_frame import LatestFrameSlot

__all__ = ['LatestFrameSlot']
