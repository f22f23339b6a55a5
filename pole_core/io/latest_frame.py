"""
Latest-frame slot.

Single-writer/single-reader hand-over between the transport thread and the
control loop. The loop always works on the newest frame available when it
polls; older frames that were never consumed are overwritten and counted.
"""

import threading
from typing import Optional

from pole_core.proto.scan_frame import ScanFrame
from pole_core.metrics import get_metrics


class LatestFrameSlot:
    """
    Holds at most one unconsumed scan frame.

    Usage:
        slot = LatestFrameSlot()
        slot.put(frame)        # transport thread
        frame = slot.take()    # control loop, None if nothing new
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._frame: Optional[ScanFrame] = None
        self._fresh = False
        self._sequence = 0
        self.metrics = get_metrics()

    @property
    def sequence(self) -> int:
        """Number of frames ever put into the slot."""
        with self._lock:
            return self._sequence

    def put(self, frame: ScanFrame):
        """Store a new frame, replacing any unconsumed one."""
        with self._lock:
            overwritten = self._fresh
            self._frame = frame
            self._fresh = True
            self._sequence += 1

        self.metrics.increment('scans_in')
        if overwritten:
            self.metrics.increment_drop('stale_frame')

    def take(self) -> Optional[ScanFrame]:
        """Newest frame not yet taken, or None."""
        with self._lock:
            if not self._fresh:
                return None
            self._fresh = False
            return self._frame
