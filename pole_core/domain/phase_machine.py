"""
Phase State Machine.

The node starts in INITIATING and moves to LOCALIZING exactly once, when the
landmark map has been built. There is no way back.
"""

import logging
from enum import IntEnum

from pole_core.errors import InvalidPhaseTransition

logger = logging.getLogger(__name__)


class Phase(IntEnum):
    """Top-level operating phase."""

    INITIATING = 0
    LOCALIZING = 1


class PhaseStateMachine:
    """
    Two-state, one-way phase holder.

    Usage:
        phases = PhaseStateMachine()
        if phases.is_initiating:
            ...
            phases.complete_initiation()
    """

    def __init__(self):
        self._phase = Phase.INITIATING

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def is_initiating(self) -> bool:
        return self._phase == Phase.INITIATING

    @property
    def is_localizing(self) -> bool:
        return self._phase == Phase.LOCALIZING

    def complete_initiation(self):
        """
        Move INITIATING -> LOCALIZING.

        Raises:
            InvalidPhaseTransition: If already localizing
        """
        if self._phase != Phase.INITIATING:
            raise InvalidPhaseTransition(f"Cannot complete initiation from {self._phase.name}")
        self._phase = Phase.LOCALIZING
        logger.info("started localization")
