"""
Unit tests for the phase state machine.
"""

import pytest

from pole_core.domain import Phase, PhaseStateMachine
from pole_core.errors import InvalidPhaseTransition


class TestPhaseStateMachine:
    """Tests for the one-way INITIATING -> LOCALIZING transition."""

    def test_starts_initiating(self):
        phases = PhaseStateMachine()
        assert phases.phase == Phase.INITIATING
        assert phases.is_initiating
        assert not phases.is_localizing

    def test_complete_initiation(self):
        phases = PhaseStateMachine()
        phases.complete_initiation()

        assert phases.phase == Phase.LOCALIZING
        assert phases.is_localizing

    def test_no_second_transition(self):
        """There is no way back and no repeated initiation."""
        phases = PhaseStateMachine()
        phases.complete_initiation()

        with pytest.raises(InvalidPhaseTransition):
            phases.complete_initiation()
        assert phases.is_localizing

    def test_phase_ordering(self):
        assert Phase.INITIATING < Phase.LOCALIZING
