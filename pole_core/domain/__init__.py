"""
Domain Module: Operating phases of the localization node.
"""

from .phase_machine import Phase, PhaseStateMachine

__all__ = [
    'Phase',
    'PhaseStateMachine',
]
