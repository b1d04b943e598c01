"""Squad orchestration: roster lifecycle, transfers and the chip state machine."""

from fplsquad.season.manager import SquadManager
from fplsquad.season.state_machine import ChipPhase, can_transition, detect_phase

__all__ = [
    "SquadManager",
    "ChipPhase",
    "can_transition",
    "detect_phase",
]
