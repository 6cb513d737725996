"""Burr-based orchestration of questioning rounds.

Each submitted answer runs one small state machine: extract facts, score
them, decide, then either pick the next question or hand over to
confirmation.
"""

from .burr_actions import NEXT_STEP_CONTINUE, NEXT_STEP_PROCEED
from .workflow_builder import (
    TERMINAL_STEPS,
    ElicitationRoundProgressHook,
    build_round_application,
    default_round_state,
    run_round,
)

__all__ = [
    "NEXT_STEP_CONTINUE",
    "NEXT_STEP_PROCEED",
    "TERMINAL_STEPS",
    "ElicitationRoundProgressHook",
    "build_round_application",
    "default_round_state",
    "run_round",
]
