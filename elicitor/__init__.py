"""Requirements elicitation and confirmation engine.

Turns a non-technical user's product description into a confirmed,
structured facts digest through adaptive questioning.
"""

from .errors import (
    ElicitationError,
    InvalidAdjustment,
    InvalidInput,
    InvalidTransition,
    SessionNotFound,
    UpstreamUnavailable,
)
from .session import ElicitationEngine, ElicitationSession, RoundResult

__all__ = [
    # Engine
    "ElicitationEngine",
    "ElicitationSession",
    "RoundResult",
    # Errors
    "ElicitationError",
    "InvalidInput",
    "InvalidAdjustment",
    "InvalidTransition",
    "UpstreamUnavailable",
    "SessionNotFound",
]
