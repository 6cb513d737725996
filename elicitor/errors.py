"""Exceptions surfaced by the elicitation engine.

Only caller-input violations and illegal state transitions reach the caller.
UpstreamUnavailable is raised by text-understanding adapters and absorbed by
the fact extractor, which degrades instead of failing.
"""


class ElicitationError(Exception):
    """Base class for all elicitation engine errors."""

    pass


class InvalidInput(ElicitationError):
    """Raised when caller input is malformed. No partial effect is applied."""

    pass


class InvalidAdjustment(ElicitationError):
    """Raised when an adjustment batch names an unknown field or an invalid value.

    The whole batch is rejected and the prior confirmation state is unchanged.
    """

    def __init__(self, message: str, field_path: str | None = None):
        super().__init__(message)
        self.field_path = field_path


class InvalidTransition(ElicitationError):
    """Raised when a confirmation action is not legal in the current phase."""

    def __init__(self, message: str, phase: str | None = None, action: str | None = None):
        super().__init__(message)
        self.phase = phase
        self.action = action


class UpstreamUnavailable(ElicitationError):
    """Raised by a text-understanding service that cannot be reached."""

    pass


class SessionNotFound(InvalidInput):
    """Raised when an operation names a session id the engine does not hold."""

    pass
