"""Domain errors raised by the game services.

Routes translate these into HTTP responses; sweeps log them and move on.
"""


class GameError(Exception):
    """Base class for rule-engine failures that callers are expected to handle."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(GameError):
    """A referenced gameweek, team, pick, season or rule does not exist."""


class AuthorizationError(GameError):
    """The caller does not own the resource or is not an approved participant."""


class StateConflictError(GameError):
    """The operation conflicts with current state (deadline passed, duplicate, ...)."""


class RuleViolationError(StateConflictError):
    """A per-half pick limit would be exceeded."""
