from __future__ import annotations


class XiDachError(Exception):
    """Base class for score engine errors."""


class DomainValidationError(XiDachError, ValueError):
    """Raised when scoring or roster input breaks a game rule."""


class StateError(XiDachError):
    """Raised when an operation is not permitted in the session's current state."""

    def __init__(self, action: str, status: str) -> None:
        super().__init__(f"cannot {action} while session is {status}")
        self.action = action
        self.status = status


class InvariantViolation(XiDachError):
    """Raised when stored data breaks the zero-sum bookkeeping.

    Never recovered from by adjusting numbers: the caller gets no settlement.
    """
