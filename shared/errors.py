"""Domain errors raised by services and mapped to failure results at the action boundary."""

from typing import Optional


class AppError(Exception):
    """Base class for all expected, user-facing failures."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(AppError):
    """A load-bearing document (order, product, user) does not exist."""


class ValidationError(AppError):
    """Input rejected before any write."""


class DuplicateError(AppError):
    """A unique value is already taken."""


class InvalidTransitionError(AppError):
    """The requested lifecycle step is not allowed from the order's current state."""

    def __init__(self, message: str, current_status: Optional[str] = None):
        self.current_status = current_status
        super().__init__(message)


class ConflictError(AppError):
    """The order was modified concurrently; reload and retry."""
