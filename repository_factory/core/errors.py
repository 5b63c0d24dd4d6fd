"""
Error taxonomy for the repository layer.

Validation problems are raised before any I/O and are never retried.
Storage failures are not wrapped: whatever SQLAlchemy (or the driver) raises
reaches the caller unchanged. ``StorageError`` is only an alias so callers can
catch it by name.
"""

from sqlalchemy.exc import SQLAlchemyError

StorageError = SQLAlchemyError


class RepositoryError(Exception):
    """Base class for errors raised by the repository layer itself."""


class InvalidArgumentError(RepositoryError, ValueError):
    """A required argument was missing, empty or out of range."""

    def __init__(self, argument: str, message: str = ""):
        self.argument = argument
        super().__init__(message or f"Invalid argument: {argument}")


class MultipleResultsError(RepositoryError):
    """A single-result query matched more than one row."""


class ClosedResourceError(RepositoryError, RuntimeError):
    """The owning factory (and its session) has already been closed."""
