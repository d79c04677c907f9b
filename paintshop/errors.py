"""Error taxonomy for the production workflow engine."""

from __future__ import annotations


class WorkflowError(Exception):
    """Base class for all workflow errors; the message is user-facing."""


class ValidationError(WorkflowError, ValueError):
    """Raised when a command is missing required input or its preconditions fail."""


class NotFoundError(WorkflowError, LookupError):
    """Raised when a referenced order or item does not exist."""


class ConcurrencyConflict(WorkflowError):
    """Raised when an item changed in the store after it was loaded."""

    def __init__(self, item_id: str, expected_version: int, actual_version: int):
        self.item_id = item_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Item '{item_id}' was modified concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )


class TransitionError(WorkflowError):
    """Raised when a stage has no defined transition."""


class ExternalServiceError(WorkflowError):
    """Raised by external collaborators (webhooks, directories) on failure."""


class StoreLockTimeout(WorkflowError):
    """Raised when the store's lock file could not be acquired in time."""
