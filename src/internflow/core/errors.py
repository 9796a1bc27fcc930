"""Typed failures raised by the workflow core.

Every failure is raised before any record is written, so callers can treat
them as recoverable and render them however they like.
"""

from __future__ import annotations


class WorkflowError(Exception):
    """Base class for recoverable workflow failures."""

    kind = "workflow_error"

    def __init__(self, message: str, **details: object) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, object]:
        return {"kind": self.kind, "message": self.message, **self.details}


class ValidationError(WorkflowError, ValueError):
    """Input is malformed or violates a policy rule."""

    kind = "validation_error"


class InvalidStateError(WorkflowError):
    """Operation attempted against a record in the wrong lifecycle state."""

    kind = "invalid_state"


class CapacityError(InvalidStateError):
    """Posting has no remaining slots."""

    kind = "capacity_exceeded"


class NoRequestPendingError(InvalidStateError):
    """Withdrawal decision requested but no withdrawal request is pending."""

    kind = "no_request_pending"


class NotFoundError(WorkflowError, KeyError):
    """Referenced record does not exist."""

    kind = "not_found"


class UnauthorizedError(WorkflowError, PermissionError):
    """Actor is not allowed to perform the operation."""

    kind = "unauthorized"


__all__ = [
    "CapacityError",
    "InvalidStateError",
    "NoRequestPendingError",
    "NotFoundError",
    "UnauthorizedError",
    "ValidationError",
    "WorkflowError",
]
