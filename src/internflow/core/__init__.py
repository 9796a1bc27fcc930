"""Core workflow engine components."""

from __future__ import annotations

# NOTE: keep imports explicit for export clarity.
from .accounts import AccountService
from .errors import (
    CapacityError,
    InvalidStateError,
    NoRequestPendingError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
    WorkflowError,
)
from .filters import EligibilityFilter, PostingPredicate, build_predicate, eligibility_for
from .ids import IdGenerator, SequentialIdGenerator
from .locks import KeyedLocks
from .orchestrator import CandidacyOrchestrator
from .policy import WorkflowPolicy
from .postings import PostingService

__all__ = [
    "AccountService",
    "CandidacyOrchestrator",
    "CapacityError",
    "EligibilityFilter",
    "IdGenerator",
    "InvalidStateError",
    "KeyedLocks",
    "NoRequestPendingError",
    "NotFoundError",
    "PostingPredicate",
    "PostingService",
    "SequentialIdGenerator",
    "UnauthorizedError",
    "ValidationError",
    "WorkflowError",
    "WorkflowPolicy",
    "build_predicate",
    "eligibility_for",
]
