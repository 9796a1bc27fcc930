"""Pydantic schema definitions for workflow records."""

from __future__ import annotations

from .actor import Actor, Applicant, Organization, Role, Staff, parse_actor, role_of
from .candidacy import ACTIVE_STATUSES, Candidacy, CandidacyStatus
from .posting import Posting, PostingLevel, PostingStatus

__all__ = [
    "ACTIVE_STATUSES",
    "Actor",
    "Applicant",
    "Candidacy",
    "CandidacyStatus",
    "Organization",
    "Posting",
    "PostingLevel",
    "PostingStatus",
    "Role",
    "Staff",
    "parse_actor",
    "role_of",
]
