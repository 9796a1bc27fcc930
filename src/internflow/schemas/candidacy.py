"""Candidacy record: one applicant's bid for one posting."""

from __future__ import annotations

from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict


class CandidacyStatus(str, Enum):
    """Decision status of a candidacy."""

    PENDING = "PENDING"
    SUCCESSFUL = "SUCCESSFUL"
    UNSUCCESSFUL = "UNSUCCESSFUL"
    WITHDRAWN = "WITHDRAWN"


ACTIVE_STATUSES = frozenset({CandidacyStatus.PENDING, CandidacyStatus.SUCCESSFUL})


class Candidacy(BaseModel):
    """Provider-neutral candidacy document."""

    candidacy_id: str
    applicant_id: str
    posting_id: str
    status: CandidacyStatus = CandidacyStatus.PENDING
    created_on: date
    withdrawal_requested: bool = False
    withdrawal_reason: str | None = None
    withdrawal_requested_on: date | None = None
    withdrawn: bool = False
    accepted: bool = False

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def is_active(self) -> bool:
        return not self.withdrawn and self.status in ACTIVE_STATUSES

    @property
    def can_be_withdrawn(self) -> bool:
        if self.withdrawn:
            return False
        if self.status == CandidacyStatus.UNSUCCESSFUL:
            return False
        return self.status in ACTIVE_STATUSES

    @property
    def counts_toward_fill(self) -> bool:
        return self.status == CandidacyStatus.SUCCESSFUL and not self.withdrawn
