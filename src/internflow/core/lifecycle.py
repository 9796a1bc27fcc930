"""Posting and candidacy state transitions.

Transitions are pure: each takes a record, checks its guard and returns the
updated copy. Nothing here reads or writes a store.
"""

from __future__ import annotations

from datetime import date

from ..schemas import Candidacy, CandidacyStatus, Posting, PostingStatus
from .errors import CapacityError, InvalidStateError, NoRequestPendingError

EDITABLE_POSTING_FIELDS = frozenset(
    {"title", "description", "level", "preferred_major", "open_date", "close_date", "visible"}
)


# -- postings -----------------------------------------------------------------


def approve_posting(posting: Posting) -> Posting:
    _require_posting_status(posting, PostingStatus.PENDING, "approved")
    return posting.model_copy(update={"status": PostingStatus.APPROVED, "visible": True})


def reject_posting(posting: Posting) -> Posting:
    _require_posting_status(posting, PostingStatus.PENDING, "rejected")
    return posting.model_copy(update={"status": PostingStatus.REJECTED, "visible": False})


def ensure_posting_editable(posting: Posting, fields: set[str]) -> None:
    if fields - {"visible"} and posting.status != PostingStatus.PENDING:
        raise InvalidStateError(
            "Only pending postings can be edited.",
            posting_id=posting.posting_id,
            status=posting.status.value,
        )


def ensure_posting_deletable(posting: Posting) -> None:
    if posting.status not in (PostingStatus.PENDING, PostingStatus.REJECTED):
        raise InvalidStateError(
            "Only pending or rejected postings can be deleted.",
            posting_id=posting.posting_id,
            status=posting.status.value,
        )


def ensure_capacity(posting: Posting) -> None:
    if posting.filled >= posting.capacity:
        raise CapacityError(
            "Posting has already been filled.",
            posting_id=posting.posting_id,
            capacity=posting.capacity,
            filled=posting.filled,
        )


def sync_fill(posting: Posting, filled: int) -> Posting:
    """Apply a recomputed fill count and move between APPROVED and FILLED."""
    if filled > posting.capacity:
        raise CapacityError(
            "Fill count would exceed posting capacity.",
            posting_id=posting.posting_id,
            capacity=posting.capacity,
            filled=filled,
        )
    status = posting.status
    if status == PostingStatus.APPROVED and filled >= posting.capacity:
        status = PostingStatus.FILLED
    elif status == PostingStatus.FILLED and filled < posting.capacity:
        status = PostingStatus.APPROVED
    if status == posting.status and filled == posting.filled:
        return posting
    return posting.model_copy(update={"filled": filled, "status": status})


def _require_posting_status(posting: Posting, expected: PostingStatus, verb: str) -> None:
    if posting.status != expected:
        raise InvalidStateError(
            f"Only {expected.value.lower()} postings can be {verb}.",
            posting_id=posting.posting_id,
            status=posting.status.value,
        )


# -- candidacies --------------------------------------------------------------


def mark_successful(candidacy: Candidacy) -> Candidacy:
    _require_undecided(candidacy, "approved")
    return candidacy.model_copy(update={"status": CandidacyStatus.SUCCESSFUL})


def mark_unsuccessful(candidacy: Candidacy) -> Candidacy:
    _require_undecided(candidacy, "rejected")
    return candidacy.model_copy(update={"status": CandidacyStatus.UNSUCCESSFUL})


def mark_accepted(candidacy: Candidacy) -> Candidacy:
    if candidacy.status != CandidacyStatus.SUCCESSFUL or candidacy.withdrawn:
        raise InvalidStateError(
            "Can only accept successful candidacies.",
            candidacy_id=candidacy.candidacy_id,
            status=candidacy.status.value,
        )
    if candidacy.accepted:
        return candidacy
    return candidacy.model_copy(update={"accepted": True})


def request_withdrawal(
    candidacy: Candidacy,
    *,
    reason: str | None = None,
    requested_on: date | None = None,
) -> Candidacy:
    if not candidacy.can_be_withdrawn:
        raise InvalidStateError(
            "Candidacy cannot be withdrawn in its current state.",
            candidacy_id=candidacy.candidacy_id,
            status=candidacy.status.value,
        )
    if candidacy.withdrawal_requested:
        return candidacy
    return candidacy.model_copy(
        update={
            "withdrawal_requested": True,
            "withdrawal_reason": reason,
            "withdrawal_requested_on": requested_on,
        }
    )


def mark_withdrawn(candidacy: Candidacy) -> Candidacy:
    """Finalize a withdrawal; also used for auto-withdrawal on acceptance."""
    return candidacy.model_copy(
        update={
            "status": CandidacyStatus.WITHDRAWN,
            "withdrawn": True,
            "withdrawal_requested": False,
            "accepted": False,
        }
    )


def approve_withdrawal(candidacy: Candidacy) -> Candidacy:
    _require_withdrawal_request(candidacy)
    return mark_withdrawn(candidacy)


def reject_withdrawal(candidacy: Candidacy) -> Candidacy:
    _require_withdrawal_request(candidacy)
    return candidacy.model_copy(
        update={
            "withdrawal_requested": False,
            "withdrawal_reason": None,
            "withdrawal_requested_on": None,
        }
    )


def ensure_candidacy_deletable(candidacy: Candidacy) -> None:
    if candidacy.status != CandidacyStatus.PENDING:
        raise InvalidStateError(
            "Can only delete pending candidacies.",
            candidacy_id=candidacy.candidacy_id,
            status=candidacy.status.value,
        )


def _require_undecided(candidacy: Candidacy, verb: str) -> None:
    if candidacy.status != CandidacyStatus.PENDING or candidacy.withdrawn:
        raise InvalidStateError(
            f"Candidacy must be pending and not withdrawn to be {verb}.",
            candidacy_id=candidacy.candidacy_id,
            status=candidacy.status.value,
        )


def _require_withdrawal_request(candidacy: Candidacy) -> None:
    if not candidacy.withdrawal_requested or candidacy.withdrawn:
        raise NoRequestPendingError(
            "No withdrawal request found for this candidacy.",
            candidacy_id=candidacy.candidacy_id,
        )
