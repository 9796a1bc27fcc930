"""Candidacy orchestration: guarded transitions plus fill recomputation."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Callable, Iterable

from ..schemas import Applicant, Candidacy, Organization, Posting, PostingStatus, Role, Staff, role_of
from . import lifecycle
from .errors import InvalidStateError, UnauthorizedError, ValidationError
from .ids import IdGenerator, SequentialIdGenerator
from .locks import KeyedLocks
from .policy import DEFAULT_POLICY, WorkflowPolicy, today

if TYPE_CHECKING:
    from ..store import CandidacyRepository, PostingRepository

ActorRecord = Applicant | Organization | Staff


class CandidacyOrchestrator:
    """Coordinates candidacy transitions and keeps posting fill state in sync.

    Each public mutation runs under the applicant's and posting's locks and is
    all-or-nothing: guards are checked and the posting's fill count is
    recomputed (from the store, with the pending candidacy changes overlaid)
    before anything is written.
    """

    def __init__(
        self,
        postings: "PostingRepository",
        candidacies: "CandidacyRepository",
        *,
        id_generator: IdGenerator | None = None,
        policy: WorkflowPolicy | None = None,
        locks: KeyedLocks | None = None,
        today_provider: Callable[[], date] | None = None,
    ) -> None:
        self._postings = postings
        self._candidacies = candidacies
        self._today = today_provider or today
        self._ids = id_generator or SequentialIdGenerator(today_provider=self._today)
        self._policy = policy or DEFAULT_POLICY
        self._locks = locks or KeyedLocks()

    @property
    def policy(self) -> WorkflowPolicy:
        return self._policy

    # -- queries ----------------------------------------------------------------

    def get(self, candidacy_id: str) -> Candidacy:
        return self._candidacies.get(candidacy_id)

    def list_all(self) -> list[Candidacy]:
        return self._candidacies.all()

    def list_for_applicant(self, applicant_id: str) -> list[Candidacy]:
        return self._candidacies.by_applicant(applicant_id)

    def list_for_posting(self, posting_id: str) -> list[Candidacy]:
        return self._candidacies.by_posting(posting_id)

    def pending_withdrawals(self) -> list[Candidacy]:
        return self._candidacies.pending_withdrawals()

    # -- applicant actions ------------------------------------------------------

    def submit(self, applicant: Applicant, posting_id: str) -> Candidacy:
        with self._locks.hold(applicants=[applicant.actor_id], postings=[posting_id]):
            posting = self._postings.get(posting_id)
            self._check_submission(applicant, posting)
            candidacy = Candidacy(
                candidacy_id=self._ids.next_id(),
                applicant_id=applicant.actor_id,
                posting_id=posting.posting_id,
                created_on=self._today(),
            )
            return self._candidacies.save(candidacy)

    def accept(self, candidacy_id: str, *, actor: ActorRecord | None = None) -> Candidacy:
        """Accept a successful offer and withdraw the applicant's other candidacies.

        Retrying on an already accepted candidacy is a no-op apart from
        withdrawing anything that became active in between.
        """
        applicant_id = self._candidacies.get(candidacy_id).applicant_id
        with self._locks.hold(applicants=[applicant_id]):
            candidacy = self._candidacies.get(candidacy_id)
            self._require_applicant(actor, candidacy)
            accepted = lifecycle.mark_accepted(candidacy)
            siblings = [
                item for item in self._candidacies.by_applicant(applicant_id)
                if item.candidacy_id != candidacy_id
            ]
            if any(item.accepted and item.counts_toward_fill for item in siblings):
                raise InvalidStateError(
                    "Applicant has already accepted another placement.",
                    candidacy_id=candidacy_id,
                )
            withdrawn = [lifecycle.mark_withdrawn(item) for item in siblings if item.is_active]
            updates = [accepted, *withdrawn]
            posting_ids = {item.posting_id for item in updates}
            with self._locks.hold(postings=posting_ids):
                self._commit(posting_ids, updates)
        return accepted

    def request_withdrawal(
        self,
        candidacy_id: str,
        *,
        reason: str | None = None,
        actor: ActorRecord | None = None,
    ) -> Candidacy:
        candidacy = self._candidacies.get(candidacy_id)
        with self._locks.hold(applicants=[candidacy.applicant_id], postings=[candidacy.posting_id]):
            candidacy = self._candidacies.get(candidacy_id)
            self._require_applicant(actor, candidacy)
            updated = lifecycle.request_withdrawal(candidacy, reason=reason, requested_on=self._today())
            return self._candidacies.update(updated)

    def delete(self, candidacy_id: str, *, actor: ActorRecord | None = None) -> None:
        candidacy = self._candidacies.get(candidacy_id)
        with self._locks.hold(applicants=[candidacy.applicant_id], postings=[candidacy.posting_id]):
            candidacy = self._candidacies.get(candidacy_id)
            self._require_applicant(actor, candidacy)
            lifecycle.ensure_candidacy_deletable(candidacy)
            self._candidacies.delete(candidacy_id)
            self._commit([candidacy.posting_id], [])

    # -- organization actions ---------------------------------------------------

    def approve(self, candidacy_id: str, *, actor: ActorRecord | None = None) -> Candidacy:
        candidacy = self._candidacies.get(candidacy_id)
        with self._locks.hold(applicants=[candidacy.applicant_id], postings=[candidacy.posting_id]):
            candidacy = self._candidacies.get(candidacy_id)
            posting = self._postings.get(candidacy.posting_id)
            self._require_owner(actor, posting)
            updated = lifecycle.mark_successful(candidacy)
            current = lifecycle.sync_fill(posting, self._candidacies.count_filled(posting.posting_id))
            lifecycle.ensure_capacity(current)
            if self._candidacies.has_successful(candidacy.applicant_id, exclude=candidacy_id):
                raise InvalidStateError(
                    "Applicant already has a successful candidacy.",
                    candidacy_id=candidacy_id,
                    applicant_id=candidacy.applicant_id,
                )
            self._commit([posting.posting_id], [updated])
            return updated

    def reject(self, candidacy_id: str, *, actor: ActorRecord | None = None) -> Candidacy:
        candidacy = self._candidacies.get(candidacy_id)
        with self._locks.hold(postings=[candidacy.posting_id]):
            candidacy = self._candidacies.get(candidacy_id)
            self._require_owner(actor, self._postings.get(candidacy.posting_id))
            updated = lifecycle.mark_unsuccessful(candidacy)
            self._commit([candidacy.posting_id], [updated])
            return updated

    # -- staff actions ----------------------------------------------------------

    def approve_withdrawal(self, candidacy_id: str, *, actor: ActorRecord | None = None) -> Candidacy:
        self._require_role(actor, Role.STAFF)
        candidacy = self._candidacies.get(candidacy_id)
        with self._locks.hold(applicants=[candidacy.applicant_id], postings=[candidacy.posting_id]):
            candidacy = self._candidacies.get(candidacy_id)
            updated = lifecycle.approve_withdrawal(candidacy)
            self._commit([candidacy.posting_id], [updated])
            return updated

    def reject_withdrawal(self, candidacy_id: str, *, actor: ActorRecord | None = None) -> Candidacy:
        self._require_role(actor, Role.STAFF)
        candidacy = self._candidacies.get(candidacy_id)
        with self._locks.hold(applicants=[candidacy.applicant_id], postings=[candidacy.posting_id]):
            candidacy = self._candidacies.get(candidacy_id)
            updated = lifecycle.reject_withdrawal(candidacy)
            return self._candidacies.update(updated)

    # -- fill accounting --------------------------------------------------------

    def recompute_posting(self, posting_id: str) -> Posting:
        """Recount the posting's successful candidacies and sync its status."""
        with self._locks.hold(postings=[posting_id]):
            return self._commit([posting_id], [])[0]

    def _commit(self, posting_ids: Iterable[str], updates: list[Candidacy]) -> list[Posting]:
        synced: list[Posting] = []
        for posting_id in sorted(set(posting_ids)):
            posting = self._postings.get(posting_id)
            filled = self._candidacies.count_filled(posting_id, overlay=updates)
            synced.append(lifecycle.sync_fill(posting, filled))
        if updates:
            self._candidacies.update_many(updates)
        for posting in synced:
            self._postings.update(posting)
        return synced

    # -- guards -----------------------------------------------------------------

    def _check_submission(self, applicant: Applicant, posting: Posting) -> None:
        applicant_id = applicant.actor_id
        limit = self._policy.max_active_candidacies
        if self._candidacies.count_active(applicant_id) >= limit:
            raise ValidationError(
                f"Applicant has reached the maximum of {limit} active candidacies.",
                reason="quota",
                applicant_id=applicant_id,
            )
        if self._candidacies.has_successful(applicant_id):
            raise ValidationError(
                "Applicant already has a successful candidacy.",
                reason="already_successful",
                applicant_id=applicant_id,
            )
        if not self._policy.is_year_eligible(applicant.year_of_study, posting.level):
            raise ValidationError(
                "Junior applicants are only eligible for basic-level postings.",
                reason="year_ineligible",
                year_of_study=applicant.year_of_study,
                level=posting.level.name,
            )
        if posting.status != PostingStatus.APPROVED:
            raise ValidationError(
                "Posting is not open for applications.",
                reason="posting_not_approved",
                status=posting.status.value,
            )
        if posting.status == PostingStatus.FILLED or posting.filled >= posting.capacity:
            raise ValidationError("Posting has been filled.", reason="posting_filled")
        if self._today() > posting.close_date:
            raise ValidationError(
                "Posting closing date has passed.",
                reason="posting_closed",
                close_date=posting.close_date.isoformat(),
            )
        if any(
            item.posting_id == posting.posting_id and item.is_active
            for item in self._candidacies.by_applicant(applicant_id)
        ):
            raise ValidationError(
                "Applicant already has an active candidacy for this posting.",
                reason="duplicate",
                posting_id=posting.posting_id,
            )

    @staticmethod
    def _require_role(actor: ActorRecord | None, role: Role) -> None:
        if actor is not None and role_of(actor) != role:
            raise UnauthorizedError(
                f"Only {role.value} actors may perform this action.",
                actor_id=actor.actor_id,
            )

    def _require_owner(self, actor: ActorRecord | None, posting: Posting) -> None:
        self._require_role(actor, Role.ORGANIZATION)
        if actor is not None and actor.actor_id != posting.owner_id:
            raise UnauthorizedError(
                "Organization does not own this posting.",
                actor_id=actor.actor_id,
                posting_id=posting.posting_id,
            )

    def _require_applicant(self, actor: ActorRecord | None, candidacy: Candidacy) -> None:
        self._require_role(actor, Role.APPLICANT)
        if actor is not None and actor.actor_id != candidacy.applicant_id:
            raise UnauthorizedError(
                "Candidacy belongs to another applicant.",
                actor_id=actor.actor_id,
                candidacy_id=candidacy.candidacy_id,
            )
