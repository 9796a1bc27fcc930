"""Posting CRUD, staff approval and visibility control."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Any, Callable

from pydantic import ValidationError as PydanticValidationError

from ..schemas import Applicant, Organization, Posting, PostingLevel, Role, Staff, role_of
from . import lifecycle
from .errors import InvalidStateError, UnauthorizedError, ValidationError
from .filters import EligibilityFilter, eligibility_for
from .locks import KeyedLocks
from .orchestrator import CandidacyOrchestrator
from .policy import DEFAULT_POLICY, WorkflowPolicy

if TYPE_CHECKING:
    from ..store import CandidacyRepository, PostingRepository

ActorRecord = Applicant | Organization | Staff


class PostingService:
    """Manage postings on behalf of organizations and staff.

    Fill count and FILLED status are owned by the orchestrator; this service
    asks it to recompute after approval instead of touching `filled` itself.
    """

    def __init__(
        self,
        postings: "PostingRepository",
        candidacies: "CandidacyRepository",
        orchestrator: CandidacyOrchestrator,
        *,
        policy: WorkflowPolicy | None = None,
        locks: KeyedLocks | None = None,
    ) -> None:
        self._postings = postings
        self._candidacies = candidacies
        self._orchestrator = orchestrator
        self._policy = policy or DEFAULT_POLICY
        self._locks = locks or KeyedLocks()

    def get(self, posting_id: str) -> Posting:
        return self._postings.get(posting_id)

    def list_all(self) -> list[Posting]:
        return self._postings.all()

    def eligibility_for(self, actor: ActorRecord) -> EligibilityFilter:
        return eligibility_for(actor, policy=self._policy)

    def list_for(self, actor: ActorRecord, eligibility: EligibilityFilter | None = None) -> list[Posting]:
        """Return the postings the actor may see under its (or the given) filter."""
        active_filter = eligibility or self.eligibility_for(actor)
        return active_filter.apply(self._postings.all())

    def create(
        self,
        organization: Organization,
        title: str,
        description: str,
        level: PostingLevel | str,
        major: str,
        open_date: date,
        close_date: date,
        capacity: int,
    ) -> Posting:
        if not organization.approved:
            raise UnauthorizedError(
                "Organization has not been authorized by staff.",
                actor_id=organization.actor_id,
            )
        quota = self._policy.max_postings_per_organization
        with self._locks.hold(organizations=[organization.actor_id]):
            if len(self._postings.by_owner(organization.actor_id)) >= quota:
                raise ValidationError(
                    f"Organization has reached the maximum of {quota} postings.",
                    reason="quota",
                    actor_id=organization.actor_id,
                )
            posting = _build_posting(
                title=title,
                description=description,
                level=level,
                preferred_major=major,
                company=organization.company,
                owner_id=organization.actor_id,
                open_date=open_date,
                close_date=close_date,
                capacity=capacity,
            )
            return self._postings.save(posting)

    def edit(
        self,
        posting_id: str,
        fields: dict[str, Any],
        *,
        actor: ActorRecord | None = None,
    ) -> Posting:
        unknown = set(fields) - lifecycle.EDITABLE_POSTING_FIELDS
        if unknown:
            raise ValidationError(
                f"Fields cannot be edited: {', '.join(sorted(unknown))}",
                fields=sorted(unknown),
            )
        with self._locks.hold(postings=[posting_id]):
            posting = self._postings.get(posting_id)
            self._require_owner(actor, posting)
            lifecycle.ensure_posting_editable(posting, set(fields))
            merged = posting.model_dump()
            merged.update(fields)
            return self._postings.update(_build_posting(**merged))

    def set_visibility(self, posting_id: str, visible: bool, *, actor: ActorRecord | None = None) -> Posting:
        with self._locks.hold(postings=[posting_id]):
            posting = self._postings.get(posting_id)
            self._require_owner(actor, posting)
            if posting.visible == visible:
                return posting
            return self._postings.update(posting.model_copy(update={"visible": bool(visible)}))

    def delete(self, organization: Organization, posting_id: str) -> None:
        with self._locks.hold(organizations=[organization.actor_id], postings=[posting_id]):
            posting = self._postings.get(posting_id)
            self._require_owner(organization, posting)
            lifecycle.ensure_posting_deletable(posting)
            dependents = self._candidacies.by_posting(posting_id)
            if dependents:
                raise InvalidStateError(
                    "Posting still has candidacies attached.",
                    posting_id=posting_id,
                    candidacies=len(dependents),
                )
            self._postings.delete(posting_id)

    def approve(self, posting_id: str, *, actor: ActorRecord | None = None) -> Posting:
        _require_staff(actor)
        with self._locks.hold(postings=[posting_id]):
            self._postings.update(lifecycle.approve_posting(self._postings.get(posting_id)))
            return self._orchestrator.recompute_posting(posting_id)

    def reject(self, posting_id: str, *, actor: ActorRecord | None = None) -> Posting:
        _require_staff(actor)
        with self._locks.hold(postings=[posting_id]):
            return self._postings.update(lifecycle.reject_posting(self._postings.get(posting_id)))

    @staticmethod
    def _require_owner(actor: ActorRecord | None, posting: Posting) -> None:
        if actor is None:
            return
        if role_of(actor) != Role.ORGANIZATION or actor.actor_id != posting.owner_id:
            raise UnauthorizedError(
                "Only the owning organization may modify this posting.",
                actor_id=actor.actor_id,
                posting_id=posting.posting_id,
            )


def _require_staff(actor: ActorRecord | None) -> None:
    if actor is not None and role_of(actor) != Role.STAFF:
        raise UnauthorizedError("Only staff may approve or reject postings.", actor_id=actor.actor_id)


def _build_posting(**values: Any) -> Posting:
    try:
        return Posting(**values)
    except PydanticValidationError as exc:
        problems = [
            f"{'.'.join(str(part) for part in error['loc']) or 'posting'}: {error['msg']}"
            for error in exc.errors()
        ]
        raise ValidationError("Invalid posting: " + "; ".join(problems), errors=problems) from exc
