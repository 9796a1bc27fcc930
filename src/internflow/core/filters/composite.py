"""Composite eligibility filters with role-mandated defaults."""

from __future__ import annotations

from typing import Callable, Iterable, Sequence

from ...schemas import Applicant, Organization, Posting, PostingStatus, Role, Staff, role_of
from ..policy import DEFAULT_POLICY, WorkflowPolicy
from .predicates import (
    CompanyFilter,
    MajorFilter,
    PostingPredicate,
    StatusFilter,
    VisibleFilter,
    YearFilter,
)

ActorRecord = Applicant | Organization | Staff


class EligibilityFilter:
    """AND-combination of posting predicates.

    The mandatory predicates are fixed at construction; `clear` drops every
    user-added predicate and restores exactly that mandatory set.
    """

    def __init__(
        self,
        mandatory: Iterable[PostingPredicate] = (),
        extra: Iterable[PostingPredicate] = (),
    ) -> None:
        self._mandatory: tuple[PostingPredicate, ...] = tuple(mandatory)
        self._predicates: list[PostingPredicate] = list(self._mandatory)
        for predicate in extra:
            self.add(predicate)

    @property
    def predicates(self) -> Sequence[PostingPredicate]:
        return tuple(self._predicates)

    @property
    def mandatory(self) -> Sequence[PostingPredicate]:
        return self._mandatory

    def add(self, predicate: PostingPredicate) -> None:
        self._predicates.append(predicate)

    def remove(self, predicate: PostingPredicate) -> bool:
        """Remove the last matching user-added predicate; mandatory ones stay."""
        user_added = self._predicates[len(self._mandatory):]
        for index in range(len(user_added) - 1, -1, -1):
            if user_added[index] == predicate:
                del self._predicates[len(self._mandatory) + index]
                return True
        return False

    def clear(self) -> None:
        self._predicates = list(self._mandatory)

    def matches(self, posting: Posting) -> bool:
        return all(predicate.matches(posting) for predicate in self._predicates)

    def apply(self, postings: Iterable[Posting]) -> list[Posting]:
        return [posting for posting in postings if self.matches(posting)]

    def describe(self) -> list[str]:
        return [getattr(predicate, "kind", type(predicate).__name__) for predicate in self._predicates]


def _applicant_defaults(actor: Applicant, policy: WorkflowPolicy) -> list[PostingPredicate]:
    return [
        VisibleFilter(),
        StatusFilter(PostingStatus.APPROVED),
        MajorFilter(actor.major),
        YearFilter(actor.year_of_study, policy),
    ]


def _organization_defaults(actor: Organization, policy: WorkflowPolicy) -> list[PostingPredicate]:
    return [CompanyFilter(actor.company)]


def _staff_defaults(actor: Staff, policy: WorkflowPolicy) -> list[PostingPredicate]:
    return []


ROLE_DEFAULTS: dict[Role, Callable[..., list[PostingPredicate]]] = {
    Role.APPLICANT: _applicant_defaults,
    Role.ORGANIZATION: _organization_defaults,
    Role.STAFF: _staff_defaults,
}


def default_predicates(actor: ActorRecord, *, policy: WorkflowPolicy | None = None) -> list[PostingPredicate]:
    return ROLE_DEFAULTS[role_of(actor)](actor, policy or DEFAULT_POLICY)


def eligibility_for(
    actor: ActorRecord,
    *,
    policy: WorkflowPolicy | None = None,
    extra: Iterable[PostingPredicate] = (),
) -> EligibilityFilter:
    """Return a filter seeded with the role's mandatory predicates."""
    return EligibilityFilter(default_predicates(actor, policy=policy), extra)


__all__ = ["EligibilityFilter", "ROLE_DEFAULTS", "default_predicates", "eligibility_for"]
