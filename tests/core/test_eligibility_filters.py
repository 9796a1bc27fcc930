from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import date
from typing import Any

import pytest

from internflow.core import ValidationError, WorkflowPolicy, build_predicate, eligibility_for
from internflow.core.filters import (
    CloseDateRangeFilter,
    CompanyFilter,
    CurrentlyOpenFilter,
    EligibilityFilter,
    LevelFilter,
    MajorFilter,
    OpenDateRangeFilter,
    PostingPredicate,
    StatusFilter,
    VisibleFilter,
    YearFilter,
)
from internflow.core.policy import DEFAULT_POLICY
from internflow.schemas import Applicant, Organization, Posting, PostingLevel, PostingStatus, Staff


def build_posting(**overrides: Any) -> Posting:
    data: dict[str, Any] = {
        "title": "Backend Intern",
        "level": "BASIC",
        "preferred_major": "Computer Science",
        "company": "Acme",
        "owner_id": "R-001",
        "open_date": date(2025, 2, 1),
        "close_date": date(2025, 4, 30),
        "capacity": 2,
        "status": PostingStatus.APPROVED,
        "visible": True,
    }
    data.update(overrides)
    return Posting(**data)


def test_atomic_predicates_match_expected_postings():
    posting = build_posting()

    assert StatusFilter(PostingStatus.APPROVED).matches(posting)
    assert not StatusFilter(PostingStatus.FILLED).matches(posting)
    assert LevelFilter(PostingLevel.BASIC).matches(posting)
    assert not LevelFilter(PostingLevel.ADVANCED).matches(posting)
    assert MajorFilter("computer science").matches(posting)
    assert not MajorFilter("Design").matches(posting)
    assert CompanyFilter("ACME").matches(posting)
    assert VisibleFilter().matches(posting)
    assert not VisibleFilter().matches(build_posting(visible=False))


def test_predicates_satisfy_protocol():
    assert isinstance(StatusFilter(PostingStatus.APPROVED), PostingPredicate)
    assert isinstance(CurrentlyOpenFilter(lambda: date(2025, 3, 1)), PostingPredicate)


def test_currently_open_uses_injected_clock():
    posting = build_posting()

    assert CurrentlyOpenFilter(lambda: date(2025, 2, 1)).matches(posting)
    assert CurrentlyOpenFilter(lambda: date(2025, 4, 30)).matches(posting)
    assert not CurrentlyOpenFilter(lambda: date(2025, 5, 1)).matches(posting)


def test_date_ranges_are_inclusive_and_open_ended():
    posting = build_posting()

    assert OpenDateRangeFilter(date(2025, 2, 1), date(2025, 2, 1)).matches(posting)
    assert OpenDateRangeFilter(None, date(2025, 2, 1)).matches(posting)
    assert not OpenDateRangeFilter(date(2025, 2, 2)).matches(posting)
    assert CloseDateRangeFilter(date(2025, 4, 1), date(2025, 4, 30)).matches(posting)
    assert not CloseDateRangeFilter(end=date(2025, 4, 29)).matches(posting)


def test_year_filter_follows_policy_threshold():
    intermediate = build_posting(level="INTERMEDIATE")

    assert not YearFilter(2).matches(intermediate)
    assert YearFilter(3).matches(intermediate)
    assert YearFilter(2, WorkflowPolicy(senior_year_threshold=2)).matches(intermediate)
    assert YearFilter(1).matches(build_posting(level="BASIC"))


def test_year_filter_defaults_to_shared_policy():
    predicate = YearFilter(1)

    assert predicate.policy is DEFAULT_POLICY
    assert predicate == YearFilter(1, WorkflowPolicy())
    with pytest.raises(FrozenInstanceError):
        DEFAULT_POLICY.max_active_candidacies = 10  # type: ignore[misc]


def test_composite_filter_is_conjunction():
    eligibility = EligibilityFilter([VisibleFilter()], [MajorFilter("Computer Science")])

    assert eligibility.matches(build_posting())
    assert not eligibility.matches(build_posting(visible=False))
    assert not eligibility.matches(build_posting(preferred_major="Design"))
    assert EligibilityFilter().matches(build_posting(visible=False))


def test_clear_restores_role_mandated_predicates():
    applicant = Applicant(actor_id="U-001", year_of_study=2, major="Computer Science")
    eligibility = eligibility_for(applicant)
    mandatory = list(eligibility.predicates)

    eligibility.add(LevelFilter(PostingLevel.BASIC))
    eligibility.add(CompanyFilter("Acme"))
    eligibility.clear()

    assert list(eligibility.predicates) == mandatory
    assert eligibility.describe() == ["visible", "status", "major", "year"]


def test_remove_only_touches_user_added_predicates():
    eligibility = eligibility_for(Organization(actor_id="R-001", company="Acme"))
    eligibility.add(LevelFilter(PostingLevel.BASIC))

    assert eligibility.remove(LevelFilter(PostingLevel.BASIC)) is True
    assert eligibility.remove(CompanyFilter("Acme")) is False
    assert eligibility.describe() == ["company"]


def test_role_defaults_per_actor():
    staff = eligibility_for(Staff(actor_id="S-001"))
    organization = eligibility_for(Organization(actor_id="R-001", company="Acme"))
    postings = [build_posting(company="Acme"), build_posting(company="Globex", status=PostingStatus.PENDING)]

    assert staff.describe() == []
    assert len(staff.apply(postings)) == 2
    assert [p.company for p in organization.apply(postings)] == ["Acme"]


@pytest.mark.parametrize(
    ("spec", "expected"),
    [
        ({"kind": "status", "value": "filled"}, StatusFilter(PostingStatus.FILLED)),
        ({"kind": "level", "value": "advanced"}, LevelFilter(PostingLevel.ADVANCED)),
        ({"kind": "major", "value": "Design"}, MajorFilter("Design")),
        ({"kind": "company", "value": "Acme"}, CompanyFilter("Acme")),
        ({"kind": "visible"}, VisibleFilter()),
        (
            {"kind": "open_date_range", "start": "2025-01-01", "end": "2025-02-01"},
            OpenDateRangeFilter(date(2025, 1, 1), date(2025, 2, 1)),
        ),
        ({"kind": "close_date_range", "end": date(2025, 6, 1)}, CloseDateRangeFilter(None, date(2025, 6, 1))),
        ({"kind": "year", "value": 2}, YearFilter(2)),
    ],
)
def test_build_predicate_from_mapping(spec: dict[str, Any], expected: Any):
    assert build_predicate(spec) == expected


def test_build_predicate_passes_clock_through():
    predicate = build_predicate({"kind": "currently_open"}, today_provider=lambda: date(2025, 6, 1))

    assert not predicate.matches(build_posting())


@pytest.mark.parametrize(
    "spec",
    [
        {"kind": "salary", "value": 10},
        {"kind": "status", "value": "ARCHIVED"},
        {"kind": "level"},
        {"kind": "major", "value": "  "},
        {"kind": "open_date_range", "start": "not-a-date"},
    ],
)
def test_build_predicate_rejects_bad_specs(spec: dict[str, Any]):
    with pytest.raises(ValidationError):
        build_predicate(spec)
