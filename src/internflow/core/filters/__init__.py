"""Posting eligibility filters."""

from .predicates import (
    CloseDateRangeFilter,
    CompanyFilter,
    CurrentlyOpenFilter,
    LevelFilter,
    MajorFilter,
    OpenDateRangeFilter,
    PostingPredicate,
    StatusFilter,
    VisibleFilter,
    YearFilter,
    build_predicate,
)
from .composite import EligibilityFilter, ROLE_DEFAULTS, default_predicates, eligibility_for

__all__ = [
    "CloseDateRangeFilter",
    "CompanyFilter",
    "CurrentlyOpenFilter",
    "EligibilityFilter",
    "LevelFilter",
    "MajorFilter",
    "OpenDateRangeFilter",
    "PostingPredicate",
    "ROLE_DEFAULTS",
    "StatusFilter",
    "VisibleFilter",
    "YearFilter",
    "build_predicate",
    "default_predicates",
    "eligibility_for",
]
