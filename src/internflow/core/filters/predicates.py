"""Atomic posting predicates."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Protocol, runtime_checkable

import pendulum
from pendulum.parsing.exceptions import ParserError

from ...schemas import Posting, PostingLevel, PostingStatus
from ..errors import ValidationError
from ..policy import DEFAULT_POLICY, WorkflowPolicy, today


@runtime_checkable
class PostingPredicate(Protocol):
    """Predicate contract for narrowing the posting set."""

    def matches(self, posting: Posting) -> bool:
        """Return True when the posting satisfies the predicate."""


@dataclass(frozen=True)
class StatusFilter:
    status: PostingStatus

    kind = "status"

    def matches(self, posting: Posting) -> bool:
        return posting.status == self.status


@dataclass(frozen=True)
class LevelFilter:
    level: PostingLevel

    kind = "level"

    def matches(self, posting: Posting) -> bool:
        return posting.level == self.level


@dataclass(frozen=True)
class MajorFilter:
    major: str

    kind = "major"

    def matches(self, posting: Posting) -> bool:
        return posting.preferred_major.casefold() == self.major.casefold()


@dataclass(frozen=True)
class CompanyFilter:
    company: str

    kind = "company"

    def matches(self, posting: Posting) -> bool:
        return posting.company.casefold() == self.company.casefold()


@dataclass(frozen=True)
class VisibleFilter:
    kind = "visible"

    def matches(self, posting: Posting) -> bool:
        return posting.visible


@dataclass(frozen=True)
class CurrentlyOpenFilter:
    """Match postings whose application window contains today."""

    today_provider: Callable[[], date] = field(default=today, compare=False)

    kind = "currently_open"

    def matches(self, posting: Posting) -> bool:
        return posting.is_open_on(self.today_provider())


@dataclass(frozen=True)
class OpenDateRangeFilter:
    """Open date within [start, end]; a missing bound is unbounded."""

    start: date | None = None
    end: date | None = None

    kind = "open_date_range"

    def matches(self, posting: Posting) -> bool:
        return _within(posting.open_date, self.start, self.end)


@dataclass(frozen=True)
class CloseDateRangeFilter:
    """Close date within [start, end]; a missing bound is unbounded."""

    start: date | None = None
    end: date | None = None

    kind = "close_date_range"

    def matches(self, posting: Posting) -> bool:
        return _within(posting.close_date, self.start, self.end)


@dataclass(frozen=True)
class YearFilter:
    """Delegate to the policy's level-versus-year rule."""

    year_of_study: int
    policy: WorkflowPolicy = field(default=DEFAULT_POLICY, compare=False)

    kind = "year"

    def matches(self, posting: Posting) -> bool:
        return self.policy.is_year_eligible(self.year_of_study, posting.level)


def _within(value: date, start: date | None, end: date | None) -> bool:
    if start is not None and value < start:
        return False
    if end is not None and value > end:
        return False
    return True


def _parse_date(value: Any) -> date | None:
    if value is None or isinstance(value, date):
        return value
    try:
        return pendulum.parse(str(value)).date()
    except (ValueError, ParserError) as exc:
        raise ValidationError(f"Invalid date: {value!r}") from exc


def build_predicate(
    spec: dict[str, Any],
    *,
    policy: WorkflowPolicy | None = None,
    today_provider: Callable[[], date] | None = None,
) -> Any:
    """Build a predicate from a `{"kind": ..., ...}` mapping."""
    kind = str(spec.get("kind", "")).strip().lower()
    try:
        if kind == "status":
            return StatusFilter(PostingStatus(str(spec["value"]).upper()))
        if kind == "level":
            return LevelFilter(PostingLevel.parse(spec["value"]))
        if kind == "major":
            return MajorFilter(_require_text(spec, "value"))
        if kind == "company":
            return CompanyFilter(_require_text(spec, "value"))
        if kind == "visible":
            return VisibleFilter()
        if kind == "currently_open":
            return CurrentlyOpenFilter(today_provider or today)
        if kind == "open_date_range":
            return OpenDateRangeFilter(_parse_date(spec.get("start")), _parse_date(spec.get("end")))
        if kind == "close_date_range":
            return CloseDateRangeFilter(_parse_date(spec.get("start")), _parse_date(spec.get("end")))
        if kind == "year":
            return YearFilter(int(spec["value"]), policy or DEFAULT_POLICY)
    except KeyError as exc:
        raise ValidationError(f"Filter {kind!r} is missing {exc.args[0]!r}") from exc
    except ValueError as exc:
        if isinstance(exc, ValidationError):
            raise
        raise ValidationError(f"Invalid value for filter {kind!r}: {exc}") from exc
    raise ValidationError(f"Unknown filter kind: {kind!r}")


def _require_text(spec: dict[str, Any], key: str) -> str:
    value = str(spec[key]).strip()
    if not value:
        raise ValueError(f"{key} cannot be empty")
    return value
