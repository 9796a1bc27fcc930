"""Staff-facing posting report."""

from __future__ import annotations

from collections import Counter
from dataclasses import asdict, dataclass, field
from typing import Any, Iterable

from .core.filters import EligibilityFilter
from .schemas import Candidacy, CandidacyStatus, Posting


@dataclass(slots=True)
class PostingReportRow:
    """One posting with its candidacy tallies."""

    posting_id: str
    title: str
    company: str
    level: str
    preferred_major: str
    status: str
    visible: bool
    capacity: int
    filled: int
    open_date: str
    close_date: str
    candidacies: dict[str, int]


@dataclass(slots=True)
class PostingReport:
    """Filtered posting rows plus totals."""

    rows: list[PostingReportRow]
    by_status: dict[str, int] = field(default_factory=dict)
    by_level: dict[str, int] = field(default_factory=dict)
    total_capacity: int = 0
    total_filled: int = 0
    filters: list[str] = field(default_factory=list)


def build_posting_report(
    postings: Iterable[Posting],
    candidacies: Iterable[Candidacy],
    eligibility: EligibilityFilter | None = None,
) -> PostingReport:
    selected = eligibility.apply(postings) if eligibility else list(postings)
    selected.sort(key=lambda posting: (posting.company.casefold(), posting.title.casefold()))

    tallies: dict[str, Counter[str]] = {}
    for candidacy in candidacies:
        tallies.setdefault(candidacy.posting_id, Counter())[candidacy.status.value] += 1

    rows = [_row(posting, tallies.get(posting.posting_id, Counter())) for posting in selected]
    return PostingReport(
        rows=rows,
        by_status=dict(Counter(row.status for row in rows)),
        by_level=dict(Counter(row.level for row in rows)),
        total_capacity=sum(row.capacity for row in rows),
        total_filled=sum(row.filled for row in rows),
        filters=eligibility.describe() if eligibility else [],
    )


def _row(posting: Posting, tally: Counter[str]) -> PostingReportRow:
    return PostingReportRow(
        posting_id=posting.posting_id,
        title=posting.title,
        company=posting.company,
        level=posting.level.name,
        preferred_major=posting.preferred_major,
        status=posting.status.value,
        visible=posting.visible,
        capacity=posting.capacity,
        filled=posting.filled,
        open_date=posting.open_date.isoformat(),
        close_date=posting.close_date.isoformat(),
        candidacies={status.value: tally.get(status.value, 0) for status in CandidacyStatus},
    )


def report_to_dict(report: PostingReport) -> dict[str, Any]:
    return asdict(report)
