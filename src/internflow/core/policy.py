"""Tunable workflow limits and the year-eligibility rule."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

import pendulum

from ..schemas import PostingLevel


def today() -> date:
    return pendulum.today().date()


@dataclass(frozen=True)
class WorkflowPolicy:
    """Configuration thresholds for the posting and candidacy workflow."""

    max_active_candidacies: int = 3
    max_postings_per_organization: int = 5
    senior_year_threshold: int = 3

    def is_junior(self, year_of_study: int) -> bool:
        return year_of_study < self.senior_year_threshold

    def is_year_eligible(self, year_of_study: int, level: PostingLevel) -> bool:
        """Juniors may only take BASIC postings; seniors may take any level."""
        if self.is_junior(year_of_study):
            return level == PostingLevel.BASIC
        return True


DEFAULT_POLICY = WorkflowPolicy()


def build_policy(settings: dict | None = None) -> WorkflowPolicy:
    """Build a policy from a `policy` settings section; missing keys keep defaults."""
    return WorkflowPolicy(**(settings or {}))
