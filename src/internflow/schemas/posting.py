"""Posting record and its enumerations."""

from __future__ import annotations

from datetime import date
from enum import Enum, IntEnum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator


class PostingLevel(IntEnum):
    """Seniority level of a posting, ordered BASIC < INTERMEDIATE < ADVANCED."""

    BASIC = 1
    INTERMEDIATE = 2
    ADVANCED = 3

    @classmethod
    def parse(cls, value: "PostingLevel | str | int") -> "PostingLevel":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError as exc:
                raise ValueError(f"Unknown posting level: {value!r}") from exc
        return cls(value)


class PostingStatus(str, Enum):
    """Approval status of a posting."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    FILLED = "FILLED"


class Posting(BaseModel):
    """Internship posting listed by an organization."""

    posting_id: str = Field(default_factory=lambda: uuid4().hex)
    title: str = Field(min_length=1)
    description: str = ""
    level: PostingLevel
    preferred_major: str = Field(min_length=1)
    company: str = Field(min_length=1)
    owner_id: str
    open_date: date
    close_date: date
    capacity: int = Field(gt=0)
    filled: int = Field(default=0, ge=0)
    status: PostingStatus = PostingStatus.PENDING
    visible: bool = False

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("level", mode="before")
    @classmethod
    def _coerce_level(cls, value: object) -> PostingLevel:
        return PostingLevel.parse(value)  # type: ignore[arg-type]

    @field_serializer("level", when_used="json")
    def _serialize_level(self, level: PostingLevel) -> str:
        return level.name

    @model_validator(mode="after")
    def _check_dates_and_fill(self) -> "Posting":
        if self.open_date >= self.close_date:
            raise ValueError("open_date must be before close_date")
        if self.filled > self.capacity:
            raise ValueError("filled cannot exceed capacity")
        return self

    @property
    def remaining(self) -> int:
        return self.capacity - self.filled

    def is_open_on(self, day: date) -> bool:
        return self.open_date <= day <= self.close_date
