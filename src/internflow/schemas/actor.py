"""Actor records for the three workflow roles."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class Role(str, Enum):
    """Closed set of workflow roles."""

    APPLICANT = "applicant"
    ORGANIZATION = "organization"
    STAFF = "staff"


class Applicant(BaseModel):
    """Student applying for postings."""

    role: Literal["applicant"] = "applicant"
    actor_id: str
    name: str = ""
    year_of_study: int = Field(ge=1, le=4)
    major: str = Field(min_length=1)

    model_config = ConfigDict(extra="forbid", frozen=True)


class Organization(BaseModel):
    """Representative of a company that lists postings."""

    role: Literal["organization"] = "organization"
    actor_id: str
    name: str = ""
    company: str = Field(min_length=1)
    department: str | None = None
    position: str | None = None
    approved: bool = False

    model_config = ConfigDict(extra="forbid", frozen=True)


class Staff(BaseModel):
    """Career centre staff member acting as gatekeeper."""

    role: Literal["staff"] = "staff"
    actor_id: str
    name: str = ""
    department: str | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)


Actor = Annotated[Union[Applicant, Organization, Staff], Field(discriminator="role")]

_ACTOR_ADAPTER: TypeAdapter[Actor] = TypeAdapter(Actor)


def parse_actor(raw: dict) -> Applicant | Organization | Staff:
    """Validate a raw mapping into the matching actor record."""
    return _ACTOR_ADAPTER.validate_python(raw)


def role_of(actor: Applicant | Organization | Staff) -> Role:
    return Role(actor.role)
