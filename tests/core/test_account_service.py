from __future__ import annotations

import pytest

from internflow.core import AccountService, NotFoundError, UnauthorizedError, ValidationError
from internflow.schemas import Applicant, Organization, Staff
from internflow.store import ActorDirectory

STAFF = Staff(actor_id="S-001", name="Admin")


@pytest.fixture
def accounts() -> AccountService:
    service = AccountService(ActorDirectory())
    service.register(STAFF)
    service.register(Organization(actor_id="R-001", company="Acme"))
    service.register(Applicant(actor_id="U-001", year_of_study=3, major="Computer Science"))
    return service


def test_register_rejects_duplicate_ids(accounts: AccountService):
    with pytest.raises(ValidationError):
        accounts.register(Staff(actor_id="S-001"))


def test_staff_approves_pending_organization(accounts: AccountService):
    assert [org.actor_id for org in accounts.pending_organizations()] == ["R-001"]

    approved = accounts.approve_organization(STAFF, "R-001")

    assert approved.approved is True
    assert accounts.get("R-001").approved is True
    assert accounts.pending_organizations() == []
    assert accounts.approve_organization(STAFF, "R-001") == approved


def test_staff_rejects_pending_organization(accounts: AccountService):
    accounts.reject_organization(STAFF, "R-001")

    with pytest.raises(NotFoundError):
        accounts.get("R-001")


def test_authorized_organization_cannot_be_rejected(accounts: AccountService):
    accounts.approve_organization(STAFF, "R-001")

    with pytest.raises(ValidationError):
        accounts.reject_organization(STAFF, "R-001")


def test_only_staff_authorizes_organizations(accounts: AccountService):
    applicant = accounts.get("U-001")

    with pytest.raises(UnauthorizedError):
        accounts.approve_organization(applicant, "R-001")
    with pytest.raises(ValidationError):
        accounts.approve_organization(STAFF, "U-001")
