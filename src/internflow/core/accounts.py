"""Actor registration and staff authorization of organizations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..schemas import Applicant, Organization, Role, Staff, role_of
from .errors import UnauthorizedError, ValidationError

if TYPE_CHECKING:
    from ..store import ActorDirectory

ActorRecord = Applicant | Organization | Staff


class AccountService:
    """Register actors and let staff authorize organization representatives."""

    def __init__(self, directory: "ActorDirectory") -> None:
        self._directory = directory

    def register(self, actor: ActorRecord) -> ActorRecord:
        return self._directory.save(actor)

    def get(self, actor_id: str) -> ActorRecord:
        return self._directory.get(actor_id)

    def all(self) -> list[ActorRecord]:
        return self._directory.all()

    def pending_organizations(self) -> list[Organization]:
        return self._directory.organizations(approved=False)

    def approve_organization(self, staff: ActorRecord, organization_id: str) -> Organization:
        _require_staff(staff)
        organization = self._organization(organization_id)
        if organization.approved:
            return organization
        return self._directory.update(organization.model_copy(update={"approved": True}))

    def reject_organization(self, staff: ActorRecord, organization_id: str) -> None:
        """Discard a registration that staff declined to authorize."""
        _require_staff(staff)
        organization = self._organization(organization_id)
        if organization.approved:
            raise ValidationError(
                "Authorized organizations cannot be rejected.",
                actor_id=organization_id,
            )
        self._directory.delete(organization_id)

    def _organization(self, organization_id: str) -> Organization:
        actor = self._directory.get(organization_id)
        if not isinstance(actor, Organization):
            raise ValidationError(f"Actor is not an organization: {organization_id}", actor_id=organization_id)
        return actor


def _require_staff(actor: ActorRecord) -> None:
    if role_of(actor) != Role.STAFF:
        raise UnauthorizedError("Only staff may authorize organizations.", actor_id=actor.actor_id)
