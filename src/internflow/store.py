"""In-memory record stores for postings, candidacies and actors."""

from __future__ import annotations

from threading import RLock
from typing import Callable, Generic, Iterable, TypeVar

from pydantic import BaseModel

from .core.errors import NotFoundError, ValidationError
from .schemas import Applicant, Candidacy, CandidacyStatus, Organization, Posting, Staff

RecordT = TypeVar("RecordT", bound=BaseModel)

ActorRecord = Applicant | Organization | Staff


class RecordStore(Generic[RecordT]):
    """Dictionary-backed store keyed by a record attribute.

    Records are immutable; `update` replaces the stored record wholesale.
    """

    entity = "record"

    def __init__(self, key_field: str) -> None:
        self._key_field = key_field
        self._records: dict[str, RecordT] = {}
        self._lock = RLock()

    def _key(self, record: RecordT) -> str:
        return getattr(record, self._key_field)

    def find_by_id(self, record_id: str) -> RecordT | None:
        with self._lock:
            return self._records.get(record_id)

    def get(self, record_id: str) -> RecordT:
        record = self.find_by_id(record_id)
        if record is None:
            raise NotFoundError(f"{self.entity} not found: {record_id}", id=record_id)
        return record

    def save(self, record: RecordT) -> RecordT:
        key = self._key(record)
        with self._lock:
            if key in self._records:
                raise ValidationError(f"{self.entity} already exists: {key}", id=key)
            self._records[key] = record
        return record

    def update(self, record: RecordT) -> RecordT:
        key = self._key(record)
        with self._lock:
            if key not in self._records:
                raise NotFoundError(f"{self.entity} not found: {key}", id=key)
            self._records[key] = record
        return record

    def update_many(self, records: Iterable[RecordT]) -> list[RecordT]:
        """Replace several records at once; nothing is written if any is missing."""
        batch = list(records)
        with self._lock:
            missing = [self._key(record) for record in batch if self._key(record) not in self._records]
            if missing:
                raise NotFoundError(f"{self.entity} not found: {missing[0]}", id=missing[0])
            for record in batch:
                self._records[self._key(record)] = record
        return batch

    def delete(self, record_id: str) -> bool:
        with self._lock:
            return self._records.pop(record_id, None) is not None

    def query(self, predicate: Callable[[RecordT], bool]) -> list[RecordT]:
        with self._lock:
            return [record for record in self._records.values() if predicate(record)]

    def all(self) -> list[RecordT]:
        with self._lock:
            return list(self._records.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


class PostingRepository(RecordStore[Posting]):
    entity = "posting"

    def __init__(self) -> None:
        super().__init__("posting_id")

    def by_owner(self, owner_id: str) -> list[Posting]:
        return self.query(lambda posting: posting.owner_id == owner_id)


class CandidacyRepository(RecordStore[Candidacy]):
    entity = "candidacy"

    def __init__(self) -> None:
        super().__init__("candidacy_id")

    def by_applicant(self, applicant_id: str) -> list[Candidacy]:
        return self.query(lambda item: item.applicant_id == applicant_id)

    def by_posting(self, posting_id: str) -> list[Candidacy]:
        return self.query(lambda item: item.posting_id == posting_id)

    def pending_withdrawals(self) -> list[Candidacy]:
        return self.query(lambda item: item.withdrawal_requested and not item.withdrawn)

    def count_active(self, applicant_id: str) -> int:
        return sum(1 for item in self.by_applicant(applicant_id) if item.is_active)

    def has_successful(self, applicant_id: str, *, exclude: str | None = None) -> bool:
        return any(
            item.counts_toward_fill and item.candidacy_id != exclude
            for item in self.by_applicant(applicant_id)
        )

    def count_filled(self, posting_id: str, overlay: Iterable[Candidacy] = ()) -> int:
        """Count SUCCESSFUL, non-withdrawn candidacies for a posting.

        `overlay` supplies records about to be written; they shadow the stored
        versions so the count reflects the state after the pending write.
        """
        current = {item.candidacy_id: item for item in self.by_posting(posting_id)}
        for item in overlay:
            if item.posting_id == posting_id:
                current[item.candidacy_id] = item
        return sum(1 for item in current.values() if item.counts_toward_fill)

    def count_by_status(self, posting_id: str) -> dict[str, int]:
        counts = {status.value: 0 for status in CandidacyStatus}
        for item in self.by_posting(posting_id):
            counts[item.status.value] += 1
        return counts


class ActorDirectory(RecordStore[ActorRecord]):  # type: ignore[type-var]
    entity = "actor"

    def __init__(self) -> None:
        super().__init__("actor_id")

    def organizations(self, *, approved: bool | None = None) -> list[Organization]:
        return [
            actor
            for actor in self.all()
            if isinstance(actor, Organization) and (approved is None or actor.approved == approved)
        ]
