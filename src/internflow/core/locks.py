"""Keyed locks serializing operations per actor and per posting."""

from __future__ import annotations

import threading
from contextlib import ExitStack, contextmanager
from typing import Iterable, Iterator


class KeyedLocks:
    """Lazily created re-entrant locks addressed by key.

    `hold` always acquires applicant locks, then organization locks, then
    posting locks, each group in sorted order, so every operation takes its
    locks in the same global order.

    Locks are never evicted; the table lives as long as the in-memory store
    whose records it guards.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[tuple[str, str], threading.RLock] = {}

    def _lock_for(self, key: tuple[str, str]) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(
        self,
        *,
        applicants: Iterable[str] = (),
        organizations: Iterable[str] = (),
        postings: Iterable[str] = (),
    ) -> Iterator[None]:
        keys = [("applicant", key) for key in sorted(set(applicants))]
        keys += [("organization", key) for key in sorted(set(organizations))]
        keys += [("posting", key) for key in sorted(set(postings))]
        with ExitStack() as stack:
            for key in keys:
                stack.enter_context(self._lock_for(key))
            yield
