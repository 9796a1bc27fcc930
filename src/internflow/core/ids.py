"""Candidacy identifier generation."""

from __future__ import annotations

import itertools
import threading
from datetime import date
from typing import Callable, Protocol, runtime_checkable

from .policy import today


@runtime_checkable
class IdGenerator(Protocol):
    """Source of unique candidacy identifiers."""

    def next_id(self) -> str:
        """Return a new identifier never handed out before by this generator."""


class SequentialIdGenerator:
    """Thread-safe `APP-YYYYMMDD-####` generator, monotonic per process."""

    def __init__(
        self,
        *,
        prefix: str = "APP",
        start: int = 1,
        today_provider: Callable[[], date] | None = None,
    ) -> None:
        self._prefix = prefix
        self._counter = itertools.count(start)
        self._lock = threading.Lock()
        self._today = today_provider or today

    def next_id(self) -> str:
        with self._lock:
            sequence = next(self._counter)
        return f"{self._prefix}-{self._today():%Y%m%d}-{sequence:04d}"
