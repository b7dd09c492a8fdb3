"""
Dict-backed flag store.

Used by the test-suite and by the CLI's `--memory` mode. It honours the same
error contract as the Postgres store and counts calls so callers can assert on
store round-trips.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from sesimiz_flags.domain.models import FlagRecord
from sesimiz_flags.store.abstract import DuplicateFlagError, FlagRecordMissingError


class InMemoryFlagStore:
    """
    In-process implementation of `FlagStore`.

    Parameters
    ----------
    records : iterable[FlagRecord] | None
        Rows to start with.
    now : callable | None
        Wall clock used for `created_at`/`updated_at`.
    """

    def __init__(
        self,
        records: Optional[Iterable[FlagRecord]] = None,
        now: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._rows: Dict[str, FlagRecord] = {r.key: r for r in (records or [])}
        self._now = now or (lambda: datetime.now(UTC))
        self.find_many_calls = 0
        self.create_calls = 0
        self.update_calls = 0
        # Exceptions to raise on the next call of each operation (failure injection).
        self.fail_next: Dict[str, Exception] = {}

    def _maybe_fail(self, operation: str) -> None:
        exc = self.fail_next.pop(operation, None)
        if exc is not None:
            raise exc

    @property
    def rows(self) -> Dict[str, FlagRecord]:
        return dict(self._rows)

    async def find_many(self) -> List[FlagRecord]:
        self.find_many_calls += 1
        self._maybe_fail("find_many")
        return list(self._rows.values())

    async def create(self, data: Dict[str, Any]) -> FlagRecord:
        self.create_calls += 1
        self._maybe_fail("create")
        key = data["key"]
        if key in self._rows:
            raise DuplicateFlagError(key)
        now = self._now()
        record = FlagRecord(**{**data, "created_at": now, "updated_at": now})
        self._rows[key] = record
        return record

    async def update(self, key: str, data: Dict[str, Any]) -> FlagRecord:
        self.update_calls += 1
        self._maybe_fail("update")
        current = self._rows.get(key)
        if current is None:
            raise FlagRecordMissingError(key)
        record = current.model_copy(update={**data, "updated_at": self._now()})
        self._rows[key] = record
        return record


__all__ = ["InMemoryFlagStore"]
