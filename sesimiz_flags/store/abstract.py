"""
Persistent store interface and error contract for feature flag records.

Concrete stores (in-memory, Postgres) implement the `FlagStore` protocol and
translate their driver errors into the exceptions below, so the resolver can
tell a benign duplicate-seed race apart from an unavailable store.
"""

from __future__ import annotations

from typing import Any, Dict, List, Protocol, runtime_checkable

from sesimiz_flags.domain.models import FlagRecord


class FlagStoreError(RuntimeError):
    """The store could not complete a read or write."""


class DuplicateFlagError(FlagStoreError):
    """A create targeted a key that already has a row (unique constraint)."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Feature flag '{key}' already exists")
        self.key = key


class FlagRecordMissingError(FlagStoreError):
    """An update targeted a key that has no row."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Feature flag '{key}' has no stored record")
        self.key = key


@runtime_checkable
class FlagStore(Protocol):
    """
    Minimal persistence contract consumed by the resolver.

    Every operation is keyed by the unique `key` column. `data` dictionaries
    use `FlagRecord` field names.
    """

    async def find_many(self) -> List[FlagRecord]:
        """Return every stored flag record."""
        ...

    async def create(self, data: Dict[str, Any]) -> FlagRecord:
        """
        Insert a new record.

        Raises
        ------
        DuplicateFlagError
            If a row with the same key already exists.
        """
        ...

    async def update(self, key: str, data: Dict[str, Any]) -> FlagRecord:
        """
        Rewrite the given fields of an existing record.

        Raises
        ------
        FlagRecordMissingError
            If no row exists for `key`.
        """
        ...


__all__ = [
    "FlagStore",
    "FlagStoreError",
    "DuplicateFlagError",
    "FlagRecordMissingError",
]
