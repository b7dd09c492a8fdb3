"""
Store package for the feature flag service.

Re-exports the store contract and the in-memory implementation. The Postgres
store lives in `sesimiz_flags.store.postgres` and is imported explicitly so
the driver stays out of the import path of callers that do not need it.
"""

from sesimiz_flags.store.abstract import (
    DuplicateFlagError,
    FlagRecordMissingError,
    FlagStore,
    FlagStoreError,
)
from sesimiz_flags.store.memory import InMemoryFlagStore

__all__ = [
    # Contract
    "FlagStore",
    "FlagStoreError",
    "DuplicateFlagError",
    "FlagRecordMissingError",
    # Implementations
    "InMemoryFlagStore",
]
