"""
Postgres-backed flag store and admin notifier.

Both use a psycopg 3 `AsyncConnectionPool` (see `infrastructure.db_factory`)
and translate driver errors into the store error contract:

- `psycopg.errors.UniqueViolation` on insert -> `DuplicateFlagError`
- any other `psycopg.Error` or pool timeout -> `FlagStoreError`
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import psycopg
from psycopg import sql
from psycopg.errors import UniqueViolation
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import AsyncConnectionPool, PoolTimeout

from sesimiz_flags.domain.models import FlagRecord
from sesimiz_flags.effects import AdminNotification
from sesimiz_flags.store.abstract import DuplicateFlagError, FlagRecordMissingError, FlagStoreError
from sesimiz_flags.utils.logging import get_logger

log = get_logger(__name__)

FEATURE_FLAGS_DDL = """
CREATE TABLE IF NOT EXISTS public.feature_flags (
    key             TEXT PRIMARY KEY,
    enabled         BOOLEAN NOT NULL DEFAULT FALSE,
    rollout_status  TEXT,
    description     TEXT,
    metadata        JSONB,
    last_changed_at TIMESTAMPTZ,
    last_changed_by BIGINT,
    created_at      TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at      TIMESTAMPTZ NOT NULL DEFAULT now()
);
"""

_WRITABLE_COLUMNS: Sequence[str] = (
    "key",
    "enabled",
    "rollout_status",
    "description",
    "metadata",
    "last_changed_at",
    "last_changed_by",
)


def _adapt(column: str, value: Any) -> Any:
    if column == "metadata" and value is not None:
        return Jsonb(value)
    return value


def _columns(data: Dict[str, Any]) -> List[str]:
    unknown = set(data) - set(_WRITABLE_COLUMNS)
    if unknown:
        raise ValueError(f"Unknown feature flag columns: {', '.join(sorted(unknown))}")
    return [c for c in _WRITABLE_COLUMNS if c in data]


class PostgresFlagStore:
    """
    `FlagStore` implementation over the `public.feature_flags` table.
    """

    def __init__(self, pool: AsyncConnectionPool, table: str = "feature_flags") -> None:
        self._pool = pool
        self._table = sql.Identifier("public", table)

    async def ensure_schema(self) -> None:
        """Create the flag table when it does not exist yet."""
        await self._execute(sql.SQL(FEATURE_FLAGS_DDL), ())

    async def find_many(self) -> List[FlagRecord]:
        query = sql.SQL("SELECT * FROM {} ORDER BY key").format(self._table)
        rows = await self._fetch(query, ())
        return [FlagRecord(**row) for row in rows]

    async def create(self, data: Dict[str, Any]) -> FlagRecord:
        columns = _columns(data)
        query = sql.SQL("INSERT INTO {} ({}) VALUES ({}) RETURNING *").format(
            self._table,
            sql.SQL(", ").join(map(sql.Identifier, columns)),
            sql.SQL(", ").join(sql.Placeholder() * len(columns)),
        )
        params = [_adapt(c, data[c]) for c in columns]
        try:
            rows = await self._fetch(query, params)
        except UniqueViolation as exc:
            raise DuplicateFlagError(data["key"]) from exc
        return FlagRecord(**rows[0])

    async def update(self, key: str, data: Dict[str, Any]) -> FlagRecord:
        columns = [c for c in _columns(data) if c != "key"]
        assignments = [
            sql.SQL("{} = {}").format(sql.Identifier(c), sql.Placeholder()) for c in columns
        ]
        assignments.append(sql.SQL("updated_at = now()"))
        query = sql.SQL("UPDATE {} SET {} WHERE key = {} RETURNING *").format(
            self._table,
            sql.SQL(", ").join(assignments),
            sql.Placeholder(),
        )
        params = [_adapt(c, data[c]) for c in columns] + [key]
        rows = await self._fetch(query, params)
        if not rows:
            raise FlagRecordMissingError(key)
        return FlagRecord(**rows[0])

    async def _fetch(self, query: sql.Composable, params: Sequence[Any]) -> List[Dict[str, Any]]:
        try:
            async with self._pool.connection() as conn:
                async with conn.cursor(row_factory=dict_row) as cur:
                    await cur.execute(query, params)
                    return await cur.fetchall()
        except UniqueViolation:
            raise
        except (psycopg.Error, PoolTimeout) as exc:
            raise FlagStoreError(f"Feature flag store unavailable: {exc}") from exc

    async def _execute(self, query: sql.Composable, params: Sequence[Any]) -> None:
        try:
            async with self._pool.connection() as conn:
                await conn.execute(query, params)
        except (psycopg.Error, PoolTimeout) as exc:
            raise FlagStoreError(f"Feature flag store unavailable: {exc}") from exc


class PostgresAdminNotifier:
    """
    Writes one in-app `SYSTEM` notification per active admin user.
    """

    _INSERT = """
        INSERT INTO public.notifications (user_id, type, title, message, data)
        SELECT id, 'SYSTEM', %s, %s, %s
        FROM public.users
        WHERE role = 'ADMIN' AND is_active
    """

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool

    async def notify(self, notification: AdminNotification) -> int:
        """Insert the notification for every admin and return how many were written."""
        try:
            async with self._pool.connection() as conn:
                cur = await conn.execute(
                    self._INSERT,
                    (notification.title, notification.message, Jsonb(notification.data)),
                )
                written: Optional[int] = cur.rowcount
        except (psycopg.Error, PoolTimeout) as exc:
            raise FlagStoreError(f"Could not write admin notifications: {exc}") from exc
        log.debug("Admin notifications written", extra={"count": written})
        return written or 0


__all__ = ["FEATURE_FLAGS_DDL", "PostgresFlagStore", "PostgresAdminNotifier"]
