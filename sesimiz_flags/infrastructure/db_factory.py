"""
Database connection factory utilities for the feature flag service.

Provides DSN composition from settings, a retrying sync connection for
one-off maintenance work (schema creation), and a retrying async connection
pool used by the Postgres flag store.

Includes retry logic for transient connection failures using tenacity.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import psycopg
from psycopg import Connection
from psycopg_pool import AsyncConnectionPool, PoolTimeout
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from sesimiz_flags.config import Settings, get_settings
from sesimiz_flags.store.abstract import FlagStoreError
from sesimiz_flags.utils.logging import get_logger

log = get_logger(__name__)


def build_dsn(settings: Optional[Settings] = None) -> str:
    """Compose a DSN string from settings."""
    settings = settings or get_settings()
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def get_sync_connection(dsn: Optional[str] = None) -> Connection:
    """
    Acquire a dedicated synchronous connection with automatic retry.

    Retries up to 3 times with exponential backoff for transient connection errors.

    Returns
    -------
    Connection
        A new psycopg connection instance.

    Raises
    ------
    psycopg.OperationalError
        If connection fails after all retry attempts.
    """
    return psycopg.connect(dsn or build_dsn())


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, PoolTimeout)),
    reraise=True,
)
async def open_async_pool(
    dsn: Optional[str] = None,
    min_size: Optional[int] = None,
    max_size: Optional[int] = None,
    timeout: float = 10.0,
) -> AsyncConnectionPool:
    """
    Create and open an asynchronous connection pool with automatic retry.

    Parameters
    ----------
    dsn : str | None
        Connection string; defaults to one built from settings.
    min_size, max_size : int | None
        Pool bounds; default to `DB_POOL_MIN_SIZE` / `DB_POOL_MAX_SIZE`.
    timeout : float
        Seconds to wait for the first `min_size` connections.

    Raises
    ------
    psycopg_pool.PoolTimeout
        If the pool cannot be filled after all retry attempts.
    """
    settings = get_settings()
    pool = AsyncConnectionPool(
        conninfo=dsn or build_dsn(settings),
        min_size=settings.db_pool_min_size if min_size is None else min_size,
        max_size=settings.db_pool_max_size if max_size is None else max_size,
        open=False,
    )
    try:
        await pool.open(wait=True, timeout=timeout)
    except Exception:
        await pool.close()
        raise
    log.debug("Async pool opened", extra={"min_size": pool.min_size, "max_size": pool.max_size})
    return pool


@asynccontextmanager
async def async_pool(
    dsn: Optional[str] = None,
    min_size: Optional[int] = None,
    max_size: Optional[int] = None,
) -> AsyncIterator[AsyncConnectionPool]:
    """
    Context manager that opens a pool and always closes it on exit.

    Example
    -------
        async with async_pool() as pool:
            store = PostgresFlagStore(pool)

    Raises
    ------
    FlagStoreError
        If the pool cannot be opened after all retry attempts.
    """
    try:
        pool = await open_async_pool(dsn, min_size=min_size, max_size=max_size)
    except (psycopg.Error, PoolTimeout) as exc:
        log.error("Could not open the flag store pool", extra={"error": str(exc)})
        raise FlagStoreError(f"Feature flag store unavailable: {exc}") from exc
    try:
        yield pool
    finally:
        await pool.close()


__all__ = [
    "build_dsn",
    "get_sync_connection",
    "open_async_pool",
    "async_pool",
]
