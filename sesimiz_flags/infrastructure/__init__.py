"""
Infrastructure package for the feature flag service.

Centralizes database connectivity concerns (DSN, sync connection, async pool).
Keep this layer focused on I/O and resource management, decoupled from the
resolver logic.
"""

from sesimiz_flags.infrastructure.db_factory import (
    async_pool,
    build_dsn,
    get_sync_connection,
    open_async_pool,
)

__all__ = [
    "async_pool",
    "build_dsn",
    "get_sync_connection",
    "open_async_pool",
]
