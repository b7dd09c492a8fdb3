"""
Pytest configuration for the feature flag service.

Provides fixtures for:
- A deterministic resolver over the in-memory store (fake clocks)
- Database connection management for integration tests
"""

from __future__ import annotations

import os
from datetime import UTC, datetime
from typing import Dict, Generator

import psycopg
import pytest

from sesimiz_flags.config import Settings
from sesimiz_flags.domain.models import FlagDefinition
from sesimiz_flags.resolver import FeatureFlagResolver
from sesimiz_flags.store.memory import InMemoryFlagStore

FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
REFRESH_INTERVAL_MS = 300_000


class FakeClock:
    """Monotonic clock the tests advance by hand."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def definitions() -> Dict[str, FlagDefinition]:
    return {
        "adminPanel": FlagDefinition(
            key="adminPanel",
            display_name="Admin panel",
            description="Administrative dashboard.",
            default_value=False,
        ),
        "messaging": FlagDefinition(
            key="messaging",
            display_name="Messaging",
            description="Private messages.",
            default_value=True,
        ),
    }


@pytest.fixture
def store() -> InMemoryFlagStore:
    return InMemoryFlagStore(now=lambda: FIXED_NOW)


@pytest.fixture
def resolver(
    store: InMemoryFlagStore, definitions: Dict[str, FlagDefinition], clock: FakeClock
) -> FeatureFlagResolver:
    return FeatureFlagResolver(
        store,
        definitions,
        refresh_interval_ms=REFRESH_INTERVAL_MS,
        clock=clock,
        now=lambda: FIXED_NOW,
    )


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "sesimiz_ol"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return (
        f"postgresql://{test_settings.db_user}:{test_settings.db_password}"
        f"@{test_settings.db_host}:{test_settings.db_port}/{test_settings.db_name}"
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except Exception:
        return False


@pytest.fixture
def clean_flags_table(test_dsn: str, db_connection_available: bool) -> Generator[str, None, None]:
    """
    Create the flag table and empty it around each test.

    Skips tests if database is not available. Yields the DSN.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    from sesimiz_flags.store.postgres import FEATURE_FLAGS_DDL

    with psycopg.connect(test_dsn) as conn:
        conn.execute(FEATURE_FLAGS_DDL)
        conn.execute("TRUNCATE TABLE public.feature_flags;")
        conn.commit()
    yield test_dsn
    with psycopg.connect(test_dsn) as conn:
        conn.execute("TRUNCATE TABLE public.feature_flags;")
        conn.commit()
