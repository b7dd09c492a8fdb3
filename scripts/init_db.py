"""
Schema bootstrap script for the feature flag table.

Creates `public.feature_flags` when missing and, optionally, seeds one row per
compiled-in definition using its resolved default.
"""

from __future__ import annotations

import sys

import psycopg
import typer

from sesimiz_flags.config import get_settings
from sesimiz_flags.domain.definitions import build_definitions
from sesimiz_flags.infrastructure.db_factory import build_dsn, get_sync_connection
from sesimiz_flags.store.postgres import FEATURE_FLAGS_DDL

app = typer.Typer(help="Create (and optionally seed) the feature_flags table.")

_SEED_SQL = """
    INSERT INTO public.feature_flags (key, enabled, description)
    VALUES (%s, %s, %s)
    ON CONFLICT (key) DO NOTHING
"""


def _build_dsn(dsn_override: str | None) -> str:
    if dsn_override:
        return dsn_override
    return build_dsn()


def _apply_schema(conn: psycopg.Connection, seed: bool) -> int:
    seeded = 0
    with conn.cursor() as cur:
        cur.execute(FEATURE_FLAGS_DDL)
        if seed:
            for definition in build_definitions(get_settings()).values():
                cur.execute(
                    _SEED_SQL,
                    (definition.key, definition.default_value, definition.description or None),
                )
                seeded += cur.rowcount
    conn.commit()
    return seeded


@app.command()
def main(
    dsn: str | None = typer.Option(
        None,
        "--dsn",
        help="Optional DSN override for Postgres.",
    ),
    seed: bool = typer.Option(
        False,
        "--seed",
        help="Insert rows for defined flags that have none yet.",
    ),
) -> None:
    """
    Create the feature_flags table if it does not exist.
    """
    conn_dsn = _build_dsn(dsn)
    with get_sync_connection(conn_dsn) as conn:
        seeded = _apply_schema(conn, seed=seed)
    typer.echo("feature_flags table is ready.")
    if seed:
        typer.echo(f"Seeded {seeded} flag row(s).")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
