from __future__ import annotations

import asyncio
import json
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional, TypeVar

import typer

from sesimiz_flags.admin import FlagAdminService, FlagNotFoundError, FlagValidationError
from sesimiz_flags.config import get_settings
from sesimiz_flags.domain.definitions import coerce_boolean
from sesimiz_flags.effects import LoggingAdminNotifier
from sesimiz_flags.infrastructure.db_factory import async_pool
from sesimiz_flags.reporter import print_flags
from sesimiz_flags.resolver import FeatureFlagResolver
from sesimiz_flags.store.abstract import FlagStoreError
from sesimiz_flags.store.memory import InMemoryFlagStore
from sesimiz_flags.store.postgres import PostgresAdminNotifier, PostgresFlagStore
from sesimiz_flags.utils.logging import configure_logging

T = TypeVar("T")

app = typer.Typer(help="Sesimiz Ol feature flag administration CLI.")

# Process-wide store for --memory mode, so one process sees its own writes.
_MEMORY_STORE = InMemoryFlagStore()
_state: Dict[str, Any] = {"memory": False, "actor": None}


@asynccontextmanager
async def _admin_service(memory: bool) -> AsyncIterator[FlagAdminService]:
    settings = get_settings()
    if memory:
        resolver = FeatureFlagResolver.from_settings(_MEMORY_STORE, settings)
        yield FlagAdminService(
            resolver, LoggingAdminNotifier(), settings.security_event_log_channel
        )
    else:
        async with async_pool() as pool:
            resolver = FeatureFlagResolver.from_settings(PostgresFlagStore(pool), settings)
            yield FlagAdminService(
                resolver, PostgresAdminNotifier(pool), settings.security_event_log_channel
            )


def _run(action: Callable[[FlagAdminService], Awaitable[T]]) -> T:
    async def runner() -> T:
        async with _admin_service(_state["memory"]) as service:
            return await action(service)

    try:
        return asyncio.run(runner())
    except FlagNotFoundError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    except FlagValidationError as exc:
        details = "; ".join(str(e.get("msg", e)) for e in exc.errors)
        typer.secho(f"{exc}: {details}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    except FlagStoreError as exc:
        typer.secho(f"Feature flag store error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


def _apply(key: str, payload: Dict[str, Any]) -> None:
    change = _run(
        lambda service: service.update_flag(
            key, payload, actor_id=_state["actor"], allow_adhoc=True
        )
    )
    state = "enabled" if change.record.enabled else "disabled"
    rollout = change.record.rollout_status or "—"
    typer.echo(f"Feature flag {change.record.key} is {state} (rollout: {rollout}).")


@app.callback()
def main_options(
    memory: bool = typer.Option(
        False,
        "--memory",
        help="Use an in-process store instead of Postgres (nothing is persisted).",
    ),
    actor: Optional[int] = typer.Option(
        None,
        "--actor",
        help="User id recorded as the author of changes.",
    ),
) -> None:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    _state["memory"] = memory
    _state["actor"] = actor


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"refresh_interval_ms={settings.feature_flag_refresh_interval_ms} "
        f"env={settings.app_env}"
    )


@app.command("list")
def list_flags(
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table."),
) -> None:
    """
    List every flag, defined or stored, sorted by key.
    """

    async def action(service: FlagAdminService) -> Dict[str, Any]:
        await service.resolver.refresh(force=True)
        return await service.list_flags()

    result = _run(action)
    if as_json:
        payload = {
            "flags": [view.model_dump(mode="json") for view in result["flags"]],
            "defaults": result["defaults"],
        }
        typer.echo(json.dumps(payload, indent=2))
        return
    print_flags(result["flags"])


@app.command()
def show(key: str = typer.Argument(..., help="Flag key.")) -> None:
    """
    Show one flag as JSON.
    """
    view = _run(lambda service: service.get_flag(key))
    typer.echo(json.dumps(view.model_dump(mode="json"), indent=2))


@app.command()
def enable(key: str = typer.Argument(..., help="Flag key.")) -> None:
    """
    Enable a flag.
    """
    _apply(key, {"enabled": True})


@app.command()
def disable(key: str = typer.Argument(..., help="Flag key.")) -> None:
    """
    Disable a flag.
    """
    _apply(key, {"enabled": False})


@app.command("set")
def set_flag(
    key: str = typer.Argument(..., help="Flag key."),
    value: str = typer.Argument(..., help="1/0, true/false, yes/no, on/off."),
) -> None:
    """
    Set a flag to the given value.
    """
    _apply(key, {"enabled": coerce_boolean(value)})


@app.command()
def rollout(
    key: str = typer.Argument(..., help="Flag key."),
    status: str = typer.Argument(..., help="Rollout annotation, e.g. canary or ga."),
) -> None:
    """
    Change a flag's rollout status without touching its enabled state.
    """
    _apply(key, {"rollout_status": status})


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
