from __future__ import annotations

from typing import Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from sesimiz_flags.domain.models import FlagView


def _state(enabled: bool) -> str:
    return "[bold green]on[/bold green]" if enabled else "[red]off[/red]"


def print_flags(views: Sequence[FlagView], console: Optional[Console] = None) -> None:
    """
    Render flag views as a rich table, in the order given.

    Overridden flags show the pinned value next to the stored one.
    """
    console = console or Console()

    if not views:
        console.print("[yellow]No feature flags defined.[/yellow]")
        return

    table = Table(
        title="Feature Flags",
        box=box.ROUNDED,
        caption="Sorted by key",
    )
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Enabled", justify="center")
    table.add_column("Default", justify="center", style="dim")
    table.add_column("Rollout", style="magenta")
    table.add_column("Description")
    table.add_column("Last change", style="yellow")

    for view in views:
        enabled = _state(view.enabled)
        if view.override is not None:
            enabled = f"{enabled} [dim](override: {'on' if view.override else 'off'})[/dim]"

        default = "—" if view.default_value is None else ("on" if view.default_value else "off")

        last_change = "—"
        if view.last_changed_at is not None:
            actor = view.last_changed_by if view.last_changed_by is not None else "system"
            last_change = f"{view.last_changed_at:%Y-%m-%d %H:%M} by {actor}"

        key = view.key if view.defined else f"{view.key} [dim](ad hoc)[/dim]"
        table.add_row(
            key,
            enabled,
            default,
            view.rollout_status or "—",
            view.description or "",
            last_change,
        )

    console.print(table)
