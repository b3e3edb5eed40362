"""Rich output formatting for the dmdb-exporter CLI.

All functions write to a :class:`rich.console.Console` instance (bound to
*stderr*) so that machine-readable output on *stdout* is never polluted with
human-readable decoration.
"""

from __future__ import annotations

from collections.abc import Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from dmdb_core.config import Settings
from dmdb_core.metrics.kinds import resolve_kind
from dmdb_core.models.definition import MetricDefinition
from dmdb_core.models.target import ConnectionTarget

# ---------------------------------------------------------------------------
# Definitions
# ---------------------------------------------------------------------------


def _naming(definition: MetricDefinition) -> str:
    if definition.name_field is not None:
        return f"field: {escape(definition.name_field)}"
    return escape(", ".join(definition.labels)) or "-"


def _columns(definition: MetricDefinition) -> str:
    return ", ".join(
        f"{escape(column)} ({resolve_kind(column, definition.value_kinds).value})" for column in definition.value_columns
    )


def display_definitions(console: Console, definitions: Sequence[MetricDefinition], default_timeout: float) -> None:
    """Render a table of validated metric definitions.

    Parameters
    ----------
    console:
        Rich console to write to (typically stderr).
    definitions:
        Definitions in load order.
    default_timeout:
        Global query timeout, shown for definitions without their own.
    """
    table = Table(title=f"Metric definitions ({len(definitions)})", show_lines=False)
    table.add_column("Context", style="bold cyan")
    table.add_column("Value columns")
    table.add_column("Labels / naming")
    table.add_column("Zero rows", justify="center")
    table.add_column("Timeout", justify="right")

    for definition in definitions:
        table.add_row(
            escape(definition.context) or "-",
            _columns(definition),
            _naming(definition),
            "ignored" if definition.ignore_zero_rows else "[yellow]error[/yellow]",
            f"{definition.effective_timeout(default_timeout):g}s",
        )

    console.print(table)


# ---------------------------------------------------------------------------
# Settings and targets
# ---------------------------------------------------------------------------


def display_settings(console: Console, settings: Settings) -> None:
    """Print the effective settings a server would start with."""
    host, port = settings.listen_host_port()
    console.print(f"[green]✓[/green] Mode: [bold]{settings.mode.value}[/bold]")
    console.print(f"[green]✓[/green] Listening on http://{host}:{port}{settings.telemetry_path}")
    console.print(
        f"[dim]query timeout {settings.query_timeout:g}s, "
        f"max open conns {settings.max_open_conns}, max idle conns {settings.max_idle_conns}[/dim]"
    )


def display_target(console: Console, target: ConnectionTarget, module: str) -> None:
    """Print a resolved probe target without its password."""
    table = Table(show_header=False, box=None)
    table.add_column("Field", style="dim")
    table.add_column("Value")
    table.add_row("module", module or "default")
    table.add_row("host", target.host)
    table.add_row("port", str(target.port))
    table.add_row("user", target.user)
    table.add_row("driver", target.driver)
    console.print(table)
