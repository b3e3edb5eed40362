"""dmdb-exporter CLI application -- Typer-based operator interface.

Provides commands to run the exporter, validate metric definition files,
and check how a probe request would be resolved.  Flag names follow the
exporter's historical ``--web.listen-address`` style; every flag can also be
given as an environment variable (see :class:`dmdb_core.config.Settings`).
Human-readable output goes to *stderr* via Rich; the ``resolve`` command
prints its result on *stdout* so scripts can capture it.
"""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from dmdb_cli.display import display_definitions, display_settings, display_target
from dmdb_core import __version__
from dmdb_core.config import LogFormat, Settings, load_settings
from dmdb_core.errors import ExporterError
from dmdb_core.loader.credentials import CredentialStore
from dmdb_core.loader.definition_loader import load_all_definitions
from dmdb_core.probe.resolver import resolve_target

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App & global state
# ---------------------------------------------------------------------------

app = typer.Typer(
    name="dmdb-exporter",
    help="Prometheus exporter for DM databases.",
    no_args_is_help=True,
)
console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _settings_or_exit(**overrides: object) -> Settings:
    """Load settings, turning validation failures into a clean exit."""
    try:
        return load_settings(**overrides)
    except ValidationError as exc:
        console.print("[red]Invalid configuration:[/red]")
        for error in exc.errors():
            location = ".".join(str(part) for part in error["loc"])
            console.print(f"  [red]{escape(location)}[/red]: {escape(error['msg'])}")
        raise typer.Exit(code=2) from exc


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------


@app.command()
def serve(
    listen_address: str | None = typer.Option(
        None,
        "--web.listen-address",
        help="Address to listen on for web interface and telemetry. [env: LISTEN_ADDRESS, default :9161]",
    ),
    telemetry_path: str | None = typer.Option(
        None,
        "--web.telemetry-path",
        help="Path under which to expose metrics. [env: TELEMETRY_PATH, default /metrics]",
    ),
    default_metrics: Path | None = typer.Option(
        None,
        "--default.metrics",
        help="File with default metrics in a TOML file. [env: DEFAULT_METRICS]",
    ),
    custom_metrics: Path | None = typer.Option(
        None,
        "--custom.metrics",
        help="File that may contain various custom metrics in a TOML file. [env: CUSTOM_METRICS]",
    ),
    query_timeout: float | None = typer.Option(
        None,
        "--query.timeout",
        help="Query timeout in seconds. [env: QUERY_TIMEOUT, default 5]",
    ),
    max_idle_conns: int | None = typer.Option(
        None,
        "--database.maxIdleConns",
        help="Number of maximum idle connections in the connection pool. [env: DATABASE_MAXIDLECONNS, default 0]",
    ),
    max_open_conns: int | None = typer.Option(
        None,
        "--database.maxOpenConns",
        help="Number of maximum open connections in the connection pool. [env: DATABASE_MAXOPENCONNS, default 10]",
    ),
    config_cnf: Path | None = typer.Option(
        None,
        "--config.cnf",
        help="Credential file for probe mode. [env: CONFIG_CNF, default ~/config.default.cnf]",
    ),
    log_level: str | None = typer.Option(
        None,
        "--log.level",
        help="Only log messages with the given severity or above (debug, info, warn, error, fatal).",
    ),
    log_format: LogFormat | None = typer.Option(
        None,
        "--log.format",
        case_sensitive=False,
        help="Output format of log messages.",
    ),
) -> None:
    """Run the exporter HTTP server.

    With DATA_SOURCE_NAME set, the configured database is scraped on every
    request to the telemetry path.  Without it, the exporter runs in probe
    mode and serves /scrape?target=host:port&module=name.
    """
    # Imported here so that `check`, `resolve` and `version` stay usable
    # without loading the web stack.
    import uvicorn

    from dmdb_api.log_format import configure_logging
    from dmdb_api.main import create_app

    settings = _settings_or_exit(
        listen_address=listen_address,
        telemetry_path=telemetry_path,
        default_metrics=default_metrics,
        custom_metrics=custom_metrics,
        query_timeout=query_timeout,
        max_idle_conns=max_idle_conns,
        max_open_conns=max_open_conns,
        config_cnf=config_cnf,
        log_level=log_level,
        log_format=log_format,
    )
    configure_logging(settings)

    try:
        host, port = settings.listen_host_port()
    except ValueError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=2) from exc

    try:
        fastapi_app = create_app(settings)
    except ExporterError as exc:
        logger.error("Unable to start exporter: %s", exc)
        console.print(f"[red]Unable to start exporter:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    display_settings(console, settings)
    logger.info("Listening on %s", settings.listen_address)

    config = uvicorn.Config(
        fastapi_app,
        host=host,
        port=port,
        log_config=None,
        access_log=False,
    )
    server = uvicorn.Server(config)
    try:
        server.run()
    except KeyboardInterrupt:
        console.print("[yellow]Exporter stopped.[/yellow]")


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


@app.command()
def check(
    default_metrics: Path | None = typer.Option(
        None,
        "--default.metrics",
        help="File with default metrics in a TOML file. [env: DEFAULT_METRICS]",
    ),
    custom_metrics: Path | None = typer.Option(
        None,
        "--custom.metrics",
        help="File that may contain various custom metrics in a TOML file. [env: CUSTOM_METRICS]",
    ),
    query_timeout: float | None = typer.Option(
        None,
        "--query.timeout",
        help="Query timeout in seconds, shown for definitions without their own.",
    ),
) -> None:
    """Load and validate metric definition files without touching a database."""
    settings = _settings_or_exit(
        default_metrics=default_metrics,
        custom_metrics=custom_metrics,
        query_timeout=query_timeout,
    )

    try:
        definitions = load_all_definitions(settings.default_metrics, settings.custom_metrics)
    except ExporterError as exc:
        console.print(f"[red]✗[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    display_definitions(console, definitions, settings.query_timeout)
    console.print(f"[green]✓[/green] {len(definitions)} metric definition(s) are valid")


# ---------------------------------------------------------------------------
# resolve
# ---------------------------------------------------------------------------


@app.command()
def resolve(
    target: str = typer.Argument("", help="Probe target as host[:port]; empty uses the [client] section."),
    module: str = typer.Option("", "--module", "-m", help="Credential module; selects [client.<module>]."),
    config_cnf: Path | None = typer.Option(
        None,
        "--config.cnf",
        help="Credential file for probe mode. [env: CONFIG_CNF, default ~/config.default.cnf]",
    ),
) -> None:
    """Show how a probe request for TARGET and MODULE would be resolved.

    Prints the connection URL, password masked, on stdout.
    """
    settings = _settings_or_exit(config_cnf=config_cnf)

    try:
        store = CredentialStore.from_file(settings.config_cnf)
        resolved = resolve_target(
            target,
            module,
            store,
            driver=settings.driver,
            options=settings.connect_options,
        )
    except ExporterError as exc:
        console.print(f"[red]✗[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    display_target(console, resolved, module)
    typer.echo(resolved.masked_dsn())


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@app.command()
def version() -> None:
    """Print the exporter version."""
    typer.echo(f"dmdb-exporter {__version__}")
