"""Typer CLI entrypoint for cs-client-map."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable, Optional

import click
import typer
from click.core import ParameterSource
from rich.console import Console
from typer.core import TyperCommand

from . import __version__
from .config import DEFAULT_CONFIG_PATH, DEFAULT_PATH_DEPTH, DEFAULT_WORKERS, RunSettings, resolve_settings
from .engine import PageFetcher, PaginationPlanner, RunResult
from .errors import AuthenticationError, ClientMapError, ConfigurationError
from .logging_conf import configure_logging
from .timeutils import format_ms
from .ui import ProgressObserver, build_observer

app = typer.Typer(
    help="Map which clients touched which paths, from CloudSecure activity logs.",
    add_completion=False,
    rich_markup_mode=None,
)


def _err_console() -> Console:
    return Console(stderr=True, highlight=False)


def build_fetcher(settings: RunSettings) -> PageFetcher:
    return PageFetcher.from_settings(settings)


def _announce(console: Console) -> Callable[[int, int, int], None]:
    def _print(count: int, from_time: int, to_time: int) -> None:
        console.print(
            f"Analyzing {count} records between\n  {format_ms(from_time)} and\n  {format_ms(to_time)}",
            markup=False,
        )

    return _print


def render_report(keys: Iterable[str], sort: bool = False) -> list[str]:
    lines = list(keys)
    if sort:
        lines.sort()
    return lines


def execute(
    settings: RunSettings, observer: ProgressObserver | None, console: Console
) -> RunResult:
    fetcher = build_fetcher(settings)
    try:
        planner = PaginationPlanner.from_settings(
            settings, fetcher, observer=observer, on_count=_announce(console)
        )
        return planner.run()
    finally:
        fetcher.close()
        if observer is not None:
            observer.close()


def _report_error(console: Console, exc: ClientMapError) -> None:
    if isinstance(exc, ConfigurationError):
        message = exc.detail or str(exc)
    elif isinstance(exc, AuthenticationError):
        message = "Authentication failed, please check API KEY and API Endpoint"
    else:
        message = f"Aborting run: {exc}"
    console.print(message, style="red", markup=False)


class RunCommand(TyperCommand):
    """Report malformed command lines with the configuration error status."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as exc:
            exc.exit_code = ConfigurationError.exit_code
            raise


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"cs-client-map v{__version__}")
        raise typer.Exit()


@app.command(cls=RunCommand)
def run(
    ctx: typer.Context,
    config: Path = typer.Option(
        DEFAULT_CONFIG_PATH, "--config", "-c", help="Configuration file path."
    ),
    endpoint: Optional[str] = typer.Option(
        None,
        "--endpoint",
        "-e",
        help="CloudSecure endpoint, e.g. 'psxxx.cs01.cloudinsights.netapp.com'. "
        "Falls back to CS_API_ENDPOINT.",
    ),
    api_key: Optional[str] = typer.Option(
        None, "--api-key", "-k", help="API key for CloudSecure. Falls back to CS_API_KEY."
    ),
    workers: int = typer.Option(DEFAULT_WORKERS, "--workers", "-w", help="Number of concurrent workers."),
    depth: int = typer.Option(DEFAULT_PATH_DEPTH, "--depth", "-p", help="Path depth to output."),
    from_time: Optional[int] = typer.Option(
        None, "--from", "-f", help="Unix ms timestamp, defaults to yesterday 00:00."
    ),
    to_time: Optional[int] = typer.Option(
        None, "--to", "-t", help="Unix ms timestamp, defaults to today 00:00."
    ),
    sort: bool = typer.Option(False, "--sort", help="Sort report lines."),
    progress: bool = typer.Option(True, "--progress/--no-progress", help="Show progress on stderr."),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Also write JSON logs to this file."),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Print version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    console = _err_console()
    configure_logging(verbose=verbose, log_file=log_file)
    explicit_config = ctx.get_parameter_source("config") is ParameterSource.COMMANDLINE
    try:
        settings = resolve_settings(
            {
                "api_endpoint": endpoint,
                "api_key": api_key,
                "workers": workers,
                "path_depth": depth,
                "from_time": from_time,
                "to_time": to_time,
            },
            config_path=config,
            explicit_config=explicit_config,
        )
    except ConfigurationError as exc:
        _report_error(console, exc)
        raise typer.Exit(code=exc.exit_code)

    try:
        result = execute(settings, build_observer(progress), console)
    except ClientMapError as exc:
        _report_error(console, exc)
        raise typer.Exit(code=exc.exit_code)

    for line in render_report(result.keys, sort=sort):
        typer.echo(line)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
