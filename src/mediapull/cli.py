"""
mediapull CLI.

Usage:
    mediapull fetch "/data/media/movies/Heat (1995)/Heat.mkv" --type movie
    mediapull fetch /library/parts/123/file.mkv --mode http --limit 5
    mediapull item 12345
    mediapull config
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Coroutine

import click
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from mediapull.config import TransferSettings, load_settings
from mediapull.exceptions import (
    ConfigurationError,
    MediaPullError,
    TransferCancelledError,
)
from mediapull.logging import get_logger, setup_logging

console = Console()
err_console = Console(stderr=True)
logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130


def get_settings(ctx: click.Context, **overrides: Any) -> TransferSettings:
    """Load settings for a command and configure logging from them."""
    obj = ctx.obj or {}
    try:
        settings = load_settings(
            env_file=obj.get("env_file"),
            log_level=obj.get("log_level"),
            **overrides,
        )
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        err_console.print(f"Error: invalid settings: {problems}", style="red", markup=False)
        raise SystemExit(EXIT_FAILED) from e

    setup_logging(settings.log_level, json_output=settings.log_json)
    return settings


def run_command(coro: Coroutine[Any, Any, int]) -> int:
    """Run an async command and map mediapull errors to exit codes."""
    try:
        return asyncio.run(coro)
    except (TransferCancelledError, KeyboardInterrupt):
        err_console.print("Transfer cancelled; partial file kept", style="yellow")
        return EXIT_CANCELLED
    except ConfigurationError as e:
        err_console.print(f"Error: {'; '.join(e.errors)}", style="red", markup=False)
        return EXIT_FAILED
    except MediaPullError as e:
        err_console.print(f"Error: {e}", style="red", markup=False)
        return EXIT_FAILED


@click.group()
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Read settings from this .env file",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Override MEDIAPULL_LOG_LEVEL",
)
@click.version_option(package_name="mediapull")
@click.pass_context
def main(ctx: click.Context, env_file: Path | None, log_level: str | None) -> None:
    """Resumable, throttled media downloads over SFTP or HTTP."""
    ctx.ensure_object(dict)
    ctx.obj["env_file"] = env_file
    ctx.obj["log_level"] = log_level.upper() if log_level else None


# =============================================================================
# Fetch Command
# =============================================================================


@main.command()
@click.argument("locator")
@click.option("--type", "-t", "media_type", default="movie", show_default=True, help="Media type tag (movie, show, artist, ...)")
@click.option("--limit", "-l", type=float, help="Speed limit in MB/s")
@click.option("--mode", "-m", type=click.Choice(["sftp", "http"]), help="Transport (default: MEDIAPULL_MODE)")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Explicit destination file")
@click.option("--no-progress", is_flag=True, help="Do not draw a progress bar")
@click.pass_context
def fetch(
    ctx: click.Context,
    locator: str,
    media_type: str,
    limit: float | None,
    mode: str | None,
    output: Path | None,
    no_progress: bool,
) -> None:
    """Fetch one remote file, resuming a partial download.

    LOCATOR is the server file path (sftp) or the download key (http).

    Examples:

        mediapull fetch "/data/media/movies/Heat (1995)/Heat.mkv"

        mediapull fetch /library/parts/123/file.mkv --mode http --type show
    """
    settings = get_settings(ctx, mode=mode, speed_limit_mb=limit)
    code = run_command(_fetch_async(settings, locator, media_type, output, not no_progress))
    raise SystemExit(code)


async def _fetch_async(
    settings: TransferSettings,
    locator: str,
    media_type: str | None,
    output: Path | None,
    progress: bool,
) -> int:
    """Async fetch implementation."""
    from mediapull.services.transfer import (
        AsyncTransferService,
        RichProgressReporter,
        TransferStatus,
    )

    settings.validate_for_transfer()
    service = AsyncTransferService(settings)
    reporter = RichProgressReporter(console=err_console) if progress else None
    result = await service.fetch(locator, media_type, local_path=output, reporter=reporter)

    if result.status is TransferStatus.COMPLETED:
        console.print(str(result), style="green", markup=False)
    elif result.success:
        console.print(str(result), style="yellow", markup=False)
    else:
        err_console.print(str(result), style="red", markup=False)
        return EXIT_FAILED
    return EXIT_OK


# =============================================================================
# Item Command
# =============================================================================


@main.command()
@click.argument("rating_key")
@click.option("--limit", "-l", type=float, help="Speed limit in MB/s")
@click.option("--mode", "-m", type=click.Choice(["sftp", "http"]), help="Transport (default: MEDIAPULL_MODE)")
@click.option("--no-progress", is_flag=True, help="Do not draw a progress bar")
@click.pass_context
def item(
    ctx: click.Context,
    rating_key: str,
    limit: float | None,
    mode: str | None,
    no_progress: bool,
) -> None:
    """Look up a catalog item by rating key and fetch its file."""
    settings = get_settings(ctx, mode=mode, speed_limit_mb=limit)
    code = run_command(_item_async(settings, rating_key, not no_progress))
    raise SystemExit(code)


async def _item_async(settings: TransferSettings, rating_key: str, progress: bool) -> int:
    """Async item implementation."""
    from mediapull.api import ApiContext, CatalogClient

    settings.validate_for_transfer()
    async with ApiContext.from_settings(settings) as api:
        media_item = await CatalogClient(api).get_item(rating_key)

    logger.info(f"Resolved {rating_key} to '{media_item.title}' ({media_item.media_type})")
    locator = media_item.locator(settings.mode)
    return await _fetch_async(settings, locator, media_item.media_type, None, progress)


# =============================================================================
# Config Command
# =============================================================================


@main.command("config")
@click.pass_context
def show_config(ctx: click.Context) -> None:
    """Show effective settings and validate them."""
    settings = get_settings(ctx)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Setting", width=22)
    table.add_column("Value")

    for name in TransferSettings.model_fields:
        value = getattr(settings, name)
        if name == "server_token":
            shown = "********" if value else "[dim]not set[/dim]"
        elif value is None:
            shown = "[dim]not set[/dim]"
        else:
            shown = str(value)
        table.add_row(name, shown)

    console.print(table)

    try:
        settings.validate_for_transfer()
    except ConfigurationError as e:
        for problem in e.errors:
            err_console.print(f"Error: {problem}", style="red", markup=False)
        raise SystemExit(EXIT_FAILED) from e

    console.print(f"[green]Configuration is valid for {settings.mode} transfers[/green]")


# =============================================================================
# Entry Point
# =============================================================================


if __name__ == "__main__":
    main()
