"""
Defines the command-line interface for the library using Typer.
A developer tool for trying requests and downloads from the terminal.
"""

import asyncio
import logging
import os
import time
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from resting import __version__
from resting.api.client import RestClient
from resting.models.config import ClientConfiguration
from resting.models.request import HTTPEncoding, HTTPMethod, RequestConfiguration
from resting.storage.config_manager import ConfigManager, parse_header_list
from resting.utils.formatting import format_fraction

from .formatters import print_config, print_download_summary, print_response
from .progress_manager import ProgressManager

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("resting")

app = typer.Typer(
    name="resting",
    help=(
        "Send declarative HTTP requests and download files. Use 'resting"
        " <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "resting"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


def _config_file(ctx: typer.Context) -> Path:
    return ctx.obj if isinstance(ctx.obj, Path) else CONFIG_FILE


def _load_config(ctx: typer.Context, **overrides) -> ClientConfiguration:
    return ConfigManager(_config_file(ctx)).load_config(overrides)


def parse_data_pairs(entries: list[str]) -> dict[str, str]:
    """Parses ``key=value`` entries into a parameter dictionary."""
    parameters: dict[str, str] = {}
    for entry in entries:
        key, sep, value = entry.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Invalid data '{entry}'. Use key=value.")
        parameters[key] = value
    return parameters


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    config_path: Path = typer.Option(
        CONFIG_FILE, "--config", help="Path to the INI configuration file."
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """Resting CLI"""
    if version:
        console.print(f"[bold]resting[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("resting").setLevel(log_level)

    ctx.obj = config_path

    if show_config:
        config = ConfigManager(config_path).load_config()
        print_config(config_path, config.model_dump(exclude={"callback_dispatcher"}))
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    ctx: typer.Context,
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration file."
    ),
):
    """Write a configuration file with default settings."""
    config_file = _config_file(ctx)
    if (
        config_file.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    ConfigManager(config_file).save_new_config({})
    console.print(f"\n[bold green]✓ Configuration saved to '{config_file}'[/bold green]")


@app.command()
def fetch(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="The URL to request."),
    method: HTTPMethod = typer.Option(
        HTTPMethod.GET, "-X", "--method", help="HTTP method.", case_sensitive=False
    ),
    headers: list[str] = typer.Option(  # noqa: B008
        [], "-H", "--header", help="Extra header as 'Name: value'. Repeatable."
    ),
    data: list[str] = typer.Option(  # noqa: B008
        [], "-d", "--data", help="Parameter as key=value. Repeatable."
    ),
    raw_body: str | None = typer.Option(
        None, "--raw-body", help="Send this text verbatim as the request body."
    ),
    json_encoding: bool = typer.Option(
        False, "--json", help="Encode parameters as JSON instead of a form."
    ),
):
    """Send a request and print the response body."""
    if raw_body is not None and data:
        raise typer.BadParameter("Use either --data or --raw-body, not both.")

    body = raw_body.encode("utf-8") if raw_body is not None else parse_data_pairs(data)
    request = RequestConfiguration(
        url,
        method=method,
        body=body or None,
        headers=parse_header_list(headers) or None,
        encoding=HTTPEncoding.JSON if json_encoding else HTTPEncoding.URL_ENCODED,
    )
    config = _load_config(ctx)

    async def _fetch_async() -> bytes:
        async with RestClient(config) as client:
            return await client.fetch(request)

    print_response(console, asyncio.run(_fetch_async()))


@app.command()
def download(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="The URL of the file to download."),
    directory: Path | None = typer.Option(
        None, "-o", "--dir", help="Directory to keep the file in."
    ),
    headers: list[str] = typer.Option(  # noqa: B008
        [], "-H", "--header", help="Extra header as 'Name: value'. Repeatable."
    ),
):
    """Download a file with a progress bar. Ctrl-C cancels the download."""
    request = RequestConfiguration(url, headers=parse_header_list(headers) or None)
    config = _load_config(ctx, download_directory=directory)

    async def _download_async() -> Path:
        async with RestClient(config) as client:
            async with ProgressManager(console, url) as progress:
                try:
                    return await client.fetch_file(request, on_progress=progress.update)
                except asyncio.CancelledError:
                    log.info(
                        "[yellow]Download cancelled at "
                        f"{format_fraction(progress.last_fraction)}.[/yellow]"
                    )
                    raise

    start_time = time.monotonic()
    path = asyncio.run(_download_async())
    print_download_summary(console, path, time.monotonic() - start_time)


__all__ = ["app"]
