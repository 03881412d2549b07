"""
Functions for formatting and displaying data in the console using Rich.
"""

import json
from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from resting.exceptions import StatusCodeError
from resting.utils.formatting import format_duration, format_size


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "UrlMalformedError": [
            "• Include the scheme and host, e.g. https://api.example.com/path.",
            "• Remove spaces or control characters from the URL.",
        ],
        "WrongParameterTypeError": [
            "• GET requests cannot carry a raw body.",
            "• Use -d key=value to send query parameters, or pick another -X method.",
        ],
        "StatusCodeError": [
            "• The server rejected the request; see the response body below.",
            "• Check headers such as Authorization with -H 'Name: value'.",
        ],
        "ConfigurationError": [
            "• Check the configuration file shown with --show-config.",
            "• Run `resting init --force` to write a fresh default file.",
        ],
        "ClientConnectorError": [
            "• A network connection issue occurred.",
            "• Check the host name and your internet connection.",
        ],
        "TimeoutError": [
            "• The request timed out.",
            "• Raise the timeouts in the configuration file.",
        ],
        "DownloadCancelledError": [
            "• The download was cancelled before it finished.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    suggestion_text = Text("\n".join(suggestions))

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(suggestion_text)

    if isinstance(error, StatusCodeError) and error.body:
        content.add_row()
        content.add_row(Text(error.body[:500].decode("utf-8", errors="replace"), style="dim"))

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration, hiding sensitive header values."""
    console = Console()
    content = ""
    for key, value in config_data.items():
        if key == "default_headers" and isinstance(value, dict):
            value = ", ".join(
                f"{k}: [hidden]" if k.lower() == "authorization" else f"{k}: {v}"
                for k, v in value.items()
            )
        content += f"{key} = {escape(str(value))}\n"

    console.print(
        Panel(
            content.strip() or "[dim](defaults)[/dim]",
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_response(console: Console, body: bytes) -> None:
    """Prints a response body, pretty-printing it when it is JSON."""
    text = body.decode("utf-8", errors="replace")
    try:
        json.loads(text)
    except ValueError:
        console.print(text, markup=False, highlight=False)
    else:
        console.print_json(text)


def print_download_summary(console: Console, path: Path, duration_s: float) -> None:
    """Displays where a download was saved, its size and duration."""
    size = path.stat().st_size if path.is_file() else 0

    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column(style="bold cyan", justify="right", width=14)
    stats_table.add_column(style="white", justify="left")
    stats_table.add_row("Saved To:", f"[green]{path}[/green]")
    stats_table.add_row("Total Size:", f"[cyan]{format_size(size)}[/cyan]")
    avg_speed = size / duration_s if duration_s > 0 else 0
    stats_table.add_row("Avg. Speed:", f"[magenta]{format_size(int(avg_speed))}/s[/magenta]")
    stats_table.add_row("Time Elapsed:", f"[blue]{format_duration(duration_s)}[/blue]")

    console.print()
    console.print(
        Panel(
            stats_table,
            title="[bold]Download Complete![/bold]",
            border_style="green",
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )
