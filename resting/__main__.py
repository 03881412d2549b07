"""
Main entry point for the resting command-line tool.
Maps library errors to exit codes and renders them for the terminal.
"""

import asyncio
import logging
import os
import sys

import typer
from rich.console import Console

from resting.cli.app import app
from resting.cli.formatters import format_error_with_suggestions
from resting.exceptions import DownloadCancelledError, RestingError, StatusCodeError

EXIT_ERROR = 1
# Same code curl uses with --fail, so scripts can tell HTTP errors apart.
EXIT_HTTP_ERROR = 22
EXIT_CANCELLED = 130


def exit_code_for(error: BaseException) -> int:
    """Returns the process exit code reported for ``error``."""
    if isinstance(error, StatusCodeError):
        return EXIT_HTTP_ERROR
    if isinstance(error, (DownloadCancelledError, KeyboardInterrupt, asyncio.CancelledError)):
        return EXIT_CANCELLED
    return EXIT_ERROR


def main() -> None:
    """Main entry point function."""
    if os.name == "nt":
        try:
            sys.stdout.reconfigure(encoding="utf-8")
            sys.stderr.reconfigure(encoding="utf-8")
        except (TypeError, AttributeError):
            pass

    log = logging.getLogger("resting")
    console = Console(stderr=True)

    try:
        app()
    except (typer.Exit, typer.Abort):
        pass
    except (KeyboardInterrupt, asyncio.CancelledError, DownloadCancelledError) as e:
        console.print("\n[yellow]⚠️  Request cancelled.[/yellow]")
        sys.exit(exit_code_for(e))
    except RestingError as e:
        console.print(f"\n{format_error_with_suggestions(e)}")
        sys.exit(exit_code_for(e))
    except Exception as e:
        console.print(f"\n{format_error_with_suggestions(e, {'type': 'Unexpected'})}")
        log.debug("Full traceback:", exc_info=True)
        sys.exit(exit_code_for(e))


if __name__ == "__main__":
    main()
