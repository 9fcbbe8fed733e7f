"""
Entry point for ``python -m tunelink`` and the ``tunelink`` console script.
"""

import logging
import sys

from rich.console import Console

from tunelink.cli.app import app
from tunelink.cli.formatters import format_error_with_suggestions
from tunelink.exceptions import CancellationError, TunelinkError

log = logging.getLogger("tunelink")


def main() -> None:
    """Runs the CLI and renders any error that escapes a command."""
    console = Console(stderr=True)
    try:
        app()
    except CancellationError:
        console.print("[yellow]⚠️  Operation cancelled.[/yellow]")
        sys.exit(130)
    except Exception as e:
        context = None if isinstance(e, TunelinkError) else {"type": "Unexpected"}
        console.print(format_error_with_suggestions(e, context))
        log.debug("Full traceback:", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
