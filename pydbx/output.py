"""Output formatting for CLI commands."""

import json
from typing import Any, Optional

import click
from rich.console import Console


class OutputFormatter:
    """Formats and prints user-facing output.

    Regular output goes to stdout; warnings and errors go to stderr so that
    listings stay pipeable.
    """

    def __init__(
        self,
        quiet: bool = False,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ):
        """Initialize output formatter.

        Args:
            quiet: Suppress informational messages
            console: Console for regular output (default: stdout)
            err_console: Console for warnings and errors (default: stderr)
        """
        self.quiet = quiet
        self.console = console or Console(highlight=False, emoji=False)
        self.err_console = err_console or Console(
            stderr=True, highlight=False, emoji=False
        )

    def print(self, message: str = "") -> None:
        """Print a listing line as is (never suppressed, tabs kept)."""
        click.echo(message, file=self.console.file)

    def info(self, message: str) -> None:
        """Print an informational message."""
        if not self.quiet:
            self.console.print(message, markup=False, soft_wrap=True)

    def success(self, message: str) -> None:
        """Print a success message."""
        if not self.quiet:
            self.console.print(message, style="green", markup=False, soft_wrap=True)

    def warning(self, message: str) -> None:
        """Print a warning to stderr."""
        self.err_console.print(message, style="yellow", markup=False, soft_wrap=True)

    def error(self, message: str) -> None:
        """Print an error to stderr."""
        self.err_console.print(
            f"Error: {message}", style="bold red", markup=False, soft_wrap=True
        )

    def output_json(self, data: Any) -> None:
        """Print data as indented JSON."""
        self.console.print(
            json.dumps(data, indent=2, default=str), markup=False, soft_wrap=True
        )
