"""Output sink passed to every component that talks to the user."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape

# Width of the right-aligned status label, like cargo's shell output.
LABEL_WIDTH = 12


class Reporter:
    """Writes status lines, warnings and errors to rich consoles.

    Components never print directly; they receive a reporter so tests can
    capture output by handing in consoles that write to memory.

    Attributes:
        console: Console for regular output.
        error_console: Console for warnings and errors.
        verbose: Whether debug messages are shown.
    """

    def __init__(
        self,
        console: Console | None = None,
        error_console: Console | None = None,
        *,
        verbose: bool = False,
    ) -> None:
        self.console = console or Console()
        self.error_console = error_console or Console(stderr=True)
        self.verbose = verbose

    def status(self, label: str, message: str, *, style: str = "bold green") -> None:
        """Print a labelled status line."""
        self.console.print(
            f"[{style}]{escape(label.rjust(LABEL_WIDTH))}[/{style}] {escape(message)}",
            highlight=False,
        )

    def info(self, message: str) -> None:
        """Print a plain line of output."""
        self.console.print(escape(message), highlight=False)

    def debug(self, message: str) -> None:
        """Print a line only in verbose mode."""
        if self.verbose:
            self.console.print(f"[dim]{escape(message)}[/dim]", highlight=False)

    def warn(self, message: str) -> None:
        """Print a warning to the error console."""
        self.error_console.print(f"[bold yellow]warning:[/bold yellow] {escape(message)}")

    def error(self, message: str) -> None:
        """Print an error to the error console."""
        self.error_console.print(f"[bold red]error:[/bold red] {escape(message)}")
