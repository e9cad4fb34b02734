"""Shared Rich console instances for CLI output."""

from rich.console import Console
from rich.markup import escape

# Program output stays on stdout; shimrun's own messages go to stderr
console = Console()
err_console = Console(stderr=True)

PREFIX = "[dim][[/dim][cyan]shimrun[/cyan][dim]][/dim]"


def log_info(message: str) -> None:
    """Status line such as ``[shimrun] Restarting...`` on stderr."""
    err_console.print(f"{PREFIX} {escape(message)}", highlight=False)


def log_error(message: str) -> None:
    err_console.print(f"[red]Error:[/red] {escape(message)}", highlight=False)


def clear_screen() -> None:
    console.clear()


__all__ = ["clear_screen", "console", "err_console", "log_error", "log_info"]
