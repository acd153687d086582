"""Console notification channel for findings."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape

from .models import MODULE_NAME, EncryptionFinding


class ConsoleNotifier:
    """Print an inbox-style message for each finding."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def publish(self, finding: EncryptionFinding) -> None:
        title = escape(finding.title)
        self.console.print(f"[bold red]{title}[/bold red] [dim]({MODULE_NAME})[/dim]")
        for line in finding.summary.splitlines():
            self.console.print(f"  {escape(line)}")


__all__ = ["ConsoleNotifier"]
