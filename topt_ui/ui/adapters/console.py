"""Rich-based console adapter used for all TTY output."""

from __future__ import annotations

import shutil
import sys
from contextlib import contextmanager
from typing import IO, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme

THEME = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "red",
        "success": "green",
        "accent": "blue",
    }
)


class ConsoleUIAdapter:
    """ANSI-friendly output with Rich tables and spinners."""

    def __init__(self, stream: IO[str] | None = None):
        self.console = Console(
            theme=THEME,
            file=stream or sys.stdout,
            highlight=False,
            soft_wrap=True,
        )

    def show_info(self, message: str) -> None:
        self.console.print(message, style="info", markup=False)

    def show_warning(self, message: str) -> None:
        self.console.print(message, style="warning", markup=False)

    def show_error(self, message: str) -> None:
        self.console.print(message, style="error", markup=False)

    def show_success(self, message: str) -> None:
        self.console.print(message, style="success", markup=False)

    def show_panel(self, message: str, title: str | None = None, border_style: str | None = None) -> None:
        panel = Panel(message, title=title, border_style=border_style or "accent", expand=True)
        self.console.print(panel)

    def show_rule(self, title: str) -> None:
        self.console.rule(f"[b]{title}[/b]", style="accent")

    def show_table(self, title: str, columns: Sequence[str], rows: list[Sequence[str]]) -> None:
        # Keep tables within the visible console width and fold long cells.
        term_width = 0
        try:
            term_width = self.console.size.width
        except Exception:
            pass

        if not term_width:
            term_width = shutil.get_terminal_size(fallback=(100, 24)).columns

        table_width = min(term_width - 2, 120) if term_width and term_width > 40 else None

        table = Table(
            title=f"[b]{title}[/b]",
            border_style="accent",
            header_style="bold",
            row_styles=("", "dim"),
            width=table_width,
        )
        for column in columns:
            table.add_column(column, overflow="fold")
        for row in rows:
            table.add_row(*[str(cell) for cell in row])
        self.console.print(table)

    @contextmanager
    def status(self, message: str):
        with self.console.status(f"[accent]{message}...[/accent]", spinner="dots") as status:
            try:
                yield
                status.update("[success]Done.[/success]")
            except Exception:
                status.update("[error]Failed.[/error]")
                raise
