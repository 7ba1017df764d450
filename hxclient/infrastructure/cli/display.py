"""Console presentation of responses and errors, using rich."""

import logging
from typing import Optional

from rich.box import HEAVY, SIMPLE
from rich.console import Console
from rich.json import JSON
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from hxclient.domain.models.common import HEADER_CONTENT_TYPE
from hxclient.domain.models.http import Response

logger = logging.getLogger(__name__)


def _status_style(status_code: int) -> str:
    if status_code < 300:
        return "bold green"
    if status_code < 400:
        return "bold cyan"
    if status_code < 500:
        return "bold yellow"
    return "bold red"


class ConsoleDisplay:
    """Renders responses, info and errors to the terminal."""

    def __init__(self, console: Optional[Console] = None):
        self._console = console or Console()

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    @console.setter
    def console(self, value: Console) -> None:
        self._console = value

    def display_response(self, response: Response, show_headers: bool = False, show_body: bool = True) -> None:
        """Displays the status line, optionally the headers, and the body.

        JSON bodies are pretty-printed; anything else is printed verbatim.
        """
        status = Text(f"{response.status_code} {response.reason_phrase}".strip(),
                      style=_status_style(response.status_code))
        if response.from_cache:
            status.append("  (cached)", style="dim")
        self.console.print(status)

        if show_headers:
            table = Table(show_header=False, box=SIMPLE, padding=(0, 1))
            table.add_column("Header", style="cyan")
            table.add_column("Value")
            for name, value in response.headers.items():
                table.add_row(name, value)
            self.console.print(table)

        if not show_body or not response.content:
            return

        content_type = response.get_header(HEADER_CONTENT_TYPE, "") or ""
        if "json" in content_type:
            try:
                self.console.print(JSON(response.text))
                return
            except ValueError:
                logger.debug("Response declared JSON but did not parse; printing raw body.")
        self.console.print(response.text, markup=False, highlight=False)

    def display_error(self, error_message: str) -> None:
        """Displays an error message in a distinct style."""
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_info(self, info_message: str) -> None:
        self.console.print(f"[blue]Info:[/blue] {info_message}")
