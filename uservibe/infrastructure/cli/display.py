import logging
from typing import Any, Dict, Mapping, Optional

from rich.box import HEAVY, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from uservibe.domain.interfaces.user_interface import UserInterface
from uservibe.domain.models.activity import SubjectData
from uservibe.domain.models.common import Subject

logger = logging.getLogger(__name__)

DEFAULT_COLORS = {
    "sub_color": "#6a5cff",
    "count_color": "#d93900",
    "sub_text_color": "#ffffff",
    "count_text_color": "#ffffff",
}


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output.

    Each subject is rendered as a row of two-tone "pills": ``r/<subreddit>``
    followed by the interaction count, in the configured colours.
    """

    def __init__(self, colors: Optional[Dict[str, str]] = None, console: Optional[Console] = None):
        """Initializes the rich Console.

        Args:
            colors: Overrides for the pill colours (keys as in DEFAULT_COLORS).
            console: Optional Console to print to (tests pass one recording output).
        """
        self._console = console or Console()
        self.colors = {**DEFAULT_COLORS, **(colors or {})}
        self.loading: Dict[Subject, str] = {}

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    # --- AnnotationListener ---

    def on_loading_started(self, subject: Subject) -> None:
        self.loading[subject] = "Loading..."
        self.console.print(Text(f"u/{subject} ", style="bold") + Text("loading...", style="dim"))

    def on_data_ready(self, subject: Subject, data: SubjectData) -> None:
        self.loading.pop(subject, None)
        self.console.print(self.render_pills(subject, data))

    def on_given_up(self, subject: Subject) -> None:
        self.loading.pop(subject, None)
        self.console.print(Text(f"u/{subject} ", style="bold") + Text("unavailable", style="red"))

    def on_rate_limit_tip_changed(self, subject: Subject, text: str) -> None:
        if self.loading.get(subject) == text:
            return
        self.loading[subject] = text
        self.console.print(Text(f"u/{subject} ", style="bold") + Text(text, style="yellow"))

    # --- Rendering ---

    def render_pills(self, subject: Subject, data: SubjectData) -> Text:
        """Builds the annotation line for one subject."""
        sub_style = f"{self.colors['sub_text_color']} on {self.colors['sub_color']}"
        count_style = f"{self.colors['count_text_color']} on {self.colors['count_color']}"
        line = Text(f"u/{subject} ", style="bold")
        if not data:
            line.append("no recent activity", style="dim")
            return line
        for item in data:
            line.append(f" r/{item.subreddit} ", style=sub_style)
            line.append(f" {item.count} ", style=count_style)
            line.append(" ")
        return line

    def display_summary(self, results: Mapping[str, Optional[SubjectData]]) -> None:
        table = Table(title="User activity", box=SIMPLE)
        table.add_column("User", style="bold")
        table.add_column("Top subreddits")
        table.add_column("Status")
        for subject, data in results.items():
            if data is None:
                table.add_row(subject, "", Text("unavailable", style="red"))
            elif not data:
                table.add_row(subject, "-", Text("ok", style="green"))
            else:
                top = ", ".join(f"r/{item.subreddit} ({item.count})" for item in data)
                table.add_row(subject, top, Text("ok", style="green"))
        self.console.print(table)

    def display_settings(self, settings: Dict[str, Any]) -> None:
        table = Table(title="Settings", box=SIMPLE)
        table.add_column("Key", style="bold")
        table.add_column("Value")
        for key, value in settings.items():
            table.add_row(key, str(value))
        self.console.print(table)

    # --- Messages ---

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style.

        Args:
            error_message: The error message to display.
        """
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        self.console.print(Text(info_message, style="blue"))

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message with enhanced styling.

        Args:
            warning_message: The warning message to display.
        """
        logger.warning(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)
