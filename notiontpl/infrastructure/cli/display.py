import logging
import sys
from typing import Any, ContextManager, Optional

from rich.box import HEAVY, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from notiontpl.domain.interfaces.user_interface import UserInterface

logger = logging.getLogger(__name__)


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output.

    Status, success and diagnostic messages go to stderr; ``display_output``
    writes raw text to stdout so exported templates can be piped.
    """

    def __init__(self, console: Optional[Console] = None):
        """Initializes the rich Console."""
        self._console = console or Console(stderr=True)

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    def display_output(self, output: str, **kwargs: Any) -> None:
        """Writes output unformatted so it stays machine-readable.

        Args:
            output: Text to write. A trailing newline is added.
        """
        sys.stdout.write(f"{output}\n")
        sys.stdout.flush()

    def display_success(self, message: str, **kwargs: Any) -> None:
        self.console.print(Text(f"✔ {message}", style="bold green"))

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
        panel = Panel(
            Text(info_message, style="white"),
            title="[bold blue]Info[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1)
        )
        self.console.print(panel)

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

    def status(self, message: str) -> ContextManager[Any]:
        """Spinner shown while a command talks to Notion."""
        return self.console.status(Text(message), spinner="dots")
