import logging

from rich.console import Console
from rich.panel import Panel
from rich.box import ROUNDED
from rich.text import Text

from jokegate.domain.models.joke import Joke, JokeCategory, UNAVAILABLE_TEXT

logger = logging.getLogger(__name__)


class ConsoleDisplay:
    """Renders jokes and messages to the terminal with rich."""

    def __init__(self, console: Console = None):
        self._console = console or Console()

    @property
    def console(self) -> Console:
        return self._console

    def display_joke(self, joke: Joke) -> None:
        degraded = joke.text == UNAVAILABLE_TEXT
        style = "yellow" if degraded else "white"
        logger.debug(f"display_joke called: category={joke.category}, degraded={degraded}")
        panel = Panel(
            Text(joke.text, style=style),
            title=f"[bold cyan]{joke.category or 'uncategorized'}[/bold cyan]",
            box=ROUNDED,
            expand=False,
        )
        self._console.print(panel)

    def display_category(self, category: JokeCategory) -> None:
        self._console.print(f"[bold cyan]{category}[/bold cyan]")

    def display_info(self, message: str) -> None:
        self._console.print(f"[dim]{message}[/dim]")
