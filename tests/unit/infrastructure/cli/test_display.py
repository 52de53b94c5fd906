import pytest
from rich.console import Console

from jokegate.domain.models.joke import FALLBACK_JOKE, Joke
from jokegate.infrastructure.cli.display import ConsoleDisplay


@pytest.fixture
def display():
    return ConsoleDisplay(console=Console(record=True, width=100))


def test_display_joke_shows_text_and_category(display):
    display.display_joke(Joke(text="Chuck Norris can compile syntax errors.", category="dev"))

    output = display.console.export_text()
    assert "Chuck Norris can compile syntax errors." in output
    assert "dev" in output


def test_display_fallback_joke(display):
    display.display_joke(FALLBACK_JOKE)

    assert "Temporarily unavailable" in display.console.export_text()


def test_display_uncategorized_joke(display):
    display.display_joke(Joke(text="No label.", category=""))

    assert "uncategorized" in display.console.export_text()


def test_display_messages(display):
    display.display_category("food")
    display.display_info("Fetching...")

    output = display.console.export_text()
    assert "food" in output
    assert "Fetching..." in output
