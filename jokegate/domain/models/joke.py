"""Value objects for the joke context."""

from dataclasses import dataclass
from typing import NewType

JokeCategory = NewType("JokeCategory", str)  # Content category label, e.g. 'dev'

DEFAULT_CATEGORY = JokeCategory("dev")
UNAVAILABLE_TEXT = "Temporarily unavailable"


@dataclass(frozen=True)
class Joke:
    """A joke and the category it belongs to."""
    text: str
    category: JokeCategory


# Returned whenever a joke cannot be fetched
FALLBACK_JOKE = Joke(text=UNAVAILABLE_TEXT, category=DEFAULT_CATEGORY)
