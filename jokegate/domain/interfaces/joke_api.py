"""Interface for joke providers.

Defines the contract the core layer uses to obtain jokes, regardless of the
remote API or the resilience strategy behind it.
"""

import abc

from ..models.joke import Joke, JokeCategory


class JokeApiPort(abc.ABC):
    """Abstract Base Class for joke sources."""

    @abc.abstractmethod
    async def get_random_category(self) -> JokeCategory:
        """Returns one category offered by the joke source.

        Implementations must not raise; they return a default category when
        the source is unavailable.
        """
        pass

    @abc.abstractmethod
    async def get_joke(self, category: JokeCategory) -> Joke:
        """Returns a joke from the given category.

        Args:
            category: The category label, passed to the source as-is.

        Returns:
            The fetched joke, or a fixed placeholder joke if the source fails.
        """
        pass
