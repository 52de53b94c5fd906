"""Use case: serve jokes through a JokeApiPort."""

import logging
from typing import Optional

from jokegate.domain.interfaces.joke_api import JokeApiPort
from jokegate.domain.models.joke import Joke, JokeCategory

logger = logging.getLogger(__name__)


class JokeService:
    """Application service the CLI talks to."""

    def __init__(self, joke_api: JokeApiPort):
        self.joke_api = joke_api

    async def get_random_category(self) -> JokeCategory:
        return await self.joke_api.get_random_category()

    async def get_joke(self, category: Optional[JokeCategory] = None) -> Joke:
        """Returns a joke from category, or from a random category if None."""
        if category is None:
            return await self.get_random_joke()
        return await self.joke_api.get_joke(category)

    async def get_random_joke(self) -> Joke:
        category = await self.joke_api.get_random_category()
        logger.info(f"Fetching a joke from category '{category}'")
        return await self.joke_api.get_joke(category)
