"""JokeApiPort implementation backed by the Chuck Norris API.

Both operations run through the same named resilience policy group and
degrade to static defaults instead of raising.
"""

import logging
import random
from typing import Callable, Optional, Sequence

from jokegate.domain.interfaces.joke_api import JokeApiPort
from jokegate.domain.models.joke import DEFAULT_CATEGORY, FALLBACK_JOKE, Joke, JokeCategory
from jokegate.infrastructure.http.chuck_norris_api import ChuckNorrisApi
from jokegate.infrastructure.http.mapper import JokeMapper
from jokegate.infrastructure.resilience.exceptions import MaxRetryError
from jokegate.infrastructure.resilience.registry import PolicyRegistry, default_registry

module_logger = logging.getLogger(__name__)

POLICY_GROUP = "jokeService"


def _root_cause(exc: Exception) -> Exception:
    if isinstance(exc, MaxRetryError):
        return exc.original_exception
    return exc


class ResilientJokeClient(JokeApiPort):
    """Fetches categories and jokes, falling back to defaults on any failure."""

    def __init__(
        self,
        api: ChuckNorrisApi,
        mapper: Optional[JokeMapper] = None,
        registry: Optional[PolicyRegistry] = None,
        policy_name: str = POLICY_GROUP,
        logger: Optional[logging.Logger] = None,
        chooser: Callable[[Sequence[str]], str] = random.choice,
    ):
        """Initializes the client.

        Args:
            api: Raw HTTP client for the joke API.
            mapper: Maps joke payloads to Joke models.
            registry: Source of the shared policy group (process-wide default if None).
            policy_name: Name of the policy group guarding both operations.
            logger: Receives fallback error logs.
            chooser: Picks one category out of a non-empty list.
        """
        self.api = api
        self.mapper = mapper or JokeMapper()
        self.policy = (registry or default_registry()).get(policy_name)
        self.logger = logger or module_logger
        self._chooser = chooser

    async def get_random_category(self) -> JokeCategory:
        return await self.policy.execute(
            self._fetch_random_category,
            fallback=self._random_category_fallback,
            endpoint_name="get_random_category",
        )

    async def get_joke(self, category: JokeCategory) -> Joke:
        return await self.policy.execute(
            self._fetch_joke,
            category,
            fallback=lambda exc: self._joke_fallback(category, exc),
            endpoint_name="get_joke",
        )

    async def _fetch_random_category(self) -> JokeCategory:
        categories = await self.api.get_categories()
        if not categories:
            return DEFAULT_CATEGORY
        return JokeCategory(self._chooser(categories))

    async def _fetch_joke(self, category: JokeCategory) -> Joke:
        dto = await self.api.get_joke(category)
        return self.mapper.to_model(dto, requested_category=category)

    # --- Fallbacks ---

    def _random_category_fallback(self, exc: Exception) -> JokeCategory:
        self.logger.error(f"Fallback executed for get_random_category. Error: {_root_cause(exc)}")
        return DEFAULT_CATEGORY

    def _joke_fallback(self, category: JokeCategory, exc: Exception) -> Joke:
        self.logger.error(f"Fallback executed for get_joke. Category: {category}. Error: {_root_cause(exc)}")
        return FALLBACK_JOKE
