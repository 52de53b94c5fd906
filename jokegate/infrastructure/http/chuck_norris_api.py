"""Raw HTTP client for the Chuck Norris joke API.

Performs exactly one request per call; retries, limits and fallbacks are the
caller's concern (see ResilientJokeClient).
"""

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import TypeAdapter

from jokegate import __version__
from jokegate.infrastructure.http.dto import JokeDto
from jokegate.infrastructure.http.exceptions import httpx_error_handler

logger = logging.getLogger(__name__)

CATEGORIES_PATH = "/jokes/categories"
RANDOM_JOKE_PATH = "/jokes/random"
HEADERS = {
    "Accept": "application/json",
    "User-Agent": f"jokegate/{__version__}",
}

_categories_adapter = TypeAdapter(List[str])


class ChuckNorrisApi:
    """Thin async wrapper around the two read-only joke endpoints."""

    def __init__(
        self,
        base_url: str = "https://api.chucknorris.io",
        timeout_s: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initializes the API client.

        Args:
            base_url: Scheme and host of the joke API.
            timeout_s: Applied separately to each phase of a request (connect, read,
                write and pool acquisition), not to the request as a whole.
            transport: Optional httpx transport (tests pass an httpx.MockTransport).
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = httpx.Timeout(timeout_s)
        self._transport = transport
        logger.info(f"ChuckNorrisApi initialized: base_url={self.base_url}, timeout={timeout_s}s")

    async def _get(self, path: str, params: Optional[Dict[str, str]] = None) -> Any:
        # A short-lived client per request keeps the adapter independent of any event loop
        async with httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, headers=HEADERS, transport=self._transport
        ) as client:
            resp = await client.get(path, params=params)
            resp.raise_for_status()
            return resp.json()

    @httpx_error_handler
    async def get_categories(self) -> List[str]:
        logger.debug("Fetching joke categories")
        payload = await self._get(CATEGORIES_PATH)
        return _categories_adapter.validate_python(payload)

    @httpx_error_handler
    async def get_joke(self, category: str) -> JokeDto:
        logger.debug(f"Fetching joke for category '{category}'")
        payload = await self._get(RANDOM_JOKE_PATH, params={"category": category})
        return JokeDto.model_validate(payload)
