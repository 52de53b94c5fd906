from functools import wraps
from typing import Optional

import httpx


class JokeApiError(Exception):
    def __init__(self, message: str, source: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.source = source


class JokeApiConnectionError(JokeApiError):
    """Network failure or timeout talking to the joke API."""


class JokeApiStatusError(JokeApiError):
    def __init__(self, message: str, status: int, source: Optional[Exception] = None):
        super().__init__(message, source)
        self.status = status


class JokeMappingError(JokeApiError):
    """The joke API answered with a payload that does not fit the expected shape."""


def httpx_error_handler(func):
    @wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except httpx.TimeoutException as e:
            raise JokeApiConnectionError("Request timed out", e) from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise JokeApiStatusError(f"Joke API request failed (status: {status})", status, e) from e
        except httpx.TransportError as e:
            raise JokeApiConnectionError(f"Connection error: {e}", e) from e
        except ValueError as e:
            # pydantic ValidationError and undecodable JSON bodies
            raise JokeMappingError(f"Unexpected joke API payload: {e}", e) from e

    return wrapper
