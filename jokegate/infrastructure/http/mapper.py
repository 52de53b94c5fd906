"""Maps joke API payloads onto domain models."""

from typing import Optional

from jokegate.domain.models.joke import Joke, JokeCategory
from jokegate.infrastructure.http.dto import JokeDto


class JokeMapper:

    @staticmethod
    def to_model(dto: JokeDto, requested_category: Optional[str] = None) -> Joke:
        """Builds a Joke, using the requested category when the payload has none."""
        if dto.categories:
            category = dto.categories[0]
        else:
            category = requested_category or ""
        return Joke(text=dto.value, category=JokeCategory(category))
