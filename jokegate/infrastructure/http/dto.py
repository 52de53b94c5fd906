from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


__all__ = ("JokeDto",)


class JokeDto(BaseModel):
    """Joke payload as returned by /jokes/random."""
    model_config = ConfigDict(extra="ignore")

    value: str
    categories: List[str] = Field(default_factory=list)
    id: Optional[str] = None
    url: Optional[str] = None
    icon_url: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
