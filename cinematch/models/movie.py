"""
Movie Model - Catalog metadata as returned by TMDB.
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict


class Movie(BaseModel):
    """Movie metadata. Field names follow the TMDB payload."""
    model_config = ConfigDict(extra="ignore")

    id: int
    title: str = ""
    overview: str = ""
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    release_date: str = ""
    vote_average: float = 0.0
    runtime: Optional[int] = None
    genre_ids: List[int] = []

    @classmethod
    def placeholder(cls, movie_id: int) -> "Movie":
        """Stand-in used when the catalog cannot be reached."""
        return cls(
            id=movie_id,
            title=str(movie_id),
            overview="You both liked this movie!",
            poster_path="/placeholder.jpg",
            backdrop_path="",
        )
