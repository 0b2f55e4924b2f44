"""
Movie Catalog Client - Fetches movie metadata from The Movie Database (TMDB).

The catalog is best-effort: discovery returns an empty list and detail
lookups return a placeholder movie when TMDB is unreachable or not
configured. Retrying is left to the caller.
"""

import logging
from typing import List, Optional

import httpx

from ..config import settings
from ..models import Movie

logger = logging.getLogger(__name__)


class TmdbClient:
    """
    Thin async client for the TMDB v3 API.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = "https://api.themoviedb.org/3",
        timeout: float = 10.0,
        language: str = "en-US",
    ):
        """
        Initialize the TMDB client.

        Args:
            api_key: TMDB API key. Requests are skipped when missing.
            base_url: API root
            timeout: Request timeout in seconds
            language: Language for titles and overviews
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.language = language

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _get(self, path: str, params: dict) -> dict:
        query = {"api_key": self.api_key, "language": self.language, **params}
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.get(f"{self.base_url}{path}", params=query)
            resp.raise_for_status()
            return resp.json()

    async def discover(self, genre: Optional[str] = None, max_runtime: int = 120) -> List[Movie]:
        """
        Discover movies by genre and maximum runtime.

        Args:
            genre: TMDB genre id(s), comma or pipe separated
            max_runtime: Upper bound on runtime in minutes

        Returns:
            List of movies, empty on any failure
        """
        if not self.is_configured():
            logger.warning("TMDB API key is missing, discovery disabled")
            return []

        params = {"with_runtime.lte": max_runtime}
        if genre:
            params["with_genres"] = genre

        try:
            data = await self._get("/discover/movie", params)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"TMDB discover failed: {e}")
            return []

        movies = []
        for item in data.get("results", []):
            try:
                movies.append(Movie.model_validate(item))
            except ValueError as e:
                logger.debug(f"Skipping malformed TMDB result: {e}")
        return movies

    async def get_movie(self, movie_id: int) -> Movie:
        """
        Fetch details for one movie.

        Args:
            movie_id: TMDB movie id

        Returns:
            The movie, or a placeholder if it cannot be fetched
        """
        if not self.is_configured():
            return Movie.placeholder(movie_id)

        try:
            data = await self._get(f"/movie/{movie_id}", {})
            data.setdefault("genre_ids", [g.get("id") for g in data.get("genres", []) if g.get("id")])
            return Movie.model_validate(data)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"TMDB lookup for movie {movie_id} failed: {e}")
            return Movie.placeholder(movie_id)


# Global TMDB client instance
_tmdb_client: Optional[TmdbClient] = None


def get_tmdb_client() -> TmdbClient:
    """
    Get the global TMDB client built from settings.

    Returns:
        TmdbClient: Global client
    """
    global _tmdb_client
    if _tmdb_client is None:
        _tmdb_client = TmdbClient(
            api_key=settings.tmdb_api_key,
            base_url=settings.tmdb_base_url,
            timeout=settings.tmdb_timeout,
            language=settings.tmdb_language,
        )
    return _tmdb_client
