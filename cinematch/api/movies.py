"""
Movies API endpoints - catalog discovery.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query

from ..models import Movie
from ..services import TmdbClient, get_tmdb_client

router = APIRouter(prefix="/api/movies", tags=["movies"])


@router.get("/discover", response_model=List[Movie])
async def discover(
    genre: Optional[str] = Query(None, description="TMDB genre id(s)"),
    max_runtime: str = Query("120", alias="maxRuntime", description="Maximum runtime in minutes"),
    tmdb: TmdbClient = Depends(get_tmdb_client)
):
    """
    Discover movies to swipe on. Never fails: catalog problems yield [].
    """
    try:
        runtime = int(max_runtime)
    except ValueError:
        runtime = 120

    return await tmdb.discover(genre, runtime)
