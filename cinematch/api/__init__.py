"""API module."""

from .auth import router as auth_router
from .friends import router as friends_router
from .swipe import router as swipe_router
from .movies import router as movies_router

__all__ = ['auth_router', 'friends_router', 'swipe_router', 'movies_router']
