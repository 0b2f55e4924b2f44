"""Storage module - store contracts and their SQLAlchemy implementation."""

from .interface import SessionStore, SwipeStore, FriendGraph, UserStore
from .sql_storage import SQLStorage, create_engine_for_url, init_storage, set_storage, get_storage

__all__ = [
    'SessionStore', 'SwipeStore', 'FriendGraph', 'UserStore',
    'SQLStorage', 'create_engine_for_url', 'init_storage', 'set_storage', 'get_storage',
]
