"""Services module - provides external service integrations."""

from .tmdb import TmdbClient, get_tmdb_client

__all__ = ['TmdbClient', 'get_tmdb_client']
