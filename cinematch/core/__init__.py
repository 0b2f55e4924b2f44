"""Core module - match resolution and logging setup."""

from .match_engine import MatchResolutionEngine, build_match_engine

__all__ = ['MatchResolutionEngine', 'build_match_engine']
