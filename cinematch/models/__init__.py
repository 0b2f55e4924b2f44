"""Models module."""

from .user import AuthRequest, AuthResponse, User, UserInDB, TokenData
from .movie import Movie
from .friend import FriendStatus, Friendship, FriendInfo, PendingRequest
from .session import (
    SessionMode, MatchSession, MovieSwipe, MatchSource, MatchDecision,
    CreateSessionRequest, SessionCreated, SessionInfo, SwipeRequest, SwipeResult, MatchStatus,
)

__all__ = [
    'AuthRequest', 'AuthResponse', 'User', 'UserInDB', 'TokenData',
    'Movie',
    'FriendStatus', 'Friendship', 'FriendInfo', 'PendingRequest',
    'SessionMode', 'MatchSession', 'MovieSwipe', 'MatchSource', 'MatchDecision',
    'CreateSessionRequest', 'SessionCreated', 'SessionInfo', 'SwipeRequest', 'SwipeResult', 'MatchStatus',
]
