"""
Session Models - Match sessions, swipes and match decisions.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from .movie import Movie


class SessionMode(str, Enum):
    """How a session finds its match."""
    FRIEND = "friend"    # participants fixed up front
    REGULAR = "regular"  # one participant, counterpart discovered from shared likes


class MatchSession(BaseModel):
    """A matching session as stored."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    user1_id: str
    user2_id: Optional[str] = None
    mode: SessionMode = SessionMode.REGULAR
    matched_movie_id: Optional[int] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_friend_session(self) -> bool:
        return self.mode == SessionMode.FRIEND

    @property
    def is_resolved(self) -> bool:
        return self.matched_movie_id is not None and self.matched_movie_id > 0

    def participants(self) -> list[str]:
        return [uid for uid in (self.user1_id, self.user2_id) if uid]


class MovieSwipe(BaseModel):
    """One user's like/dislike on one movie within one session."""
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    movie_id: int
    session_id: str
    liked: bool
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class MatchSource(str, Enum):
    """Which rule produced a match."""
    EXISTING = "existing"
    FRIEND_SESSION = "friend_session"
    FRIEND_PRIORITY = "friend_priority"
    ANY_USER = "any_user"
    FALLBACK = "fallback"


class MatchDecision(BaseModel):
    """Outcome of resolving a session. Derived, never stored as such."""
    is_match: bool = False
    matched_movie_id: Optional[int] = None
    matched_swipe: Optional[MovieSwipe] = None
    counterpart_user_id: Optional[str] = None
    source: Optional[MatchSource] = None

    @classmethod
    def no_match(cls) -> "MatchDecision":
        return cls()


# --- API shapes ---

class CreateSessionRequest(BaseModel):
    """Body of POST /api/swipe/session."""
    model_config = ConfigDict(populate_by_name=True)

    is_friend_session: bool = Field(False, alias="isFriendSession")
    friend_id: Optional[str] = Field(None, alias="friendId")
    friend_email: Optional[str] = Field(None, alias="friendEmail")


class SessionCreated(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId")
    friend_id: Optional[str] = Field(None, alias="friendId")
    is_friend_session: bool = Field(..., alias="isFriendSession")


class SessionInfo(BaseModel):
    """Body of GET /api/swipe/session/{id}."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    is_friend_session: bool = Field(..., alias="isFriendSession")
    matched_movie_id: Optional[int] = Field(None, alias="matchedMovieId")
    user1_id: str = Field(..., alias="user1Id")
    user2_id: Optional[str] = Field(None, alias="user2Id")


class SwipeRequest(BaseModel):
    """Body of POST /api/swipe. The user id always comes from the token."""
    model_config = ConfigDict(populate_by_name=True)

    movie_id: int = Field(..., alias="movieId", gt=0)
    session_id: str = Field(..., alias="sessionId", min_length=1)
    is_liked: bool = Field(..., alias="isLiked")


class SwipeResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    is_match: bool = Field(..., alias="isMatch")
    matched_movie: Optional[Movie] = Field(None, alias="matchedMovie")


class MatchStatus(BaseModel):
    """Body of GET /api/swipe/session/{id}/match."""
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId")
    is_match: bool = Field(..., alias="isMatch")
    matched_movie_id: Optional[int] = Field(None, alias="matchedMovieId")
    counterpart_user_id: Optional[str] = Field(None, alias="counterpartUserId")
