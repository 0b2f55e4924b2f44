"""
Storage Interface - Abstract contracts for the stores the match engine
and the API layer read and write.

The engine depends only on SessionStore, SwipeStore and FriendGraph; any
backend that honours these contracts can be plugged in.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Optional

from ..models import Friendship, FriendStatus, MatchSession, MovieSwipe, SessionMode, UserInDB


class SessionStore(ABC):
    """Durable record of matching sessions."""

    @abstractmethod
    async def get_session(self, session_id: str) -> Optional[MatchSession]:
        """
        Fetch a session by id.

        Args:
            session_id: Session identifier

        Returns:
            Optional[MatchSession]: The session, or None if it does not exist
        """
        pass

    @abstractmethod
    async def create_session(
        self,
        session_id: str,
        user1_id: str,
        user2_id: Optional[str],
        mode: SessionMode,
        created_at: Optional[datetime] = None
    ) -> MatchSession:
        """Insert a new, unresolved session."""
        pass

    @abstractmethod
    async def find_friend_session(self, user_a: str, user_b: str) -> Optional[MatchSession]:
        """Find the friend session between two users, in either participant order."""
        pass

    @abstractmethod
    async def reset_session(self, session_id: str) -> None:
        """
        Clear a session's resolved match and delete its swipes.

        Only the session-creation flow calls this, when a friend session is
        re-opened. The match engine never un-resolves a session.
        """
        pass

    @abstractmethod
    async def set_matched_movie(self, session_id: str, movie_id: int) -> bool:
        """
        Record the resolved match on a session.

        Must be a single keyed update statement. Writing the same movie id
        twice is a harmless no-op.

        Args:
            session_id: Session to update
            movie_id: Winning movie

        Returns:
            bool: True if a session row was addressed
        """
        pass

    @abstractmethod
    async def bind_regular_match(
        self,
        session_id: str,
        counterpart_id: str,
        movie_id: int,
        matched_at: datetime
    ) -> bool:
        """
        Bind a discovered counterpart to a regular session and record its match.

        Sets the second participant, mode, creation time and matched movie
        in one keyed update statement.

        Returns:
            bool: True if a session row was addressed
        """
        pass


class SwipeStore(ABC):
    """Durable (user, movie, session) -> liked facts."""

    @abstractmethod
    async def upsert_swipe(
        self,
        user_id: str,
        movie_id: int,
        session_id: str,
        liked: bool,
        created_at: Optional[datetime] = None
    ) -> MovieSwipe:
        """
        Insert a swipe or overwrite liked/created_at for an existing key.

        Returns:
            MovieSwipe: The stored swipe
        """
        pass

    @abstractmethod
    async def list_swipes(self, session_id: str, liked_only: bool = False) -> List[MovieSwipe]:
        """
        List swipes in a session.

        Args:
            session_id: Session to scan
            liked_only: Only return liked swipes

        Returns:
            List[MovieSwipe]: Swipes ordered by creation time
        """
        pass

    @abstractmethod
    async def find_counterpart_swipe(
        self,
        user_id: str,
        movie_ids: Iterable[int],
        restrict_to: Optional[Iterable[str]] = None
    ) -> Optional[MovieSwipe]:
        """
        Find a liked swipe by someone other than user_id on one of movie_ids.

        The search spans every session in the store. When several rows
        qualify the earliest created_at wins, then the lowest movie id,
        then the lowest user id.

        Args:
            user_id: Acting user, never returned as the counterpart
            movie_ids: Movies the acting user liked
            restrict_to: If given, only swipes by these user ids qualify

        Returns:
            Optional[MovieSwipe]: The first qualifying swipe, or None
        """
        pass


class FriendGraph(ABC):
    """Friend requests and the accepted friendships derived from them."""

    @abstractmethod
    async def get_friend_ids(self, user_id: str) -> List[str]:
        """Ids of users with an accepted friendship with user_id, in either direction."""
        pass

    @abstractmethod
    async def create_request(self, requester_id: str, addressee_id: str) -> Friendship:
        """Create a pending friend request."""
        pass

    @abstractmethod
    async def get_friendship(self, friendship_id: str) -> Optional[Friendship]:
        """Fetch a friendship by id."""
        pass

    @abstractmethod
    async def find_friendship(self, user_a: str, user_b: str) -> Optional[Friendship]:
        """Find the friendship row between two users, in either direction."""
        pass

    @abstractmethod
    async def set_status(
        self,
        friendship_id: str,
        status: FriendStatus,
        accepted_at: Optional[datetime] = None
    ) -> bool:
        """Change a friendship's status."""
        pass

    @abstractmethod
    async def delete_friendship(self, friendship_id: str) -> bool:
        """Remove a friendship row."""
        pass

    @abstractmethod
    async def list_friendships(self, user_id: str, status: FriendStatus) -> List[Friendship]:
        """Friendships with the given status that involve user_id."""
        pass

    @abstractmethod
    async def list_pending_for(self, addressee_id: str) -> List[Friendship]:
        """Pending requests addressed to addressee_id."""
        pass


class UserStore(ABC):
    """Registered users."""

    @abstractmethod
    async def create_user(self, user_id: str, email: str, hashed_password: str) -> UserInDB:
        """
        Insert a new user. The email is stored lower-cased.

        Raises:
            sqlalchemy.exc.IntegrityError: If the email is already registered
        """
        pass

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[UserInDB]:
        """Fetch a user by id."""
        pass

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[UserInDB]:
        """Fetch a user by email, case-insensitively."""
        pass
