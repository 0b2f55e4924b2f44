"""
Swipe API endpoints - match sessions, swipes and match status.

Every swipe write is followed by a match resolution for its session.
"""

import logging
import uuid
from fastapi import APIRouter, HTTPException, status, Depends

from ..config import settings
from ..core import MatchResolutionEngine, build_match_engine
from ..models import (
    CreateSessionRequest, FriendStatus, MatchSession, MatchStatus, SessionCreated,
    SessionInfo, SessionMode, SwipeRequest, SwipeResult,
)
from ..services import TmdbClient, get_tmdb_client
from ..storage import SQLStorage, get_storage
from ..utils.auth import get_current_user_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/swipe", tags=["swipe"])


def get_match_engine(storage: SQLStorage = Depends(get_storage)) -> MatchResolutionEngine:
    """Dependency providing a match engine bound to the current storage."""
    return build_match_engine(storage, settings)


def friend_session_id(user_a: str, user_b: str) -> str:
    """Deterministic id for the friend session of two users."""
    first, second = sorted([user_a, user_b])
    return f"{first}_{second}"


def _can_swipe(session: MatchSession, user_id: str) -> bool:
    if session.mode == SessionMode.FRIEND:
        return user_id in (session.user1_id, session.user2_id)
    # Only the creator swipes in a regular session
    return session.user1_id == user_id


@router.post("/session", response_model=SessionCreated)
async def create_session(
    request: CreateSessionRequest,
    user_id: str = Depends(get_current_user_id),
    storage: SQLStorage = Depends(get_storage)
):
    """
    Create a matching session.

    Friend sessions need an accepted friendship and reuse (and reset) the
    existing session between the pair. Regular sessions always start fresh.

    Raises:
        HTTPException: 400 when the friend is missing, unknown or not a friend
    """
    friend_id = request.friend_id
    if not friend_id and request.friend_email:
        friend = await storage.get_user_by_email(request.friend_email)
        friend_id = friend.id if friend else None

    if not request.is_friend_session:
        session_id = str(uuid.uuid4())
        await storage.create_session(session_id, user_id, None, SessionMode.REGULAR)
        return SessionCreated(session_id=session_id, friend_id=friend_id, is_friend_session=False)

    if not friend_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="FriendId must be provided for friend sessions."
        )

    if await storage.get_user(friend_id) is None:
        logger.warning(f"Friend {friend_id} not found for user {user_id}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Friend not found.")

    friendship = await storage.find_friendship(user_id, friend_id)
    if friendship is None or friendship.status != FriendStatus.ACCEPTED:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You can only create sessions with accepted friends"
        )

    existing = await storage.find_friend_session(user_id, friend_id)
    if existing is not None:
        await storage.reset_session(existing.id)
        session_id = existing.id
    else:
        session_id = friend_session_id(user_id, friend_id)
        first, second = sorted([user_id, friend_id])
        await storage.create_session(session_id, first, second, SessionMode.FRIEND)

    return SessionCreated(session_id=session_id, friend_id=friend_id, is_friend_session=True)


@router.get("/session/{session_id}", response_model=SessionInfo)
async def get_session_info(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    storage: SQLStorage = Depends(get_storage)
):
    """Return a session's participants, mode and resolved match."""
    session = await storage.get_session(session_id)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found.")

    return SessionInfo(
        id=session.id,
        is_friend_session=session.is_friend_session,
        matched_movie_id=session.matched_movie_id,
        user1_id=session.user1_id,
        user2_id=session.user2_id,
    )


@router.get("/session/{session_id}/match", response_model=MatchStatus)
async def get_match_status(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    engine: MatchResolutionEngine = Depends(get_match_engine)
):
    """Re-evaluate and report the match state of a session for the caller."""
    decision = await engine.resolve(session_id, user_id)
    return MatchStatus(
        session_id=session_id,
        is_match=decision.is_match,
        matched_movie_id=decision.matched_movie_id,
        counterpart_user_id=decision.counterpart_user_id,
    )


@router.post("", response_model=SwipeResult)
async def save_swipe(
    swipe: SwipeRequest,
    user_id: str = Depends(get_current_user_id),
    storage: SQLStorage = Depends(get_storage),
    engine: MatchResolutionEngine = Depends(get_match_engine),
    tmdb: TmdbClient = Depends(get_tmdb_client)
):
    """
    Record a swipe for the current user, then resolve the session.

    Raises:
        HTTPException: 400 if the session is missing or the user may not swipe in it
    """
    session = await storage.get_session(swipe.session_id)
    if session is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Session not found.")

    if not _can_swipe(session, user_id):
        kind = "friend" if session.is_friend_session else "regular"
        logger.warning(f"User {user_id} denied swipe access to {kind} session {session.id}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"You don't have access to this {kind} session."
        )

    await storage.upsert_swipe(
        user_id=user_id,
        movie_id=swipe.movie_id,
        session_id=swipe.session_id,
        liked=swipe.is_liked,
    )

    decision = await engine.resolve(swipe.session_id, user_id)

    matched_movie = None
    if decision.is_match and decision.matched_movie_id is not None:
        matched_movie = await tmdb.get_movie(decision.matched_movie_id)

    return SwipeResult(
        message="Swipe saved successfully",
        is_match=decision.is_match,
        matched_movie=matched_movie,
    )
