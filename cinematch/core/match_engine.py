"""
Match Resolution Engine - Decides whether a session has a match and commits it.

A session resolves at most once. Friend sessions match on the lowest movie
id liked by two or more distinct users. Regular sessions, once the acting
user has enough likes, look for a counterpart who liked one of the same
movies (friends first, then anyone) and otherwise fall back to a random
self-match with a small probability.

The engine keeps no state between calls. Every commit is a single keyed
update, so concurrent resolutions of one session converge on the same row;
if they derived different movies the last write wins and the next call
reports whatever was stored.
"""

import logging
import random
from collections import defaultdict
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Set

from ..models import MatchDecision, MatchSession, MatchSource, MovieSwipe, SessionMode
from ..storage import FriendGraph, SessionStore, SwipeStore
from .logging_config import SessionLogger

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MatchResolutionEngine:
    """
    Resolves match state for one session at a time.

    Randomness and time are injected so the stochastic fallback can be
    driven deterministically in tests.
    """

    def __init__(
        self,
        sessions: SessionStore,
        swipes: SwipeStore,
        friends: FriendGraph,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
        min_regular_likes: int = 5,
        fallback_probability: float = 0.1,
        fallback_user_id: str = "fallback_match",
    ):
        """
        Args:
            sessions: Session lookup and atomic match commits
            swipes: Swipe queries
            friends: Accepted-friend lookup for the friend-priority search
            rng: Source of randomness for the fallback (random.Random API)
            clock: Returns the current time for regular-session rebinding
            min_regular_likes: Likes the acting user needs before a regular session resolves
            fallback_probability: Chance per attempt that the fallback fires
            fallback_user_id: Counterpart id recorded for fallback matches
        """
        self.sessions = sessions
        self.swipes = swipes
        self.friends = friends
        self.rng = rng or random.Random()
        self.clock = clock or _utcnow
        self.min_regular_likes = min_regular_likes
        self.fallback_probability = fallback_probability
        self.fallback_user_id = fallback_user_id

    async def resolve(self, session_id: str, acting_user_id: str) -> MatchDecision:
        """
        Determine (and if new, commit) the match for a session.

        Args:
            session_id: Session to resolve
            acting_user_id: User whose swipe triggered the resolution

        Returns:
            MatchDecision: Negative when the session or user is missing or
            no rule produced a match yet

        Raises:
            Store errors propagate unchanged.
        """
        if not session_id or not acting_user_id:
            return MatchDecision.no_match()

        log = SessionLogger(logger, {"session_id": session_id, "user_id": acting_user_id})

        session = await self.sessions.get_session(session_id)
        if session is None:
            log.debug("Session not found")
            return MatchDecision.no_match()

        liked = await self.swipes.list_swipes(session_id, liked_only=True)

        if not self._is_member(session, acting_user_id, liked):
            log.debug("User is not part of this session")
            return MatchDecision.no_match()

        if session.is_resolved:
            return self._existing_match(session, acting_user_id, liked)

        if session.mode == SessionMode.FRIEND:
            decision = await self._resolve_friend_session(session, acting_user_id, liked)
        else:
            decision = await self._resolve_regular_session(session, acting_user_id, liked, log)

        if decision.is_match:
            log.info(
                f"Match on movie {decision.matched_movie_id} via {decision.source.value}",
                extra={"extra_fields": {
                    "movie_id": decision.matched_movie_id,
                    "counterpart_id": decision.counterpart_user_id,
                    "source": decision.source.value,
                }}
            )
        else:
            log.debug(f"No match yet ({len(liked)} liked swipes in session)")
        return decision

    @staticmethod
    def _is_member(session: MatchSession, user_id: str, liked: List[MovieSwipe]) -> bool:
        if user_id in session.participants():
            return True
        return any(s.user_id == user_id for s in liked)

    @staticmethod
    def _pick_swipe(liked: List[MovieSwipe], movie_id: int, prefer_user: str) -> Optional[MovieSwipe]:
        """The preferred user's like on movie_id, else anyone's, else None."""
        fallback = None
        for swipe in liked:
            if swipe.movie_id != movie_id:
                continue
            if swipe.user_id == prefer_user:
                return swipe
            if fallback is None:
                fallback = swipe
        return fallback

    def _existing_match(
        self,
        session: MatchSession,
        acting_user_id: str,
        liked: List[MovieSwipe]
    ) -> MatchDecision:
        counterpart = next(
            (uid for uid in session.participants() if uid != acting_user_id),
            None,
        )
        return MatchDecision(
            is_match=True,
            matched_movie_id=session.matched_movie_id,
            matched_swipe=self._pick_swipe(liked, session.matched_movie_id, acting_user_id),
            counterpart_user_id=counterpart,
            source=MatchSource.EXISTING,
        )

    async def _resolve_friend_session(
        self,
        session: MatchSession,
        acting_user_id: str,
        liked: List[MovieSwipe]
    ) -> MatchDecision:
        likers: Dict[int, Set[str]] = defaultdict(set)
        for swipe in liked:
            likers[swipe.movie_id].add(swipe.user_id)

        candidates = [movie_id for movie_id, users in likers.items() if len(users) >= 2]
        if not candidates:
            return MatchDecision.no_match()

        # Lowest id wins so the outcome does not depend on swipe order
        movie_id = min(candidates)
        await self.sessions.set_matched_movie(session.id, movie_id)

        counterpart = next(
            (uid for uid in sorted(likers[movie_id]) if uid != acting_user_id),
            None,
        )
        return MatchDecision(
            is_match=True,
            matched_movie_id=movie_id,
            matched_swipe=self._pick_swipe(liked, movie_id, acting_user_id),
            counterpart_user_id=counterpart,
            source=MatchSource.FRIEND_SESSION,
        )

    async def _resolve_regular_session(
        self,
        session: MatchSession,
        acting_user_id: str,
        liked: List[MovieSwipe],
        log: SessionLogger
    ) -> MatchDecision:
        own_likes = [s for s in liked if s.user_id == acting_user_id]
        if len(own_likes) < self.min_regular_likes:
            return MatchDecision.no_match()

        own_by_movie = {s.movie_id: s for s in own_likes}
        movie_ids = sorted(own_by_movie)

        counterpart = None
        source = None

        friend_ids = await self.friends.get_friend_ids(acting_user_id)
        if friend_ids:
            counterpart = await self.swipes.find_counterpart_swipe(
                acting_user_id, movie_ids, restrict_to=friend_ids
            )
            source = MatchSource.FRIEND_PRIORITY

        if counterpart is None:
            counterpart = await self.swipes.find_counterpart_swipe(acting_user_id, movie_ids)
            source = MatchSource.ANY_USER

        if counterpart is not None:
            own_swipe = own_by_movie[counterpart.movie_id]
            await self.sessions.bind_regular_match(
                session.id, counterpart.user_id, own_swipe.movie_id, self.clock()
            )
            return MatchDecision(
                is_match=True,
                matched_movie_id=own_swipe.movie_id,
                matched_swipe=own_swipe,
                counterpart_user_id=counterpart.user_id,
                source=source,
            )

        if self.rng.random() < self.fallback_probability:
            own_swipe = self.rng.choice(own_likes)
            log.debug(f"Fallback fired on movie {own_swipe.movie_id}")
            await self.sessions.bind_regular_match(
                session.id, self.fallback_user_id, own_swipe.movie_id, self.clock()
            )
            return MatchDecision(
                is_match=True,
                matched_movie_id=own_swipe.movie_id,
                matched_swipe=own_swipe,
                counterpart_user_id=self.fallback_user_id,
                source=MatchSource.FALLBACK,
            )

        return MatchDecision.no_match()


def build_match_engine(storage, config, rng: Optional[random.Random] = None) -> MatchResolutionEngine:
    """
    Create an engine wired to a storage backend and application settings.

    Args:
        storage: Object implementing SessionStore, SwipeStore and FriendGraph
        config: Settings with the match engine fields
        rng: Optional randomness source override
    """
    return MatchResolutionEngine(
        sessions=storage,
        swipes=storage,
        friends=storage,
        rng=rng,
        min_regular_likes=config.min_regular_likes,
        fallback_probability=config.fallback_probability,
        fallback_user_id=config.fallback_user_id,
    )
