"""
SQL Storage - SQLAlchemy (async) implementation of every store contract.

Works with any SQLAlchemy async URL; SQLite via aiosqlite is the default.
Match commits are single UPDATE statements keyed by session id, so two
resolutions racing on one session never interleave a read and a write of
the same row at the application level.
"""

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ..models import Friendship, FriendStatus, MatchSession, MovieSwipe, SessionMode, UserInDB
from .interface import FriendGraph, SessionStore, SwipeStore, UserStore
from .tables import Base, FriendRow, MatchSessionRow, MovieSwipeRow, UserRow

logger = logging.getLogger(__name__)


def create_engine_for_url(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Build an async engine for a database URL.

    In-memory SQLite gets a StaticPool so every connection sees the same
    database; file-based SQLite gets its parent directory created.
    """
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        database = url.database or ""
        if database in ("", ":memory:"):
            return create_async_engine(
                database_url,
                echo=echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        Path(database).parent.mkdir(parents=True, exist_ok=True)
        return create_async_engine(database_url, echo=echo, connect_args={"check_same_thread": False})
    return create_async_engine(database_url, echo=echo, pool_pre_ping=True)


class SQLStorage(SessionStore, SwipeStore, FriendGraph, UserStore):
    """All stores backed by one relational database."""

    def __init__(self, engine: AsyncEngine):
        """
        Args:
            engine: Async engine the stores share
        """
        self.engine = engine
        self._sessionmaker = async_sessionmaker(engine, expire_on_commit=False)

    async def init_db(self) -> None:
        """Create tables that do not exist yet."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        await self.engine.dispose()

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def get_session(self, session_id: str) -> Optional[MatchSession]:
        async with self._sessionmaker() as db:
            row = await db.get(MatchSessionRow, session_id)
            return MatchSession.model_validate(row) if row else None

    async def create_session(
        self,
        session_id: str,
        user1_id: str,
        user2_id: Optional[str],
        mode: SessionMode,
        created_at: Optional[datetime] = None
    ) -> MatchSession:
        row = MatchSessionRow(
            id=session_id,
            user1_id=user1_id,
            user2_id=user2_id,
            mode=mode,
            matched_movie_id=None,
            created_at=created_at or datetime.now(timezone.utc),
        )
        async with self._sessionmaker() as db:
            db.add(row)
            await db.commit()
        logger.info(f"Created {mode.value} session {session_id}")
        return MatchSession.model_validate(row)

    async def find_friend_session(self, user_a: str, user_b: str) -> Optional[MatchSession]:
        stmt = select(MatchSessionRow).where(
            MatchSessionRow.mode == SessionMode.FRIEND,
            or_(
                and_(MatchSessionRow.user1_id == user_a, MatchSessionRow.user2_id == user_b),
                and_(MatchSessionRow.user1_id == user_b, MatchSessionRow.user2_id == user_a),
            ),
        ).limit(1)
        async with self._sessionmaker() as db:
            row = (await db.execute(stmt)).scalars().first()
            return MatchSession.model_validate(row) if row else None

    async def reset_session(self, session_id: str) -> None:
        async with self._sessionmaker() as db:
            await db.execute(
                update(MatchSessionRow)
                .where(MatchSessionRow.id == session_id)
                .values(matched_movie_id=None)
            )
            await db.execute(delete(MovieSwipeRow).where(MovieSwipeRow.session_id == session_id))
            await db.commit()
        logger.info(f"Reset session {session_id}")

    async def set_matched_movie(self, session_id: str, movie_id: int) -> bool:
        async with self._sessionmaker() as db:
            result = await db.execute(
                update(MatchSessionRow)
                .where(MatchSessionRow.id == session_id)
                .values(matched_movie_id=movie_id)
            )
            await db.commit()
        return result.rowcount > 0

    async def bind_regular_match(
        self,
        session_id: str,
        counterpart_id: str,
        movie_id: int,
        matched_at: datetime
    ) -> bool:
        async with self._sessionmaker() as db:
            result = await db.execute(
                update(MatchSessionRow)
                .where(MatchSessionRow.id == session_id)
                .values(
                    user2_id=counterpart_id,
                    mode=SessionMode.REGULAR,
                    created_at=matched_at,
                    matched_movie_id=movie_id,
                )
            )
            await db.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Swipes
    # ------------------------------------------------------------------

    async def upsert_swipe(
        self,
        user_id: str,
        movie_id: int,
        session_id: str,
        liked: bool,
        created_at: Optional[datetime] = None
    ) -> MovieSwipe:
        created_at = created_at or datetime.now(timezone.utc)
        values = dict(
            user_id=user_id,
            movie_id=movie_id,
            session_id=session_id,
            liked=liked,
            created_at=created_at,
        )
        dialect = self.engine.dialect.name

        async with self._sessionmaker() as db:
            if dialect in ("sqlite", "postgresql"):
                if dialect == "sqlite":
                    from sqlalchemy.dialects.sqlite import insert
                else:
                    from sqlalchemy.dialects.postgresql import insert
                stmt = insert(MovieSwipeRow).values(**values)
                stmt = stmt.on_conflict_do_update(
                    index_elements=["user_id", "movie_id", "session_id"],
                    set_={"liked": stmt.excluded.liked, "created_at": stmt.excluded.created_at},
                )
                await db.execute(stmt)
            else:
                await db.merge(MovieSwipeRow(**values))
            await db.commit()

        return MovieSwipe(**values)

    async def list_swipes(self, session_id: str, liked_only: bool = False) -> List[MovieSwipe]:
        stmt = select(MovieSwipeRow).where(MovieSwipeRow.session_id == session_id)
        if liked_only:
            stmt = stmt.where(MovieSwipeRow.liked.is_(True))
        stmt = stmt.order_by(MovieSwipeRow.created_at, MovieSwipeRow.movie_id, MovieSwipeRow.user_id)
        async with self._sessionmaker() as db:
            rows = (await db.execute(stmt)).scalars().all()
            return [MovieSwipe.model_validate(row) for row in rows]

    async def find_counterpart_swipe(
        self,
        user_id: str,
        movie_ids: Iterable[int],
        restrict_to: Optional[Iterable[str]] = None
    ) -> Optional[MovieSwipe]:
        movie_ids = list(movie_ids)
        if not movie_ids:
            return None

        stmt = select(MovieSwipeRow).where(
            MovieSwipeRow.liked.is_(True),
            MovieSwipeRow.user_id != user_id,
            MovieSwipeRow.movie_id.in_(movie_ids),
        )
        if restrict_to is not None:
            allowed = [uid for uid in restrict_to if uid and uid != user_id]
            if not allowed:
                return None
            stmt = stmt.where(MovieSwipeRow.user_id.in_(allowed))

        stmt = stmt.order_by(
            MovieSwipeRow.created_at, MovieSwipeRow.movie_id, MovieSwipeRow.user_id
        ).limit(1)

        async with self._sessionmaker() as db:
            row = (await db.execute(stmt)).scalars().first()
            return MovieSwipe.model_validate(row) if row else None

    # ------------------------------------------------------------------
    # Friends
    # ------------------------------------------------------------------

    async def get_friend_ids(self, user_id: str) -> List[str]:
        friendships = await self.list_friendships(user_id, FriendStatus.ACCEPTED)
        return [f.other(user_id) for f in friendships]

    async def create_request(self, requester_id: str, addressee_id: str) -> Friendship:
        row = FriendRow(
            id=str(uuid.uuid4()),
            requester_id=requester_id,
            addressee_id=addressee_id,
            status=FriendStatus.PENDING,
            requested_at=datetime.now(timezone.utc),
        )
        async with self._sessionmaker() as db:
            db.add(row)
            await db.commit()
        return Friendship.model_validate(row)

    async def get_friendship(self, friendship_id: str) -> Optional[Friendship]:
        async with self._sessionmaker() as db:
            row = await db.get(FriendRow, friendship_id)
            return Friendship.model_validate(row) if row else None

    async def find_friendship(self, user_a: str, user_b: str) -> Optional[Friendship]:
        stmt = select(FriendRow).where(
            or_(
                and_(FriendRow.requester_id == user_a, FriendRow.addressee_id == user_b),
                and_(FriendRow.requester_id == user_b, FriendRow.addressee_id == user_a),
            )
        ).limit(1)
        async with self._sessionmaker() as db:
            row = (await db.execute(stmt)).scalars().first()
            return Friendship.model_validate(row) if row else None

    async def set_status(
        self,
        friendship_id: str,
        status: FriendStatus,
        accepted_at: Optional[datetime] = None
    ) -> bool:
        values = {"status": status}
        if accepted_at is not None:
            values["accepted_at"] = accepted_at
        async with self._sessionmaker() as db:
            result = await db.execute(
                update(FriendRow).where(FriendRow.id == friendship_id).values(**values)
            )
            await db.commit()
        return result.rowcount > 0

    async def delete_friendship(self, friendship_id: str) -> bool:
        async with self._sessionmaker() as db:
            result = await db.execute(delete(FriendRow).where(FriendRow.id == friendship_id))
            await db.commit()
        return result.rowcount > 0

    async def list_friendships(self, user_id: str, status: FriendStatus) -> List[Friendship]:
        stmt = select(FriendRow).where(
            or_(FriendRow.requester_id == user_id, FriendRow.addressee_id == user_id),
            FriendRow.status == status,
        ).order_by(FriendRow.requested_at)
        async with self._sessionmaker() as db:
            rows = (await db.execute(stmt)).scalars().all()
            return [Friendship.model_validate(row) for row in rows]

    async def list_pending_for(self, addressee_id: str) -> List[Friendship]:
        stmt = select(FriendRow).where(
            FriendRow.addressee_id == addressee_id,
            FriendRow.status == FriendStatus.PENDING,
        ).order_by(FriendRow.requested_at)
        async with self._sessionmaker() as db:
            rows = (await db.execute(stmt)).scalars().all()
            return [Friendship.model_validate(row) for row in rows]

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def create_user(self, user_id: str, email: str, hashed_password: str) -> UserInDB:
        # Stored lower-cased so the unique index is case-insensitive
        row = UserRow(id=user_id, email=email.lower(), hashed_password=hashed_password)
        async with self._sessionmaker() as db:
            db.add(row)
            await db.commit()
        return UserInDB.model_validate(row)

    async def get_user(self, user_id: str) -> Optional[UserInDB]:
        async with self._sessionmaker() as db:
            row = await db.get(UserRow, user_id)
            return UserInDB.model_validate(row) if row else None

    async def get_user_by_email(self, email: str) -> Optional[UserInDB]:
        stmt = select(UserRow).where(func.lower(UserRow.email) == email.lower()).limit(1)
        async with self._sessionmaker() as db:
            row = (await db.execute(stmt)).scalars().first()
            return UserInDB.model_validate(row) if row else None


# Global storage instance
_storage: Optional[SQLStorage] = None


async def init_storage(database_url: str, echo: bool = False) -> SQLStorage:
    """
    Create the global storage instance and its schema.

    Args:
        database_url: SQLAlchemy async database URL
        echo: Log every SQL statement

    Returns:
        SQLStorage: The initialized storage
    """
    global _storage
    storage = SQLStorage(create_engine_for_url(database_url, echo=echo))
    await storage.init_db()
    _storage = storage
    return storage


def set_storage(storage: Optional[SQLStorage]) -> None:
    """Install (or clear) the global storage instance."""
    global _storage
    _storage = storage


def get_storage() -> SQLStorage:
    """
    Get the global storage instance.

    Raises:
        RuntimeError: If storage has not been initialized
    """
    if _storage is None:
        raise RuntimeError("Storage not initialized. Call init_storage() first.")
    return _storage
