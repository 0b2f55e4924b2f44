"""
SQLAlchemy table definitions.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ..models import FriendStatus, SessionMode


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class UserRow(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)


class MatchSessionRow(Base):
    __tablename__ = "match_sessions"

    id: Mapped[str] = mapped_column(String(160), primary_key=True)
    user1_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    # Empty for a regular session until a counterpart is found
    user2_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    mode: Mapped[SessionMode] = mapped_column(
        Enum(SessionMode, values_callable=lambda e: [m.value for m in e], native_enum=False),
        nullable=False,
        default=SessionMode.REGULAR,
    )
    matched_movie_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class MovieSwipeRow(Base):
    __tablename__ = "movie_swipes"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    movie_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    session_id: Mapped[str] = mapped_column(String(160), primary_key=True)
    liked: Mapped[bool] = mapped_column(Boolean, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        Index("ix_movie_swipes_session_liked", "session_id", "liked"),
        Index("ix_movie_swipes_movie_liked", "movie_id", "liked"),
    )


class FriendRow(Base):
    __tablename__ = "friends"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    requester_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    addressee_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    status: Mapped[FriendStatus] = mapped_column(
        Enum(FriendStatus, values_callable=lambda e: [m.value for m in e], native_enum=False),
        nullable=False,
    )
    requested_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    accepted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("requester_id", "addressee_id", name="uq_friends_pair"),
    )
