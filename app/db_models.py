"""SQLAlchemy ORM models backing each user's library partition."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base


class UserProfile(Base):
    """A user of the tracker and the Steam account last imported from."""

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    steam_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )


class UserPreferences(Base):
    """Platform preferences read at the start of an import."""

    __tablename__ = "preferences"

    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True
    )
    platforms: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    favorite_platform: Mapped[str | None] = mapped_column(String(64), nullable=True)
    plays_on_steam_deck: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    notify_discounts: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )


class GameRecord(Base):
    """A single title in a user's library."""

    __tablename__ = "games"
    __table_args__ = (
        Index("ix_games_user_platform", "user_id", "platform"),
        Index("ix_games_user_steam_app", "user_id", "steam_app_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    title: Mapped[str] = mapped_column(String(255))
    platform: Mapped[str] = mapped_column(String(32))
    genres: Mapped[list[str]] = mapped_column(JSON, default=list)
    game_list: Mapped[str] = mapped_column("list", String(32))
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    release_date: Mapped[str | None] = mapped_column(String(32), nullable=True)
    estimated_playtime: Mapped[int | None] = mapped_column(Integer, nullable=True)
    steam_app_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    steam_deck_compat: Mapped[str | None] = mapped_column(String(16), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )
