from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, Integer, String, delete, or_, select, update, Uuid
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, UTCDateTime
from utils.clock import utcnow


class PlayerLink(Base):
    __tablename__ = "player_links"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    player_id: Mapped[uuid.UUID] = mapped_column(Uuid, unique=True, nullable=False)
    player_name: Mapped[str] = mapped_column(String(32), nullable=False)
    chat_id: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    chat_username: Mapped[Optional[str]] = mapped_column(String(64))
    linked_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<PlayerLink {self.player_name} <-> {self.chat_id} active={self.active}>"

    @staticmethod
    async def active_by_player(s: AsyncSession, player_id: uuid.UUID) -> Optional["PlayerLink"]:
        res = await s.execute(
            select(PlayerLink).where(PlayerLink.player_id == player_id, PlayerLink.active.is_(True))
        )
        return res.scalar_one_or_none()

    @staticmethod
    async def active_by_chat(s: AsyncSession, chat_id: str) -> Optional["PlayerLink"]:
        res = await s.execute(
            select(PlayerLink).where(PlayerLink.chat_id == chat_id, PlayerLink.active.is_(True))
        )
        return res.scalar_one_or_none()

    @staticmethod
    async def purge_inactive(s: AsyncSession, *, player_id: uuid.UUID, chat_id: str) -> int:
        """Drop soft-unlinked rows that would block a new link on either unique column."""
        res = await s.execute(
            delete(PlayerLink).where(
                PlayerLink.active.is_(False),
                or_(PlayerLink.player_id == player_id, PlayerLink.chat_id == chat_id),
            ).execution_options(synchronize_session=False)
        )
        return res.rowcount

    @staticmethod
    async def deactivate(s: AsyncSession, player_id: uuid.UUID) -> bool:
        res = await s.execute(
            update(PlayerLink)
            .where(PlayerLink.player_id == player_id, PlayerLink.active.is_(True))
            .values(active=False)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount > 0

    @staticmethod
    async def fetch_all_active(s: AsyncSession) -> list["PlayerLink"]:
        res = await s.execute(
            select(PlayerLink).where(PlayerLink.active.is_(True)).order_by(PlayerLink.linked_at)
        )
        return list(res.scalars())
