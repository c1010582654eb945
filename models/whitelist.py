from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, Enum, Integer, String, UniqueConstraint, delete, func, select, update, Uuid
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, UTCDateTime
from utils.clock import utcnow


class RegistrationType(str, enum.Enum):
    CODE = "CODE"
    INVITE = "INVITE"
    MANUAL = "MANUAL"
    IMPORT = "IMPORT"


# columns overwritten when an upsert hits an existing (player_id, server_name) row
MUTABLE_COLUMNS = (
    "player_name",
    "registration_type",
    "reason",
    "added_by",
    "inviter_chat_id",
    "created_at",
    "expires_at",
    "active",
)


def _valid_clause(now: datetime):
    return (
        WhitelistEntry.active.is_(True)
        & (WhitelistEntry.expires_at.is_(None) | (WhitelistEntry.expires_at > now))
    )


class WhitelistEntry(Base):
    __tablename__ = "whitelist_entries"
    __table_args__ = (UniqueConstraint("player_id", "server_name", name="uq_whitelist_entries_player_server"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    player_id: Mapped[uuid.UUID] = mapped_column(Uuid, index=True, nullable=False)
    player_name: Mapped[str] = mapped_column(String(32), nullable=False)
    server_name: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    registration_type: Mapped[RegistrationType] = mapped_column(
        Enum(RegistrationType, native_enum=False, length=16), default=RegistrationType.MANUAL, nullable=False
    )
    reason: Mapped[Optional[str]] = mapped_column(String(255))
    added_by: Mapped[Optional[str]] = mapped_column(String(64))
    inviter_chat_id: Mapped[Optional[str]] = mapped_column(String(64))
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
    expires_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    @property
    def is_expired(self) -> bool:
        return self.expires_at is not None and utcnow() >= self.expires_at

    @property
    def is_valid(self) -> bool:
        return bool(self.active) and not self.is_expired

    def __repr__(self) -> str:
        return f"<WhitelistEntry {self.player_name} ({self.player_id}) @ {self.server_name}>"

    @staticmethod
    async def fetch(s: AsyncSession, player_id: uuid.UUID, server_name: str) -> Optional["WhitelistEntry"]:
        res = await s.execute(
            select(WhitelistEntry)
            .where(WhitelistEntry.player_id == player_id, WhitelistEntry.server_name == server_name)
            .execution_options(populate_existing=True)
        )
        return res.scalar_one_or_none()

    @staticmethod
    async def exists_valid(s: AsyncSession, player_id: uuid.UUID, server_name: str) -> bool:
        q = select(WhitelistEntry.id).where(
            WhitelistEntry.player_id == player_id,
            WhitelistEntry.server_name == server_name,
            _valid_clause(utcnow()),
        ).limit(1)
        res = await s.execute(q)
        return res.first() is not None

    @staticmethod
    async def exists_valid_by_name(s: AsyncSession, player_name: str, server_name: str) -> bool:
        q = select(WhitelistEntry.id).where(
            func.lower(WhitelistEntry.player_name) == player_name.lower(),
            WhitelistEntry.server_name == server_name,
            _valid_clause(utcnow()),
        ).limit(1)
        res = await s.execute(q)
        return res.first() is not None

    @staticmethod
    async def name_taken(s: AsyncSession, player_name: str) -> bool:
        q = select(WhitelistEntry.id).where(
            func.lower(WhitelistEntry.player_name) == player_name.lower(),
            WhitelistEntry.active.is_(True),
        ).limit(1)
        res = await s.execute(q)
        return res.first() is not None

    @staticmethod
    async def update_fields(s: AsyncSession, player_id: uuid.UUID, server_name: str, **fields) -> bool:
        res = await s.execute(
            update(WhitelistEntry)
            .where(WhitelistEntry.player_id == player_id, WhitelistEntry.server_name == server_name)
            .values(**fields)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount > 0

    @staticmethod
    async def delete_one(s: AsyncSession, player_id: uuid.UUID, server_name: str) -> bool:
        res = await s.execute(
            delete(WhitelistEntry).where(
                WhitelistEntry.player_id == player_id, WhitelistEntry.server_name == server_name
            ).execution_options(synchronize_session=False)
        )
        return res.rowcount > 0

    @staticmethod
    async def by_player(s: AsyncSession, player_id: uuid.UUID) -> list["WhitelistEntry"]:
        res = await s.execute(
            select(WhitelistEntry)
            .where(WhitelistEntry.player_id == player_id)
            .order_by(WhitelistEntry.server_name)
        )
        return list(res.scalars())

    @staticmethod
    async def by_server(s: AsyncSession, server_name: str) -> list["WhitelistEntry"]:
        res = await s.execute(
            select(WhitelistEntry)
            .where(WhitelistEntry.server_name == server_name, WhitelistEntry.active.is_(True))
            .order_by(WhitelistEntry.created_at, WhitelistEntry.id)
        )
        return list(res.scalars())

    @staticmethod
    async def all_active(s: AsyncSession) -> list["WhitelistEntry"]:
        res = await s.execute(
            select(WhitelistEntry).where(WhitelistEntry.active.is_(True)).order_by(WhitelistEntry.id)
        )
        return list(res.scalars())

    @staticmethod
    async def servers_of(s: AsyncSession, player_id: uuid.UUID) -> list[str]:
        res = await s.execute(
            select(WhitelistEntry.server_name)
            .where(WhitelistEntry.player_id == player_id, _valid_clause(utcnow()))
            .order_by(WhitelistEntry.server_name)
        )
        return list(res.scalars())

    @staticmethod
    async def count_active(s: AsyncSession, server_name: str | None = None) -> int:
        q = select(func.count(WhitelistEntry.id)).where(WhitelistEntry.active.is_(True))
        if server_name is not None:
            q = q.where(WhitelistEntry.server_name == server_name)
        res = await s.execute(q)
        return int(res.scalar_one())
