from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, String, delete, select, Uuid
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, UTCDateTime
from utils.clock import utcnow


class RegistrationCode(Base):
    __tablename__ = "registration_codes"

    code: Mapped[str] = mapped_column(String(16), primary_key=True)
    chat_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    chat_username: Mapped[Optional[str]] = mapped_column(String(64))
    player_name: Mapped[Optional[str]] = mapped_column(String(32))
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    used: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    used_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    used_by_name: Mapped[Optional[str]] = mapped_column(String(32))
    used_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime)

    @property
    def is_expired(self) -> bool:
        return utcnow() >= self.expires_at

    @property
    def is_valid(self) -> bool:
        return not self.used and not self.is_expired

    def __repr__(self) -> str:
        return f"<RegistrationCode {self.code} chat={self.chat_id} used={self.used}>"

    @staticmethod
    async def fetch(s: AsyncSession, code: str) -> Optional["RegistrationCode"]:
        res = await s.execute(
            select(RegistrationCode)
            .where(RegistrationCode.code == code)
            .execution_options(populate_existing=True)
        )
        return res.scalar_one_or_none()

    @staticmethod
    async def active_for_chat(s: AsyncSession, chat_id: str) -> Optional["RegistrationCode"]:
        res = await s.execute(
            select(RegistrationCode)
            .where(
                RegistrationCode.chat_id == chat_id,
                RegistrationCode.used.is_(False),
                RegistrationCode.expires_at > utcnow(),
            )
            .order_by(RegistrationCode.created_at.desc())
            .limit(1)
        )
        return res.scalar_one_or_none()

    @staticmethod
    async def delete_unused_for_chat(s: AsyncSession, chat_id: str) -> int:
        res = await s.execute(
            delete(RegistrationCode).where(
                RegistrationCode.chat_id == chat_id, RegistrationCode.used.is_(False)
            ).execution_options(synchronize_session=False)
        )
        return res.rowcount

    @staticmethod
    async def delete_expired(s: AsyncSession) -> int:
        res = await s.execute(
            delete(RegistrationCode)
            .where(RegistrationCode.expires_at < utcnow())
            .execution_options(synchronize_session=False)
        )
        return res.rowcount
