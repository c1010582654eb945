from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import Boolean, String, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, UTCDateTime
from utils.clock import utcnow

ONLINE_WINDOW = timedelta(seconds=60)


class ServerInfo(Base):
    __tablename__ = "whitelist_servers"

    name: Mapped[str] = mapped_column(String(64), primary_key=True)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    whitelist_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_heartbeat: Mapped[Optional[datetime]] = mapped_column(UTCDateTime)

    @property
    def is_online(self) -> bool:
        # computed on every read; never stored
        if self.last_heartbeat is None:
            return False
        return utcnow() - self.last_heartbeat < ONLINE_WINDOW

    def __repr__(self) -> str:
        return f"<ServerInfo {self.name} whitelist={self.whitelist_enabled}>"

    @staticmethod
    async def upsert(s: AsyncSession, *, name: str, display_name: str, whitelist_enabled: bool) -> "ServerInfo":
        row = await s.get(ServerInfo, name, populate_existing=True)
        if row:
            row.display_name = display_name
            row.whitelist_enabled = whitelist_enabled
            row.last_heartbeat = utcnow()
        else:
            row = ServerInfo(
                name=name,
                display_name=display_name,
                whitelist_enabled=whitelist_enabled,
                last_heartbeat=utcnow(),
            )
            s.add(row)
        await s.flush()
        return row

    @staticmethod
    async def touch(s: AsyncSession, name: str, **values) -> bool:
        res = await s.execute(
            update(ServerInfo)
            .where(ServerInfo.name == name)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount > 0

    @staticmethod
    async def fetch(s: AsyncSession, name: str) -> Optional["ServerInfo"]:
        return await s.get(ServerInfo, name, populate_existing=True)

    @staticmethod
    async def fetch_all(s: AsyncSession) -> list["ServerInfo"]:
        res = await s.execute(select(ServerInfo).order_by(ServerInfo.name))
        return list(res.scalars())
