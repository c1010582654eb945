# storage/gateway.py
from __future__ import annotations

import contextlib
import logging
import uuid
from typing import AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from exceptions import Conflict, StorageError
from models import Base, PlayerLink, RegistrationCode, ServerInfo, WhitelistEntry
from storage.dialects import consume_code_statement, upsert_entry_statement
from utils.clock import utcnow
from utils.config import Settings
from utils.db import create_engine, create_session_maker

log = logging.getLogger(__name__)


class Storage:
    """Persistence gateway for entries, codes, links and servers.

    Every public method runs in its own unit of work unless a ``session`` from
    :meth:`unit_of_work` is passed in, in which case it joins that
    transaction and the caller decides when it commits.
    """

    def __init__(self, engine: AsyncEngine, session_maker: async_sessionmaker[AsyncSession] | None = None):
        self.engine = engine
        self._session_maker = session_maker or create_session_maker(engine)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Storage":
        return cls(create_engine(settings))

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    # ---------- lifecycle

    async def initialize(self) -> None:
        """Create tables if they don't exist yet."""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as e:
            raise StorageError(f"Schema creation failed: {e}") from e
        log.info("[storage] schema ensured on %s", self.dialect)

    async def ping(self) -> None:
        async with self.unit_of_work() as s:
            await s.execute(text("SELECT 1"))

    async def close(self) -> None:
        await self.engine.dispose()

    @contextlib.asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator[AsyncSession]:
        """One transaction; commits on success, rolls back on any exception."""
        async with self._session_maker() as s:
            try:
                async with s.begin():
                    yield s
            except (SQLAlchemyError, OSError) as e:
                raise StorageError(f"{type(e).__name__}: {e}") from e

    @contextlib.asynccontextmanager
    async def _use(self, session: AsyncSession | None) -> AsyncIterator[AsyncSession]:
        if session is not None:
            yield session
            return
        async with self.unit_of_work() as s:
            yield s

    # ---------- whitelist entries

    async def add_entry(self, values: dict, session: AsyncSession | None = None) -> WhitelistEntry:
        async with self._use(session) as s:
            await s.execute(upsert_entry_statement(self.dialect, values))
            row = await WhitelistEntry.fetch(s, values["player_id"], values["server_name"])
        if row is None:
            raise StorageError("Upserted whitelist entry could not be read back")
        return row

    async def update_entry(self, player_id: uuid.UUID, server_name: str, **fields) -> bool:
        async with self._use(None) as s:
            return await WhitelistEntry.update_fields(s, player_id, server_name, **fields)

    async def remove_entry(self, player_id: uuid.UUID, server_name: str) -> bool:
        async with self._use(None) as s:
            return await WhitelistEntry.delete_one(s, player_id, server_name)

    async def get_entry(self, player_id: uuid.UUID, server_name: str) -> Optional[WhitelistEntry]:
        async with self._use(None) as s:
            return await WhitelistEntry.fetch(s, player_id, server_name)

    async def get_entries_by_player(self, player_id: uuid.UUID) -> list[WhitelistEntry]:
        async with self._use(None) as s:
            return await WhitelistEntry.by_player(s, player_id)

    async def get_entries_by_server(self, server_name: str) -> list[WhitelistEntry]:
        async with self._use(None) as s:
            return await WhitelistEntry.by_server(s, server_name)

    async def get_all_active_entries(self) -> list[WhitelistEntry]:
        async with self._use(None) as s:
            return await WhitelistEntry.all_active(s)

    async def is_whitelisted(self, player_id: uuid.UUID, server_name: str) -> bool:
        async with self._use(None) as s:
            return await WhitelistEntry.exists_valid(s, player_id, server_name)

    async def is_whitelisted_by_name(self, player_name: str, server_name: str) -> bool:
        async with self._use(None) as s:
            return await WhitelistEntry.exists_valid_by_name(s, player_name, server_name)

    async def is_nickname_taken(self, player_name: str) -> bool:
        async with self._use(None) as s:
            return await WhitelistEntry.name_taken(s, player_name)

    async def get_player_servers(self, player_id: uuid.UUID) -> list[str]:
        async with self._use(None) as s:
            return await WhitelistEntry.servers_of(s, player_id)

    async def get_entry_count(self, server_name: str | None = None) -> int:
        async with self._use(None) as s:
            return await WhitelistEntry.count_active(s, server_name)

    # ---------- servers

    async def register_server(self, name: str, display_name: str, whitelist_enabled: bool) -> ServerInfo:
        async with self._use(None) as s:
            return await ServerInfo.upsert(
                s, name=name, display_name=display_name, whitelist_enabled=whitelist_enabled
            )

    async def update_server_heartbeat(self, name: str) -> bool:
        async with self._use(None) as s:
            return await ServerInfo.touch(s, name, last_heartbeat=utcnow())

    async def update_server_whitelist_status(self, name: str, enabled: bool) -> bool:
        async with self._use(None) as s:
            return await ServerInfo.touch(s, name, whitelist_enabled=enabled)

    async def get_server(self, name: str) -> Optional[ServerInfo]:
        async with self._use(None) as s:
            return await ServerInfo.fetch(s, name)

    async def get_all_servers(self) -> list[ServerInfo]:
        async with self._use(None) as s:
            return await ServerInfo.fetch_all(s)

    # ---------- registration codes

    async def create_code(self, code: RegistrationCode, session: AsyncSession | None = None) -> RegistrationCode:
        async with self._use(session) as s:
            s.add(code)
            try:
                await s.flush()
            except IntegrityError as e:
                raise Conflict(f"Registration code {code.code} already exists") from e
        return code

    async def get_code(self, code: str) -> Optional[RegistrationCode]:
        async with self._use(None) as s:
            return await RegistrationCode.fetch(s, code)

    async def get_active_code(self, chat_id: str) -> Optional[RegistrationCode]:
        async with self._use(None) as s:
            return await RegistrationCode.active_for_chat(s, chat_id)

    async def use_code(
        self,
        code: str,
        player_id: uuid.UUID,
        player_name: str,
        session: AsyncSession | None = None,
    ) -> bool:
        async with self._use(session) as s:
            res = await s.execute(consume_code_statement(code, player_id, player_name, utcnow()))
            return res.rowcount > 0

    async def delete_expired_codes(self) -> int:
        async with self._use(None) as s:
            return await RegistrationCode.delete_expired(s)

    async def invalidate_codes(self, chat_id: str, session: AsyncSession | None = None) -> int:
        async with self._use(session) as s:
            return await RegistrationCode.delete_unused_for_chat(s, chat_id)

    # ---------- player links

    async def create_link(self, link: PlayerLink, session: AsyncSession | None = None) -> PlayerLink:
        async with self._use(session) as s:
            await PlayerLink.purge_inactive(s, player_id=link.player_id, chat_id=link.chat_id)
            s.add(link)
            try:
                await s.flush()
            except IntegrityError as e:
                raise Conflict(f"Player {link.player_id} or chat {link.chat_id} is already linked") from e
        return link

    async def get_link_by_player(
        self, player_id: uuid.UUID, session: AsyncSession | None = None
    ) -> Optional[PlayerLink]:
        async with self._use(session) as s:
            return await PlayerLink.active_by_player(s, player_id)

    async def get_link_by_chat(self, chat_id: str, session: AsyncSession | None = None) -> Optional[PlayerLink]:
        async with self._use(session) as s:
            return await PlayerLink.active_by_chat(s, chat_id)

    async def unlink_player(self, player_id: uuid.UUID) -> bool:
        async with self._use(None) as s:
            return await PlayerLink.deactivate(s, player_id)

    async def get_all_links(self) -> list[PlayerLink]:
        async with self._use(None) as s:
            return await PlayerLink.fetch_all_active(s)
