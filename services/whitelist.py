# services/whitelist.py
from __future__ import annotations

import logging
import math
import uuid
from datetime import datetime
from typing import Optional, Sequence, TypeVar

from models import RegistrationType, WhitelistEntry
from storage import Storage
from utils.clock import utcnow

log = logging.getLogger(__name__)

T = TypeVar("T")


def paginate(items: Sequence[T], page: int = 1, per_page: int = 10) -> tuple[list[T], int]:
    """Slice ``items`` for 1-based ``page``; returns (page_items, total_pages)."""
    per_page = max(1, per_page)
    total_pages = max(1, math.ceil(len(items) / per_page))
    page = min(max(1, page), total_pages)
    start = (page - 1) * per_page
    return list(items[start:start + per_page]), total_pages


class WhitelistStore:
    """Business rules over per-(player, server) whitelist entries."""

    def __init__(self, storage: Storage, default_server: str):
        self.storage = storage
        self.default_server = default_server

    async def is_whitelisted(
        self,
        player_id: uuid.UUID,
        server_name: str | None = None,
        player_name: str | None = None,
    ) -> bool:
        """Valid entry for the exact (id, server) pair.

        With ``player_name`` given, a miss falls back to a case-insensitive
        name match, which covers entries added by name before the player's
        id was known.
        """
        server_name = server_name or self.default_server
        if await self.storage.is_whitelisted(player_id, server_name):
            return True
        if player_name:
            return await self.storage.is_whitelisted_by_name(player_name, server_name)
        return False

    async def add_entry(
        self,
        player_id: uuid.UUID,
        player_name: str,
        server_name: str | None = None,
        *,
        registration_type: RegistrationType = RegistrationType.MANUAL,
        reason: str | None = None,
        added_by: str | None = None,
        inviter_chat_id: str | None = None,
        expires_at: datetime | None = None,
        active: bool = True,
        session=None,
    ) -> WhitelistEntry:
        # last write wins on (player_id, server_name); nothing is merged
        values = {
            "player_id": player_id,
            "player_name": player_name,
            "server_name": server_name or self.default_server,
            "registration_type": registration_type,
            "reason": reason,
            "added_by": added_by,
            "inviter_chat_id": inviter_chat_id,
            "created_at": utcnow(),
            "expires_at": expires_at,
            "active": active,
        }
        entry = await self.storage.add_entry(values, session=session)
        log.info(
            "[whitelist] %s (%s) added to %s via %s by %s",
            player_name, player_id, entry.server_name, registration_type.value, added_by,
        )
        return entry

    async def add_to_servers(
        self,
        player_id: uuid.UUID,
        player_name: str,
        servers: Sequence[str],
        **kwargs,
    ) -> WhitelistEntry:
        """Upsert one entry per server, in order; returns the last one."""
        if not servers:
            return await self.add_entry(player_id, player_name, **kwargs)
        entry = None
        for server in servers:
            entry = await self.add_entry(player_id, player_name, server, **kwargs)
        return entry

    async def invite(
        self,
        player_id: uuid.UUID,
        player_name: str,
        inviter_name: str,
        *,
        inviter_player_id: uuid.UUID | None = None,
        reason: str | None = None,
        server_name: str | None = None,
    ) -> WhitelistEntry:
        inviter_chat_id = None
        if inviter_player_id is not None:
            link = await self.storage.get_link_by_player(inviter_player_id)
            inviter_chat_id = link.chat_id if link else None
        return await self.add_entry(
            player_id,
            player_name,
            server_name,
            registration_type=RegistrationType.INVITE,
            reason=reason or f"Invited by {inviter_name}",
            added_by=inviter_name,
            inviter_chat_id=inviter_chat_id,
        )

    async def update_entry(self, player_id: uuid.UUID, server_name: str, **fields) -> bool:
        return await self.storage.update_entry(player_id, server_name, **fields)

    async def deactivate(self, player_id: uuid.UUID, server_name: str | None = None) -> bool:
        return await self.storage.update_entry(player_id, server_name or self.default_server, active=False)

    async def remove_entry(self, player_id: uuid.UUID, server_name: str | None = None) -> bool:
        server_name = server_name or self.default_server
        removed = await self.storage.remove_entry(player_id, server_name)
        if removed:
            log.info("[whitelist] %s removed from %s", player_id, server_name)
        return removed

    async def get_entry(self, player_id: uuid.UUID, server_name: str | None = None) -> Optional[WhitelistEntry]:
        return await self.storage.get_entry(player_id, server_name or self.default_server)

    async def get_entries_by_player(self, player_id: uuid.UUID) -> list[WhitelistEntry]:
        return await self.storage.get_entries_by_player(player_id)

    async def get_all_active_entries(self) -> list[WhitelistEntry]:
        return await self.storage.get_all_active_entries()

    async def get_entries_by_server(self, server_name: str | None = None) -> list[WhitelistEntry]:
        return await self.storage.get_entries_by_server(server_name or self.default_server)

    async def get_entry_count(self, server_name: str | None = None) -> int:
        return await self.storage.get_entry_count(server_name)

    async def is_nickname_taken(self, player_name: str) -> bool:
        return await self.storage.is_nickname_taken(player_name)

    async def get_player_servers(self, player_id: uuid.UUID) -> list[str]:
        return await self.storage.get_player_servers(player_id)
