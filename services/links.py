# services/links.py
from __future__ import annotations

import logging
import uuid
from typing import Optional

from exceptions import Conflict
from models import PlayerLink
from storage import Storage
from utils.clock import utcnow

log = logging.getLogger(__name__)


class LinkStore:
    """1:1 pairing between a player and a chat identity."""

    def __init__(self, storage: Storage):
        self.storage = storage

    async def get_link_by_chat_id(self, chat_id: str, session=None) -> Optional[PlayerLink]:
        return await self.storage.get_link_by_chat(chat_id, session=session)

    async def get_link_by_player(self, player_id: uuid.UUID, session=None) -> Optional[PlayerLink]:
        return await self.storage.get_link_by_player(player_id, session=session)

    async def is_chat_linked(self, chat_id: str) -> bool:
        return await self.get_link_by_chat_id(chat_id) is not None

    async def is_player_linked(self, player_id: uuid.UUID) -> bool:
        return await self.get_link_by_player(player_id) is not None

    async def create_link(
        self,
        player_id: uuid.UUID,
        player_name: str,
        chat_id: str,
        chat_username: str | None,
        session=None,
    ) -> PlayerLink:
        """Create an active link.

        The store only enforces plain column uniqueness, so the "one *active*
        link per player and per chat" rule is checked here first. Raises
        :class:`Conflict` if either side is already actively linked.
        """
        by_chat = await self.get_link_by_chat_id(chat_id, session=session)
        if by_chat is not None:
            raise Conflict(f"Chat {chat_id} is already linked to {by_chat.player_name}")
        by_player = await self.get_link_by_player(player_id, session=session)
        if by_player is not None:
            raise Conflict(f"Player {player_name} is already linked to chat {by_player.chat_id}")

        link = PlayerLink(
            player_id=player_id,
            player_name=player_name,
            chat_id=chat_id,
            chat_username=chat_username,
            linked_at=utcnow(),
            active=True,
        )
        link = await self.storage.create_link(link, session=session)
        log.info("[links] linked %s (%s) to chat %s", player_name, player_id, chat_id)
        return link

    async def unlink_player(self, player_id: uuid.UUID) -> bool:
        removed = await self.storage.unlink_player(player_id)
        if removed:
            log.info("[links] unlinked %s", player_id)
        return removed

    async def get_all_links(self) -> list[PlayerLink]:
        return await self.storage.get_all_links()
