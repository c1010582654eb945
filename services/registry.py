# services/registry.py
from __future__ import annotations

import logging
from typing import Optional

from models import ServerInfo
from storage import Storage

log = logging.getLogger(__name__)


class ServerRegistry:
    def __init__(self, storage: Storage):
        self.storage = storage

    async def register_server(
        self, name: str, display_name: str | None = None, whitelist_enabled: bool = True
    ) -> ServerInfo:
        # registering counts as a heartbeat
        info = await self.storage.register_server(name, display_name or name, whitelist_enabled)
        log.info("[registry] registered %s (whitelist=%s)", name, whitelist_enabled)
        return info

    async def update_heartbeat(self, name: str) -> bool:
        return await self.storage.update_server_heartbeat(name)

    async def update_whitelist_enabled(self, name: str, enabled: bool) -> bool:
        updated = await self.storage.update_server_whitelist_status(name, enabled)
        if updated:
            log.info("[registry] %s whitelist %s", name, "enabled" if enabled else "disabled")
        return updated

    async def get_server(self, name: str) -> Optional[ServerInfo]:
        return await self.storage.get_server(name)

    async def get_all_servers(self) -> list[ServerInfo]:
        return await self.storage.get_all_servers()
