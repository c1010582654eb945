# services/access.py
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Iterable, Optional

from exceptions import AccessTimeout
from models import RegistrationType, WhitelistEntry
from services.cache import WhitelistCache
from services.whitelist import WhitelistStore

log = logging.getLogger(__name__)

AUTO_ADD_REASON = "Automatically added on join"
AUTO_ADD_ACTOR = "System"


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: str

    @classmethod
    def allow(cls, reason: str) -> "AccessDecision":
        return cls(True, reason)

    @classmethod
    def deny(cls, reason: str) -> "AccessDecision":
        return cls(False, reason)


class AccessGate:
    """Connection-time hook for the proxy and the game servers.

    ``check_access`` may block the host briefly but never longer than
    ``timeout``; anything other than a positive answer inside that window
    denies the connection.
    """

    def __init__(
        self,
        cache: WhitelistCache,
        whitelist: WhitelistStore,
        *,
        timeout: float = 5.0,
        bypass_servers: Iterable[str] = (),
        server_name: str = "",
        whitelist_enabled: bool = True,
        auto_add: bool = False,
    ):
        self.cache = cache
        self.whitelist = whitelist
        self.timeout = timeout
        self.bypass_servers = {s.lower() for s in bypass_servers}
        self.server_name = server_name
        self.whitelist_enabled = whitelist_enabled
        self.auto_add = auto_add

    def auto_adds_on(self, server_name: str) -> bool:
        # auto-add is a policy of this server only, and only while its whitelist is on
        return self.auto_add and self.whitelist_enabled and server_name.lower() == self.server_name.lower()

    async def check_access(self, player_id: uuid.UUID, player_name: str, server_name: str) -> AccessDecision:
        if server_name.lower() in self.bypass_servers:
            log.debug("[gate] %s -> %s: bypass server", player_name, server_name)
            return AccessDecision.allow("bypass")
        if self.auto_adds_on(server_name):
            # players are admitted and whitelisted by handle_join instead
            return AccessDecision.allow("auto-add")

        try:
            allowed = await self.bounded_lookup(player_id, player_name, server_name)
        except AccessTimeout as e:
            log.error("[gate] %s; denying", e)
            return AccessDecision.deny("timeout")
        except Exception:
            log.exception("[gate] whitelist check for %s on %s failed; denying", player_name, server_name)
            return AccessDecision.deny("error")

        if allowed is None:
            log.debug("[gate] %s -> %s: whitelist disabled", player_name, server_name)
            return AccessDecision.allow("whitelist-disabled")
        if allowed:
            log.debug("[gate] %s -> %s: whitelisted", player_name, server_name)
            return AccessDecision.allow("whitelisted")
        log.info("[gate] denied %s (%s) on %s: not whitelisted", player_name, player_id, server_name)
        return AccessDecision.deny("not-whitelisted")

    async def bounded_lookup(self, player_id: uuid.UUID, player_name: str, server_name: str) -> Optional[bool]:
        try:
            return await asyncio.wait_for(self._lookup(player_id, player_name, server_name), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise AccessTimeout(
                f"whitelist check for {player_name} on {server_name} timed out after {self.timeout:.1f}s"
            ) from e

    async def _lookup(self, player_id: uuid.UUID, player_name: str, server_name: str) -> Optional[bool]:
        # None means the server has its whitelist switched off
        info = await self.cache.get_server(server_name)
        if info is not None and not info.whitelist_enabled:
            return None
        return await self.cache.is_whitelisted(player_id, server_name, player_name)

    async def handle_join(self, player_id: uuid.UUID, player_name: str, server_name: str) -> Optional[WhitelistEntry]:
        """Auto-add policy: whitelist a joining player who has no entry yet."""
        if not self.auto_adds_on(server_name):
            return None
        if await self.whitelist.is_whitelisted(player_id, server_name, player_name):
            return None
        entry = await self.whitelist.add_entry(
            player_id,
            player_name,
            server_name,
            registration_type=RegistrationType.MANUAL,
            reason=AUTO_ADD_REASON,
            added_by=AUTO_ADD_ACTOR,
        )
        log.info("[gate] %s automatically added to %s", player_name, server_name)
        return entry
