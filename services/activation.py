# services/activation.py
from __future__ import annotations

import enum
import logging
import uuid
from dataclasses import dataclass
from typing import Optional, Sequence

from exceptions import Conflict, InvalidState, NotFound
from models import RegistrationType, WhitelistEntry
from services.codes import CodeIssuer
from services.links import LinkStore
from services.whitelist import WhitelistStore
from storage import Storage

log = logging.getLogger(__name__)


class ActivationReason(str, enum.Enum):
    SUCCESS = "success"
    CODE_INVALID = "code-invalid"
    ALREADY_WHITELISTED = "already-whitelisted"
    TELEGRAM_ALREADY_LINKED = "telegram-already-linked"
    PLAYER_ALREADY_LINKED = "player-already-linked"


REASON_MESSAGES: dict[ActivationReason, str] = {
    ActivationReason.SUCCESS: "Your account is linked and you are now whitelisted.",
    ActivationReason.CODE_INVALID: "This code is invalid or has expired. Request a new one from the bot.",
    ActivationReason.ALREADY_WHITELISTED: "You are already whitelisted on this server.",
    ActivationReason.TELEGRAM_ALREADY_LINKED: "This chat account is already linked to another player.",
    ActivationReason.PLAYER_ALREADY_LINKED: "Your player is already linked to a different chat account.",
}


@dataclass(frozen=True)
class ActivationResult:
    success: bool
    reason: ActivationReason
    entry: Optional[WhitelistEntry] = None

    @property
    def message(self) -> str:
        return REASON_MESSAGES[self.reason]

    @classmethod
    def failed(cls, reason: ActivationReason) -> "ActivationResult":
        return cls(False, reason, None)


class ActivationOrchestrator:
    """Turns a chat-issued code into a player link plus whitelist entries.

    Checks run as separate reads and short-circuit on the first failure.
    Consuming the code, creating the link and writing the entries share one
    transaction: either the player is granted access and the code is burned,
    or nothing changes. The guarded UPDATE in the consume step is what keeps
    concurrent activations of the same code down to a single winner.
    """

    def __init__(
        self,
        storage: Storage,
        codes: CodeIssuer,
        links: LinkStore,
        whitelist: WhitelistStore,
        *,
        server_name: str,
        activation_servers: Sequence[str] = (),
        actor: str = "ChatLink",
    ):
        self.storage = storage
        self.codes = codes
        self.links = links
        self.whitelist = whitelist
        self.server_name = server_name
        self.activation_servers = list(activation_servers)
        self.actor = actor

    async def activate(
        self,
        code: str,
        player_id: uuid.UUID,
        player_name: str,
        server_name: str | None = None,
    ) -> ActivationResult:
        server_name = server_name or self.server_name
        log.debug("[activation] %s (%s) submits %r on %s", player_name, player_id, code, server_name)

        try:
            reg = await self.codes.require_valid(code)
        except (NotFound, InvalidState) as e:
            log.debug("[activation] rejected: %s", e)
            return ActivationResult.failed(ActivationReason.CODE_INVALID)

        if await self.whitelist.is_whitelisted(player_id, server_name, player_name):
            return ActivationResult.failed(ActivationReason.ALREADY_WHITELISTED)

        chat_link = await self.links.get_link_by_chat_id(reg.chat_id)
        if chat_link is not None and chat_link.player_id != player_id:
            return ActivationResult.failed(ActivationReason.TELEGRAM_ALREADY_LINKED)
        player_link = await self.links.get_link_by_player(player_id)
        if player_link is not None and player_link.chat_id != reg.chat_id:
            return ActivationResult.failed(ActivationReason.PLAYER_ALREADY_LINKED)

        servers = self.activation_servers or [server_name]
        who = reg.chat_username or reg.chat_id
        try:
            async with self.storage.unit_of_work() as s:
                if not await self.codes.validate_and_consume(reg.code, player_id, player_name, session=s):
                    log.info("[activation] %s lost the race for code %s", player_name, reg.code)
                    return ActivationResult.failed(ActivationReason.CODE_INVALID)
                if chat_link is None:
                    await self.links.create_link(player_id, player_name, reg.chat_id, reg.chat_username, session=s)
                entry = await self.whitelist.add_to_servers(
                    player_id,
                    player_name,
                    servers,
                    registration_type=RegistrationType.CODE,
                    reason=f"Linked via chat: @{who}",
                    added_by=self.actor,
                    session=s,
                )
        except Conflict:
            # another activation linked one side first; our transaction was rolled back
            log.info("[activation] link conflict for %s / chat %s", player_id, reg.chat_id)
            if await self.links.get_link_by_chat_id(reg.chat_id) is not None:
                return ActivationResult.failed(ActivationReason.TELEGRAM_ALREADY_LINKED)
            return ActivationResult.failed(ActivationReason.PLAYER_ALREADY_LINKED)

        log.info(
            "[activation] %s (%s) activated %s from chat %s on %s",
            player_name, player_id, reg.code, reg.chat_id, ", ".join(servers),
        )
        return ActivationResult(True, ActivationReason.SUCCESS, entry)
