# services/codes.py
from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from typing import Optional

from exceptions import Conflict, InvalidState, NotFound, StorageError
from models import RegistrationCode
from storage import Storage
from utils import codegen
from utils.clock import utcnow

log = logging.getLogger(__name__)

MAX_ISSUE_ATTEMPTS = 5


class CodeIssuer:
    """Registration-code lifecycle: issue, look up, consume, sweep."""

    def __init__(self, storage: Storage, ttl_minutes: int = 30):
        self.storage = storage
        self.ttl = timedelta(minutes=ttl_minutes)

    async def issue_code(
        self, chat_id: str, chat_username: str | None, player_name: str | None = None
    ) -> RegistrationCode:
        # invalidate + insert share a transaction so a chat never holds two live codes
        for attempt in range(1, MAX_ISSUE_ATTEMPTS + 1):
            now = utcnow()
            code = RegistrationCode(
                code=codegen.generate_formatted(),
                chat_id=chat_id,
                chat_username=chat_username,
                player_name=player_name,
                created_at=now,
                expires_at=now + self.ttl,
                used=False,
            )
            try:
                async with self.storage.unit_of_work() as s:
                    dropped = await self.storage.invalidate_codes(chat_id, session=s)
                    await self.storage.create_code(code, session=s)
            except Conflict:
                log.warning("[codes] collision on %s (attempt %d/%d)", code.code, attempt, MAX_ISSUE_ATTEMPTS)
                continue
            log.info("[codes] issued %s to chat %s (replaced %d unused)", code.code, chat_id, dropped)
            return code
        raise StorageError(f"Could not issue a unique code after {MAX_ISSUE_ATTEMPTS} attempts")

    async def get_active_code(self, chat_id: str) -> Optional[RegistrationCode]:
        return await self.storage.get_active_code(chat_id)

    async def get_code(self, code: str) -> Optional[RegistrationCode]:
        return await self.storage.get_code(codegen.normalize(code))

    async def require_valid(self, code: str) -> RegistrationCode:
        """Return the code if it can still be redeemed.

        Raises :class:`NotFound` for unknown codes and :class:`InvalidState`
        for used or expired ones.
        """
        reg = await self.get_code(code) if codegen.is_well_formed(code) else None
        if reg is None:
            raise NotFound(f"Unknown code {codegen.normalize(code)!r}")
        if not reg.is_valid:
            raise InvalidState(f"Code {reg.code} used={reg.used} expires_at={reg.expires_at}")
        return reg

    async def validate_and_consume(self, code: str, player_id: uuid.UUID, player_name: str, session=None) -> bool:
        return await self.storage.use_code(codegen.normalize(code), player_id, player_name, session=session)

    async def purge_expired(self) -> int:
        removed = await self.storage.delete_expired_codes()
        if removed:
            log.info("[codes] purged %d expired codes", removed)
        return removed
