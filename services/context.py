# services/context.py
from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field

from services.access import AccessGate
from services.activation import ActivationOrchestrator
from services.cache import WhitelistCache
from services.codes import CodeIssuer
from services.links import LinkStore
from services.registry import ServerRegistry
from services.whitelist import WhitelistStore
from storage import Storage
from utils.config import Settings

log = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Everything a caller needs, built once at startup and passed around."""

    settings: Settings
    storage: Storage
    codes: CodeIssuer
    links: LinkStore
    whitelist: WhitelistStore
    registry: ServerRegistry
    activation: ActivationOrchestrator
    cache: WhitelistCache
    gate: AccessGate
    tasks: list[asyncio.Task] = field(default_factory=list)

    async def start_background(self) -> None:
        from services.heartbeat_task import setup_code_sweeper, setup_heartbeat_task

        self.tasks.append(self.cache.start())
        self.tasks.append(setup_heartbeat_task(self))
        self.tasks.append(setup_code_sweeper(self))
        log.info("[context] %d background tasks started", len(self.tasks))

    async def close(self) -> None:
        for task in self.tasks:
            task.cancel()
        for task in self.tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self.tasks.clear()
        await self.storage.close()


def build_context(settings: Settings, storage: Storage | None = None) -> AppContext:
    storage = storage or Storage.from_settings(settings)
    codes = CodeIssuer(storage, ttl_minutes=settings.CODE_TTL_MINUTES)
    links = LinkStore(storage)
    whitelist = WhitelistStore(storage, default_server=settings.SERVER_NAME)
    registry = ServerRegistry(storage)
    activation = ActivationOrchestrator(
        storage,
        codes,
        links,
        whitelist,
        server_name=settings.SERVER_NAME,
        activation_servers=settings.list_from_csv(settings.ACTIVATION_SERVERS),
        actor=settings.PAIRING_ACTOR,
    )
    cache = WhitelistCache(
        whitelist,
        registry,
        ttl_seconds=settings.CACHE_TTL_SECONDS,
        max_size=settings.CACHE_MAX_SIZE,
    )
    gate = AccessGate(
        cache,
        whitelist,
        timeout=settings.ACCESS_CHECK_TIMEOUT,
        bypass_servers=settings.bypass_servers,
        server_name=settings.SERVER_NAME,
        whitelist_enabled=settings.WHITELIST_ENABLED,
        auto_add=settings.AUTO_ADD,
    )
    return AppContext(
        settings=settings,
        storage=storage,
        codes=codes,
        links=links,
        whitelist=whitelist,
        registry=registry,
        activation=activation,
        cache=cache,
        gate=gate,
    )
