# services/cache.py
from __future__ import annotations

import asyncio
import contextlib
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Generic, Hashable, Optional, TypeVar

from models import ServerInfo
from services.registry import ServerRegistry
from services.whitelist import WhitelistStore

log = logging.getLogger(__name__)

V = TypeVar("V")
K = TypeVar("K", bound=Hashable)


@dataclass(frozen=True)
class _Cached(Generic[V]):
    value: V
    expires_at: float


class _BoundedTTLMap(Generic[K, V]):
    """Dict of values with absolute expiry and a hard size cap.

    At capacity, expired entries are purged first; if that frees nothing, one
    arbitrary entry is evicted. There is no LRU ordering.
    """

    def __init__(self, ttl: float, max_size: int, clock: Callable[[], float]):
        self.ttl = ttl
        self.max_size = max_size
        self._clock = clock
        self._data: dict[K, _Cached[V]] = {}

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: K) -> bool:
        return key in self._data

    def get(self, key: K) -> Optional[_Cached[V]]:
        hit = self._data.get(key)
        if hit is None or hit.expires_at <= self._clock():
            return None
        return hit

    def put(self, key: K, value: V) -> None:
        if key not in self._data and len(self._data) >= self.max_size:
            self.purge_expired()
            if len(self._data) >= self.max_size:
                victim = next(iter(self._data))
                self._data.pop(victim, None)
        self._data[key] = _Cached(value, self._clock() + self.ttl)

    def pop(self, key: K) -> bool:
        return self._data.pop(key, None) is not None

    def remove_where(self, predicate: Callable[[K], bool]) -> int:
        doomed = [k for k in list(self._data) if predicate(k)]
        for k in doomed:
            self._data.pop(k, None)
        return len(doomed)

    def purge_expired(self) -> int:
        now = self._clock()
        return self.remove_where(lambda k: self._data[k].expires_at <= now)

    def clear(self) -> None:
        self._data.clear()


class WhitelistCache:
    """Read-through TTL cache in front of the whitelist and server registry.

    Writes to the stores never touch this cache. A cached answer stays until
    its TTL runs out or one of the ``invalidate*`` hooks is called, so a
    player added a moment ago may still be refused for up to one TTL.
    Concurrent misses for the same key each query the store.
    """

    def __init__(
        self,
        whitelist: WhitelistStore,
        registry: ServerRegistry,
        ttl_seconds: float = 60,
        max_size: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.whitelist = whitelist
        self.registry = registry
        self.ttl_seconds = ttl_seconds
        self._entries: _BoundedTTLMap[tuple[uuid.UUID, str], bool] = _BoundedTTLMap(ttl_seconds, max_size, clock)
        self._servers: _BoundedTTLMap[str, ServerInfo] = _BoundedTTLMap(ttl_seconds, max_size, clock)
        self._sweeper: asyncio.Task | None = None

    def __len__(self) -> int:
        return len(self._entries)

    async def is_whitelisted(self, player_id: uuid.UUID, server_name: str, player_name: str | None = None) -> bool:
        key = (player_id, server_name)
        hit = self._entries.get(key)
        if hit is not None:
            return hit.value
        result = await self.whitelist.is_whitelisted(player_id, server_name, player_name)
        self._entries.put(key, result)
        return result

    async def get_server(self, name: str) -> Optional[ServerInfo]:
        hit = self._servers.get(name)
        if hit is not None:
            return hit.value
        info = await self.registry.get_server(name)
        if info is not None:
            self._servers.put(name, info)
        return info

    def invalidate(self, player_id: uuid.UUID, server_name: str) -> bool:
        return self._entries.pop((player_id, server_name))

    def invalidate_player(self, player_id: uuid.UUID) -> int:
        return self._entries.remove_where(lambda k: k[0] == player_id)

    def invalidate_server(self, server_name: str) -> int:
        self._servers.pop(server_name)
        return self._entries.remove_where(lambda k: k[1] == server_name)

    def invalidate_all(self) -> None:
        self._entries.clear()
        self._servers.clear()
        log.info("[cache] cleared")

    def cleanup(self) -> int:
        removed = self._entries.purge_expired() + self._servers.purge_expired()
        if removed:
            log.debug("[cache] swept %d expired entries", removed)
        return removed

    # ---------- background sweeper

    def start(self) -> asyncio.Task:
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(self._sweep_forever(), name="whitelist-cache-sweeper")
        return self._sweeper

    async def stop(self) -> None:
        if self._sweeper and not self._sweeper.done():
            self._sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweeper
        self._sweeper = None

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self.ttl_seconds)
            self.cleanup()
