"""Courier access-token cache.

The cache is owned by one PathaoClient instance. Storage is pluggable
(in-process by default, Redis for multi-worker deployments). Refresh is
single-flight within a process: concurrent callers that all observe an
expired token wait on one lock and re-check before issuing, so one expiry
costs one token request. Separate processes sharing the Redis store can
still refresh concurrently; that only costs a redundant token request.
"""
import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Protocol

from src.sf_delivery.domain.models import DeliveryToken


class TokenStore(Protocol):
    async def load(self) -> DeliveryToken | None: ...

    async def save(self, token: DeliveryToken) -> None: ...

    async def clear(self) -> None: ...


class InMemoryTokenStore:
    def __init__(self) -> None:
        self._token: DeliveryToken | None = None

    async def load(self) -> DeliveryToken | None:
        return self._token

    async def save(self, token: DeliveryToken) -> None:
        self._token = token

    async def clear(self) -> None:
        self._token = None


class TokenCache:
    def __init__(
        self,
        store: TokenStore,
        issuer: Callable[[], Awaitable[DeliveryToken]],
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._issuer = issuer
        self._clock = clock
        self._refresh_lock = asyncio.Lock()

    async def _valid_cached(self) -> str | None:
        token = await self._store.load()
        if token is not None and token.is_valid(self._clock()):
            return token.access_token
        return None

    async def get(self) -> str:
        """Return a valid access token, refreshing it at most once per expiry."""
        cached = await self._valid_cached()
        if cached is not None:
            return cached
        async with self._refresh_lock:
            cached = await self._valid_cached()
            if cached is not None:
                return cached
            token = await self._issuer()
            await self._store.save(token)
            return token.access_token

    async def invalidate(self) -> None:
        """Drop the cached token (e.g. after the provider answers 401)."""
        await self._store.clear()
