"""Redis-backed TokenStore shared by all worker processes."""
import json
import time

import redis.asyncio as aioredis

from src.sf_delivery.domain.models import DeliveryToken

_KEY = "delivery:pathao:token"


class RedisTokenStore:
    def __init__(self, redis: aioredis.Redis, key: str = _KEY) -> None:
        self._redis = redis
        self._key = key

    async def load(self) -> DeliveryToken | None:
        raw = await self._redis.get(self._key)
        if raw is None:
            return None
        data = json.loads(raw)
        return DeliveryToken(access_token=data["access_token"], expires_at=float(data["expires_at"]))

    async def save(self, token: DeliveryToken) -> None:
        ttl = int(token.expires_at - time.time())
        if ttl <= 0:
            return
        payload = json.dumps({"access_token": token.access_token, "expires_at": token.expires_at})
        await self._redis.set(self._key, payload, ex=ttl)

    async def clear(self) -> None:
        await self._redis.delete(self._key)
