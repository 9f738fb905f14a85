"""Unit tests for the courier token cache."""

import asyncio

from src.sf_delivery.domain.models import TOKEN_EXPIRY_MARGIN_SECONDS, DeliveryToken
from src.sf_delivery.domain.token_cache import InMemoryTokenStore, TokenCache


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class CountingIssuer:
    def __init__(self, clock: FakeClock, expires_in: float = 3600, delay: float = 0) -> None:
        self.calls = 0
        self._clock = clock
        self._expires_in = expires_in
        self._delay = delay

    async def __call__(self) -> DeliveryToken:
        self.calls += 1
        if self._delay:
            await asyncio.sleep(self._delay)
        return DeliveryToken.issued(f"tok-{self.calls}", self._expires_in, self._clock())


class TestDeliveryToken:
    def test_expiry_includes_safety_margin(self) -> None:
        token = DeliveryToken.issued("t", 3600, 1000.0)
        assert token.expires_at == 1000.0 + 3600 - TOKEN_EXPIRY_MARGIN_SECONDS

    def test_is_valid_before_expiry_only(self) -> None:
        token = DeliveryToken(access_token="t", expires_at=2000.0)
        assert token.is_valid(1999.0)
        assert not token.is_valid(2000.0)


class TestTokenCache:
    async def test_reuses_valid_token(self) -> None:
        clock = FakeClock()
        issuer = CountingIssuer(clock)
        cache = TokenCache(InMemoryTokenStore(), issuer, clock=clock)

        assert await cache.get() == "tok-1"
        assert await cache.get() == "tok-1"
        assert issuer.calls == 1

    async def test_refreshes_after_expiry(self) -> None:
        clock = FakeClock()
        issuer = CountingIssuer(clock, expires_in=120)
        cache = TokenCache(InMemoryTokenStore(), issuer, clock=clock)

        await cache.get()
        clock.now += 120
        assert await cache.get() == "tok-2"
        assert issuer.calls == 2

    async def test_invalidate_forces_new_token(self) -> None:
        clock = FakeClock()
        issuer = CountingIssuer(clock)
        cache = TokenCache(InMemoryTokenStore(), issuer, clock=clock)

        await cache.get()
        await cache.invalidate()
        assert await cache.get() == "tok-2"

    async def test_concurrent_callers_share_one_refresh(self) -> None:
        clock = FakeClock()
        issuer = CountingIssuer(clock, delay=0.01)
        cache = TokenCache(InMemoryTokenStore(), issuer, clock=clock)

        tokens = await asyncio.gather(*(cache.get() for _ in range(10)))
        assert set(tokens) == {"tok-1"}
        assert issuer.calls == 1
