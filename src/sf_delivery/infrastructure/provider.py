"""Process-wide PathaoClient built from config/settings.py."""
from config.settings import settings
from src.sf_common.redis_client import get_redis
from src.sf_delivery.domain.token_cache import InMemoryTokenStore, TokenStore
from src.sf_delivery.infrastructure.pathao_client import PathaoClient
from src.sf_delivery.infrastructure.redis_token_store import RedisTokenStore

_client: PathaoClient | None = None


async def _build_token_store() -> TokenStore:
    if settings.DELIVERY_TOKEN_STORE == "redis":
        return RedisTokenStore(await get_redis())
    return InMemoryTokenStore()


async def get_pathao_client() -> PathaoClient:
    global _client  # noqa: PLW0603
    if _client is None:
        _client = PathaoClient(
            base_url=settings.PATHAO_BASE_URL,
            client_id=settings.PATHAO_CLIENT_ID,
            client_secret=settings.PATHAO_CLIENT_SECRET,
            username=settings.PATHAO_USERNAME,
            password=settings.PATHAO_PASSWORD,
            token_store=await _build_token_store(),
            timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        )
    return _client
