import os
from dotenv import load_dotenv

from redis import asyncio as aioredis

from adexpress.utils.singleton import SingletonMeta

load_dotenv()


class RedisCache(metaclass=SingletonMeta):
    def __init__(self, client: aioredis.Redis | None = None):
        self._client = client or aioredis.from_url(
            os.getenv("REDIS_URL", "redis://localhost:6379/0"),
            password=os.getenv("REDIS_PASSWORD"),
            decode_responses=True
        )

    async def get_client(self) -> aioredis.Redis:
        return self._client

    @property
    def client(self) -> aioredis.Redis:
        return self._client


async def get_redis() -> aioredis.Redis:
    redis_cache = RedisCache()
    return await redis_cache.get_client()


async def close_redis() -> None:
    """
    Close the shared client and forget it, the next ``get_redis`` reconnects.
    """
    redis_client = await get_redis()
    await redis_client.aclose()
    SingletonMeta.reset(RedisCache)
