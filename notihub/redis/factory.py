from __future__ import annotations

from redis.asyncio import Redis

from notihub.config import settings


class RedisClientFactory:
    """Singleton factory for a shared async Redis client.

    Defaults to ``None`` (in-process only). ``REDIS_URL`` lazily creates
    the client on first use when nothing was set explicitly.
    """

    __client: Redis | None = None

    @staticmethod
    def set_client(client: Redis | None) -> None:
        RedisClientFactory.__client = client

    @staticmethod
    def get_client() -> Redis | None:
        if RedisClientFactory.__client is None and settings.REDIS_URL:
            RedisClientFactory.__client = Redis.from_url(settings.REDIS_URL)
        return RedisClientFactory.__client
