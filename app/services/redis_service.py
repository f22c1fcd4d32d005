import redis.asyncio as redis
from loguru import logger

from app.core.config import settings


class RedisService:
    def __init__(self, client: redis.Redis | None = None) -> None:
        self._client: redis.Redis | None = client
        if client is None and not settings.REDIS_URL:
            logger.warning("REDIS_URL is not set. Redis operations will fail until configured.")

    async def get_client(self) -> redis.Redis:
        if self._client is None:
            logger.info("Creating Redis client for RedisService")
            self._client = redis.from_url(
                settings.REDIS_URL,
                decode_responses=True,
                encoding="utf-8",
                socket_connect_timeout=5,
                socket_timeout=5,
                max_connections=getattr(settings, "REDIS_MAX_CONNECTIONS", 100),
                health_check_interval=30,
                socket_keepalive=True,
            )
        return self._client

    def use_client(self, client: redis.Redis | None) -> redis.Redis | None:
        """Swap the underlying client and return the previous one."""
        previous, self._client = self._client, client
        return previous

    async def ping(self) -> bool:
        """Check connectivity.

        Returns:
            True if Redis answered, False otherwise
        """
        try:
            client = await self.get_client()
            return bool(await client.ping())
        except (redis.RedisError, OSError) as exc:
            logger.error(f"Redis ping failed: {exc}")
            return False

    async def close(self) -> None:
        """Close and disconnect the Redis client"""
        if self._client is not None:
            try:
                await self._client.aclose()
                logger.info("RedisService client closed")
            except Exception as exc:
                logger.warning(f"Failed to close RedisService client: {exc}")
            finally:
                self._client = None


redis_service = RedisService()
