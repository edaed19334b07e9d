"""Redis client backing the persistent translation cache."""

import asyncio
import logging
from typing import List, Optional

import redis.asyncio as redis
from redis.asyncio import Redis
from redis.exceptions import RedisError

from lazy_dubber.common.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

PING_TIMEOUT_SECONDS = 5.0


class RedisClient:
    """
    Async Redis connection that degrades to a no-op store.

    If no connection can be made, ``connected`` stays False: reads return
    nothing, writes are skipped and translation carries on uncached.
    """

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings
        self.client: Optional[Redis] = None
        self.connected: bool = False

    def _reconnect_delay(self, attempt: int) -> float:
        return min(
            self.config.redis_reconnect_initial_delay * (2**attempt),
            self.config.redis_reconnect_max_delay,
        )

    async def connect(self) -> None:
        """Open the connection, retrying with exponential delays between pings."""
        attempts = max(1, self.config.redis_reconnect_max_retries)
        last_error: Optional[BaseException] = None

        for attempt in range(attempts):
            if attempt:
                delay = self._reconnect_delay(attempt - 1)
                logger.warning(
                    f"⚠️  Redis unreachable ({last_error}), "
                    f"attempt {attempt + 1}/{attempts} in {delay}s"
                )
                await asyncio.sleep(delay)
            try:
                self.client = redis.from_url(
                    self.config.redis_url, encoding="utf-8", decode_responses=True
                )
                await asyncio.wait_for(self.client.ping(), timeout=PING_TIMEOUT_SECONDS)
            except (RedisError, OSError, asyncio.TimeoutError) as e:
                last_error = e
                continue

            self.connected = True
            logger.info(f"✅ Redis connected at {self.config.redis_url}")
            return

        self.connected = False
        logger.error(f"❌ Giving up on Redis after {attempts} attempt(s): {last_error}")
        logger.warning("⚠️  Translation cache disabled for this run")

    async def disconnect(self) -> None:
        if self.client is None:
            return
        try:
            await self.client.aclose()
        except (RedisError, OSError) as e:
            logger.warning(f"⚠️  Error while closing Redis connection: {e}")
        finally:
            self.connected = False
            logger.info("Redis connection closed")

    @property
    def available(self) -> bool:
        return self.connected and self.client is not None

    async def get(self, key: str) -> Optional[str]:
        if not self.available:
            return None
        return await self.client.get(key)

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        if not self.available:
            return
        await self.client.set(key, value, ex=ttl_seconds or None)

    async def delete(self, *keys: str) -> int:
        if not self.available or not keys:
            return 0
        return await self.client.delete(*keys)

    async def keys_with_prefix(self, prefix: str) -> List[str]:
        """Every key starting with ``prefix``, walked with SCAN."""
        if not self.available:
            return []
        return [key async for key in self.client.scan_iter(match=f"{prefix}*")]
