"""Content-addressed persistent cache for subtitle translations."""

import logging
from typing import Mapping, Optional

from pydantic import ValidationError
from redis.exceptions import RedisError, ResponseError

from lazy_dubber.common.redis_client import RedisClient
from lazy_dubber.common.schemas import CacheConfig, CacheEntry
from lazy_dubber.common.string_utils import normalize_subtitle_text
from lazy_dubber.common.utils import DateTimeUtils

logger = logging.getLogger(__name__)

_INT32_MASK = 0xFFFFFFFF


def compute_content_hash(text: str) -> int:
    """
    Compute a 32-bit rolling hash (``hash * 31 + code_unit``) over UTF-16 code units.

    The arithmetic wraps like a signed 32-bit integer, so keys stay identical
    to ones produced by a browser build of the same cache.

    Examples:
        >>> compute_content_hash("")
        0
        >>> compute_content_hash("a")
        97
    """
    value = 0
    encoded = text.encode("utf-16-le")
    for offset in range(0, len(encoded), 2):
        code_unit = encoded[offset] | (encoded[offset + 1] << 8)
        value = ((value << 5) - value + code_unit) & _INT32_MASK
    if value & 0x80000000:
        value -= 0x100000000
    return value


def is_capacity_error(error: Exception) -> bool:
    """Check whether Redis refused a write because it is out of memory."""
    if not isinstance(error, ResponseError):
        return False
    message = str(error).upper()
    return message.startswith("OOM") or "MAXMEMORY" in message


class TranslationCacheStore:
    """
    Persists finished translation maps keyed by a digest of the subtitle file.

    Caching is best-effort: every Redis failure is logged and swallowed, a
    read failure counts as a miss and a write failure drops the entry.
    """

    def __init__(self, redis_client: RedisClient, config: Optional[CacheConfig] = None):
        self.redis = redis_client
        self.config = config or CacheConfig.from_settings()

    def compute_key(self, raw_text: str) -> str:
        """
        Build the cache key for raw subtitle file content.

        Line-ending style, extra blank lines and trailing whitespace do not
        change the key.

        Args:
            raw_text: Unmodified subtitle file content

        Returns:
            Key like ``translation_v1_123456789``
        """
        normalized = normalize_subtitle_text(raw_text)
        digest = abs(compute_content_hash(normalized))
        cache_key = f"{self.config.key_prefix}{self.config.version}_{digest}"
        logger.debug(f"Cache key calculated: {cache_key}")
        return cache_key

    def _is_expired(self, entry: CacheEntry, now_ms: Optional[int] = None) -> bool:
        now_ms = now_ms if now_ms is not None else DateTimeUtils.get_current_timestamp_ms()
        return now_ms - entry.timestamp > self.config.expiry_window_ms

    def _parse_entry(self, raw: str) -> Optional[CacheEntry]:
        try:
            return CacheEntry.model_validate_json(raw)
        except (ValidationError, ValueError) as e:
            logger.warning(f"⚠️  Malformed cache entry: {e}")
            return None

    async def _remove(self, key: str) -> None:
        try:
            await self.redis.delete(key)
        except RedisError as e:
            logger.warning(f"⚠️  Failed to remove cache entry {key}: {e}")

    async def get(self, key: str) -> Optional[CacheEntry]:
        """
        Look up a cached translation map.

        Malformed, version-mismatched and expired entries are deleted and
        reported as absent.

        Args:
            key: Cache key from :meth:`compute_key`

        Returns:
            CacheEntry, or None on a miss
        """
        try:
            raw = await self.redis.get(key)
        except RedisError as e:
            logger.warning(f"⚠️  Cache read error for {key}: {e}")
            return None

        if not raw:
            return None

        entry = self._parse_entry(raw)
        if entry is None:
            await self._remove(key)
            return None

        if entry.version != self.config.version:
            logger.info(
                f"Cache entry {key} has version {entry.version}, "
                f"expected {self.config.version}, removing..."
            )
            await self._remove(key)
            return None

        if self._is_expired(entry):
            logger.info(f"Cache expired for {key}, removing...")
            await self._remove(key)
            return None

        logger.info(f"✅ Cache hit: {key} ({entry.count} items)")
        return entry

    async def _write(self, key: str, entry: CacheEntry) -> None:
        ttl_seconds = self.config.expiry_window_ms // 1000
        await self.redis.set(key, entry.model_dump_json(), ttl_seconds=ttl_seconds)

    async def put(self, key: str, translations: Mapping[int, str]) -> bool:
        """
        Store a translation map under ``key``.

        When Redis is out of memory, expired and stale entries are purged and
        the write is retried once; a second failure drops the entry.

        Args:
            key: Cache key from :meth:`compute_key`
            translations: Mapping of cue index to translated text

        Returns:
            True if the entry was written, False if it was dropped
        """
        if not self.redis.available:
            logger.debug(f"Redis unavailable, not caching {key}")
            return False

        entry = CacheEntry(
            translations=dict(translations),
            version=self.config.version,
            count=len(translations),
        )

        try:
            await self._write(key, entry)
        except RedisError as e:
            if not is_capacity_error(e):
                logger.warning(f"⚠️  Failed to save cache {key}: {e}")
                return False

            logger.warning(f"⚠️  Cache storage full, cleaning up old entries: {e}")
            await self.cleanup_expired()
            try:
                await self._write(key, entry)
            except RedisError as retry_error:
                logger.warning(
                    f"⚠️  Dropping cache write for {key} after cleanup: {retry_error}"
                )
                return False

        logger.info(f"💾 Saved to cache: {key} ({entry.count} items)")
        return True

    async def cleanup_expired(self) -> int:
        """
        Remove expired, version-mismatched and malformed entries under the key prefix.

        Returns:
            Number of entries removed
        """
        removed_count = 0
        now_ms = DateTimeUtils.get_current_timestamp_ms()

        try:
            keys = await self.redis.keys_with_prefix(self.config.key_prefix)
            for key in keys:
                raw = await self.redis.get(key)
                if raw is None:
                    continue
                entry = self._parse_entry(raw)
                if (
                    entry is None
                    or entry.version != self.config.version
                    or self._is_expired(entry, now_ms)
                ):
                    removed_count += await self.redis.delete(key)
        except RedisError as e:
            logger.error(f"❌ Cache cleanup failed: {e}")

        if removed_count > 0:
            logger.info(f"Cleaned up {removed_count} old cache entries")
        return removed_count

    async def clear_all(self) -> int:
        """
        Remove every entry under the key prefix.

        Returns:
            Number of entries removed
        """
        try:
            keys = await self.redis.keys_with_prefix(self.config.key_prefix)
            removed_count = await self.redis.delete(*keys)
        except RedisError as e:
            logger.error(f"❌ Failed to clear cache: {e}")
            return 0

        logger.info(f"Cleared {removed_count} cache entries")
        return removed_count

