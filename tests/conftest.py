"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path
from typing import List, Optional, Sequence, Set

import fakeredis.aioredis
import pytest
import pytest_asyncio

# Add src directory to Python path for imports
project_root = Path(__file__).parent.parent
src_path = project_root / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from lazy_dubber.common.redis_client import RedisClient  # noqa: E402
from lazy_dubber.common.schemas import CacheConfig, SchedulerConfig  # noqa: E402
from lazy_dubber.common.subtitle_parser import Cue  # noqa: E402
from lazy_dubber.translator.cache_store import TranslationCacheStore  # noqa: E402


class FakeTranslator:
    """
    Stand-in for the remote translation client.

    Prefixes every text with ``RU:`` and records each call. Any batch
    containing a text from ``fail_on`` raises on every attempt.
    """

    def __init__(self, fail_on: Optional[Set[str]] = None):
        self.calls: List[List[str]] = []
        self.fail_on = fail_on or set()

    async def translate_batch(self, texts: Sequence[str]) -> List[str]:
        self.calls.append(list(texts))
        if self.fail_on.intersection(texts):
            raise RuntimeError("remote service unavailable")
        return [f"RU:{text}" for text in texts]


def make_cues(count: int, spacing: float = 1.0, duration: float = 0.8) -> List[Cue]:
    """Build ``count`` cues starting every ``spacing`` seconds."""
    return [
        Cue(
            index=i,
            start_time=i * spacing,
            end_time=i * spacing + duration,
            text=f"Line {i}",
        )
        for i in range(count)
    ]


def make_vtt(cues: Sequence[Cue]) -> str:
    """Render cues as raw WebVTT text (used as cache key input)."""
    from lazy_dubber.common.subtitle_parser import format_vtt_time

    blocks = ["WEBVTT"]
    for cue in cues:
        blocks.append(
            f"{format_vtt_time(cue.start_time)} --> {format_vtt_time(cue.end_time)}\n"
            f"{cue.text}"
        )
    return "\n\n".join(blocks) + "\n"


@pytest_asyncio.fixture
async def fake_redis():
    """
    Fake Redis connection using fakeredis for realistic Redis behavior.

    This provides a real Redis-like interface without requiring a Redis server.
    """
    fake = fakeredis.aioredis.FakeRedis(decode_responses=True, encoding="utf-8")
    yield fake
    await fake.flushall()
    await fake.aclose()


@pytest_asyncio.fixture
async def redis_client(fake_redis):
    """RedisClient wired to fakeredis instead of a real server."""
    client = RedisClient()
    client.client = fake_redis
    client.connected = True
    yield client
    client.connected = False


@pytest.fixture
def cache_config():
    return CacheConfig(key_prefix="translation_", version="v1", expire_days=30)


@pytest.fixture
def cache_store(redis_client, cache_config):
    return TranslationCacheStore(redis_client, cache_config)


@pytest.fixture
def scheduler_config():
    """Scheduler settings with every delay disabled."""
    return SchedulerConfig(
        batch_size=50,
        batch_delay=0,
        max_retries=3,
        retry_delay=0,
        initial_window_minutes=10,
    )


@pytest.fixture
def fake_translator():
    return FakeTranslator()
