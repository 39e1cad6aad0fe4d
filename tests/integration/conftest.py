# tests/integration/conftest.py
import os

import pytest
import pytest_asyncio
from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from phoneauth.infrastructure.redis_cache.store import RedisVolatileStore

TEST_PREFIX = "phoneauth-test:"


@pytest_asyncio.fixture
async def redis_client():
    r = Redis.from_url(
        os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        encoding="utf-8",
        decode_responses=True,
        socket_timeout=2,
        socket_connect_timeout=2,
    )
    try:
        await r.ping()
    except (RedisConnectionError, RedisTimeoutError, OSError):
        await r.aclose()
        pytest.skip("redis is not reachable")
    try:
        yield r
    finally:
        keys = await r.keys(f"*{TEST_PREFIX}*")
        if keys:
            await r.delete(*keys)
        await r.aclose()


@pytest.fixture()
def redis_store(redis_client):
    return RedisVolatileStore(redis_client)
