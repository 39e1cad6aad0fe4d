from __future__ import annotations

from typing import Mapping, Optional

from redis.asyncio import Redis

from phoneauth.domain.ports.volatile_store import VolatileStorePort

_LUA_INCR_WITH_EXPIRY = """
-- KEYS[1]: counter key
-- ARGV[1]: window in seconds
local n = redis.call('INCR', KEYS[1])
if n == 1 then
  redis.call('EXPIRE', KEYS[1], ARGV[1])
end
return n
"""

_LUA_INCREMENT_EXISTING_FIELD = """
-- KEYS[1]: hash key
-- ARGV[1]: field
if redis.call('EXISTS', KEYS[1]) == 0 then
  return false
end
return redis.call('HINCRBY', KEYS[1], ARGV[1], 1)
"""


class RedisVolatileStore(VolatileStorePort):
    def __init__(self, redis: Redis) -> None:
        self._redis = redis

    async def exists(self, key: str) -> bool:
        return bool(await self._redis.exists(key))

    async def incr_with_expiry(self, key: str, window_seconds: int) -> int:
        res = await self._redis.eval(_LUA_INCR_WITH_EXPIRY, 1, key, window_seconds)
        return int(res)

    async def put_hash(
        self, key: str, mapping: Mapping[str, str], ttl_seconds: int
    ) -> None:
        pipe = self._redis.pipeline(transaction=True)
        pipe.delete(key)
        pipe.hset(key, mapping=dict(mapping))
        pipe.expire(key, ttl_seconds)
        await pipe.execute()

    async def get_hash(self, key: str) -> dict[str, str]:
        return await self._redis.hgetall(key)

    async def increment_field(self, key: str, field: str) -> Optional[int]:
        # a missing key comes back from Lua `false` as None
        res = await self._redis.eval(_LUA_INCREMENT_EXISTING_FIELD, 1, key, field)
        if res is None:
            return None
        return int(res)

    async def get(self, key: str) -> Optional[str]:
        return await self._redis.get(key)

    async def put_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        return bool(await self._redis.set(key, value, ex=ttl_seconds, nx=True))

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._redis.set(key, value, ex=ttl_seconds)

    async def take(self, key: str) -> Optional[str]:
        return await self._redis.getdel(key)

    async def delete(self, key: str) -> bool:
        return int(await self._redis.delete(key)) > 0
