"""Redis-backed account number allocator."""

from __future__ import annotations

from typing import Final

from redis import Redis
from redis.exceptions import RedisError, ResponseError

from .domain.errors import AllocationFailure


class RedisAccountNumberAllocator:
    """Distributed counter implemented with a single Redis ``INCRBY`` key."""

    _LUA_SCRIPT: Final[str] = """
    local key = KEYS[1]
    local floor = tonumber(ARGV[1])
    local step = tonumber(ARGV[2])

    if redis.call('EXISTS', key) == 0 then
        redis.call('SET', key, floor - step)
    end
    return redis.call('INCRBY', key, step)
    """

    def __init__(
        self,
        client: Redis,
        *,
        floor: int = 1001,
        step: int = 1,
        key: str = "identity_counters:Customer:account_number",
    ) -> None:
        """Initialise the Redis client, sequence parameters, and Lua script cache."""
        if floor < 0:
            raise ValueError("account number floor must not be negative")
        if step < 1:
            raise ValueError("account number step must be at least 1")
        self._client = client
        self._floor = floor
        self._step = step
        self._key = key
        self._script = client.register_script(self._LUA_SCRIPT)

    def next(self) -> int:
        """Return the next account number, initialising the counter at the floor."""
        try:
            try:
                result = self._script(keys=[self._key], args=[self._floor, self._step])
                return int(result)
            except ResponseError as exc:
                message = str(exc).lower()
                if "unknown command" in message and "eval" in message:
                    return self._next_fallback()
                raise
        except RedisError as exc:
            raise AllocationFailure() from exc

    def _next_fallback(self) -> int:
        """Scripting-free variant; ``SET NX`` seeds the counter exactly once."""
        self._client.set(self._key, self._floor - self._step, nx=True)
        return int(self._client.incrby(self._key, self._step))
