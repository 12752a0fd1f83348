"""Browser Session Storage

One Redis hash per browser session holds the login attempt state, flash
messages and the signed-in user. The session id travels in a cookie.

Storage Schema:
- oauth2:session:{session_id} -> {key: value, ...}  (expires after ttl)
"""

import logging
from typing import Optional, Protocol

from redis.asyncio import Redis

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    """Key/value store scoped to one browser session"""

    async def put(self, key: str, value: str) -> None:
        ...

    async def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        ...

    async def has(self, key: str) -> bool:
        ...

    async def forget(self, key: str) -> None:
        ...


class RedisSessionStore:
    """Session store backed by a Redis hash"""

    key_pattern = "oauth2:session:{}"

    def __init__(self, redis_client: Redis, session_id: str, ttl_seconds: int = 3600):
        """Initialize session store

        Args:
            redis_client: Redis connection
            session_id: Identifier of the browser session (from the session cookie)
            ttl_seconds: Session lifetime, refreshed on every write
        """
        self.redis = redis_client
        self.session_id = session_id
        self.ttl_seconds = ttl_seconds
        self._key = self.key_pattern.format(session_id)

    async def put(self, key: str, value: str) -> None:
        await self.redis.hset(self._key, key, value)
        await self.redis.expire(self._key, self.ttl_seconds)

    async def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = await self.redis.hget(self._key, key)
        if value is None:
            return default
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def has(self, key: str) -> bool:
        return bool(await self.redis.hexists(self._key, key))

    async def forget(self, key: str) -> None:
        await self.redis.hdel(self._key, key)
