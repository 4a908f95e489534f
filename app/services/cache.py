import hashlib
import json
import logging
from typing import Any, Optional

import redis
from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)


def list_cache_key(prefix: str, **filters) -> str:
    """Stable key for a filtered listing, e.g. ``visas:<md5 of filters>``."""
    raw = json.dumps(filters, sort_keys=True, default=str)
    return f"{prefix}:{hashlib.md5(raw.encode()).hexdigest()}"


class RedisCache:
    """
    JSON values in Redis with a default TTL.

    Disabled or unreachable, every call is a no-op (``get`` returns None) so
    callers fall through to the database.
    """

    def __init__(
        self,
        enabled: bool = False,
        host: str = "localhost",
        port: int = 6379,
        password: Optional[str] = None,
        db: int = 0,
        ttl: int = 300,
        client: Optional[redis.Redis] = None,
    ):
        self.enabled = enabled
        self.ttl = ttl
        self._client = client
        self._params = {
            "host": host,
            "port": port,
            "password": password or None,
            "db": db,
            "socket_timeout": 5,
            "socket_connect_timeout": 5,
        }

    @classmethod
    def from_settings(cls, settings) -> "RedisCache":
        return cls(
            enabled=settings.CACHE_ENABLED,
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            password=settings.REDIS_PASSWORD,
            db=settings.REDIS_DB,
            ttl=settings.CACHE_TTL,
        )

    @property
    def available(self) -> bool:
        return self.enabled and self._client is not None

    def connect(self) -> bool:
        if not self.enabled:
            logger.info("Redis cache is disabled")
            return False

        if self._client is None:
            self._client = redis.Redis(**self._params)

        try:
            self._client.ping()
        except redis.RedisError as e:
            logger.warning("Failed to connect to Redis: %s. Cache will be disabled.", e)
            self._client = None
            self.enabled = False
            return False

        logger.info("Redis cache connected successfully")
        return True

    def get(self, key: str) -> Optional[Any]:
        if not self.available:
            return None
        try:
            raw = self._client.get(key)
        except redis.RedisError as e:
            logger.warning("Cache get %s failed: %s", key, e)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Dropping undecodable cache entry %s", key)
            self.delete(key)
            return None

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        if not self.available:
            return
        try:
            self._client.set(key, json.dumps(jsonable_encoder(value)), ex=ttl or self.ttl)
        except redis.RedisError as e:
            logger.warning("Cache set %s failed: %s", key, e)

    def delete(self, key: str) -> None:
        if not self.available:
            return
        try:
            self._client.delete(key)
        except redis.RedisError as e:
            logger.warning("Cache delete %s failed: %s", key, e)

    def delete_pattern(self, pattern: str) -> int:
        if not self.available:
            return 0
        deleted = 0
        try:
            batch = []
            for key in self._client.scan_iter(match=pattern, count=100):
                batch.append(key)
                if len(batch) >= 100:
                    deleted += self._client.delete(*batch)
                    batch = []
            if batch:
                deleted += self._client.delete(*batch)
        except redis.RedisError as e:
            logger.warning("Cache delete pattern %s failed: %s", pattern, e)
        return deleted

    def close(self) -> None:
        if self._client is not None:
            try:
                self._client.close()
            except redis.RedisError as e:
                logger.warning("Error closing Redis client: %s", e)
            self._client = None
