import json
import logging
from typing import Any, Optional

import redis

from learnhub.core.config import Settings

logger = logging.getLogger(__name__)


def create_redis_client(settings: Settings) -> Optional[redis.Redis]:
    if not settings.cache_enabled:
        return None
    # Connection is lazy; an unreachable server only surfaces on first use
    return redis.Redis.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_connect_timeout=1,
        socket_timeout=1,
    )


class CatalogCache:
    """
    Read-through cache for public catalog pages.

    Never stores anything user specific (purchase state, access decisions).
    Every redis failure is logged and treated as a miss.
    """

    prefix = "catalog:"

    def __init__(self, client: Optional[redis.Redis], ttl: int = 300):
        self.client = client
        self.ttl = ttl

    def get(self, key: str) -> Optional[Any]:
        if self.client is None:
            return None
        try:
            raw = self.client.get(self.prefix + key)
        except redis.RedisError as e:
            logger.warning(f"Catalog cache read failed: {e}")
            return None
        return json.loads(raw) if raw else None

    def set(self, key: str, value: Any) -> None:
        if self.client is None:
            return
        try:
            self.client.setex(self.prefix + key, self.ttl, json.dumps(value))
        except redis.RedisError as e:
            logger.warning(f"Catalog cache write failed: {e}")

    def invalidate(self) -> None:
        if self.client is None:
            return
        try:
            keys = list(self.client.scan_iter(match=self.prefix + "*"))
            if keys:
                self.client.delete(*keys)
        except redis.RedisError as e:
            logger.warning(f"Catalog cache invalidation failed: {e}")
