"""Redis cache of redirect records.

The redirect path only needs a link's URL and its stored test columns. They
are cached as JSON under `link:{key}` so most redirects skip the database.
Redis being down is treated as a cache miss; redirects must keep working.
"""
import json
import redis
from datetime import datetime
from functools import lru_cache
from typing import Any, Dict, Optional

from linksplit.config import get_settings
from linksplit.middleware.logging import get_logger
from linksplit.models.link import Link

logger = get_logger()


def redirect_record(link: Link) -> Dict[str, Any]:
    """Fields of a link the redirect path needs."""
    return {
        "url": link.url,
        "tests": link.tests,
        "tests_started_at": link.tests_started_at,
        "tests_complete_at": link.tests_complete_at,
    }


class LinkCache:
    """Redis-backed cache of redirect records."""

    def __init__(
        self,
        redis_client: redis.Redis,
        ttl: int = 3600,
        test_ttl: int = 60,
        enabled: bool = True
    ):
        self.redis = redis_client
        self.ttl = ttl
        self.test_ttl = test_ttl
        self.enabled = enabled

    def _get_key(self, key: str) -> str:
        """Get Redis key for a link."""
        return f"link:{key}"

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the cached record for a link, or None on a miss."""
        if not self.enabled:
            return None
        try:
            raw = self.redis.get(self._get_key(key))
        except redis.RedisError as e:
            logger.warning("link_cache_unavailable", operation="get", key=key, error=str(e))
            return None

        if not raw:
            return None

        try:
            record = json.loads(raw)
            if not isinstance(record, dict) or not isinstance(record.get("url"), str):
                raise ValueError("record has no destination url")
            for field in ("tests_started_at", "tests_complete_at"):
                if record.get(field):
                    record[field] = datetime.fromisoformat(record[field])
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning("link_cache_corrupt", key=key, error=str(e))
            return None

        return record

    def set(self, key: str, record: Dict[str, Any]) -> None:
        """
        Cache a redirect record.

        Records carrying a test expire after `test_ttl`. That bounds how long a
        record read just before a concurrent save can outlive the save.
        """
        if not self.enabled:
            return
        payload = dict(record)
        for field in ("tests_started_at", "tests_complete_at"):
            if payload.get(field):
                payload[field] = payload[field].isoformat()
        ttl = self.test_ttl if record.get("tests") else self.ttl
        try:
            self.redis.set(self._get_key(key), json.dumps(payload), ex=ttl)
        except redis.RedisError as e:
            logger.warning("link_cache_unavailable", operation="set", key=key, error=str(e))

    def invalidate(self, key: str) -> None:
        """Drop a link's record after it changes."""
        if not self.enabled:
            return
        try:
            self.redis.delete(self._get_key(key))
        except redis.RedisError as e:
            logger.warning("link_cache_unavailable", operation="delete", key=key, error=str(e))


@lru_cache()
def get_link_cache() -> LinkCache:
    """Get the shared link cache (FastAPI dependency)."""
    settings = get_settings()
    return LinkCache(
        redis.from_url(settings.redis_url),
        ttl=settings.link_cache_ttl_seconds,
        test_ttl=settings.link_cache_test_ttl_seconds,
        enabled=settings.link_cache_enabled
    )
