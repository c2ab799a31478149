"""
Redis backend for the response cache.

Same contract as the SQL cache. Keys follow the pattern
`{namespace}:cache:{normalized query}`; substring reads use SCAN MATCH with
the query glob-escaped, so the "first" hit is whatever SCAN yields first.
Expiry, when configured, is delegated to Redis via SET EX.
"""
import re
from typing import Optional

import redis

from allergen_lookup.core.errors import StorageFault
from allergen_lookup.core.types import StructuredAnswer
from allergen_lookup.data.response_cache import decode_answer
from allergen_lookup.matching.query_terms import is_too_short, normalize_cache_key
from allergen_lookup.utils.logger import get_logger

logger = get_logger("data.redis_cache")

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def escape_glob(text: str) -> str:
    """Escape Redis glob metacharacters so text matches literally."""
    return _GLOB_SPECIAL.sub(r"\\\1", text)


class RedisResponseCache:
    """
    Redis response cache client.

    Args:
        client: A redis.Redis instance created with decode_responses=True.
        namespace: Key prefix shared by all cache entries.
        min_query_length: Normalized queries shorter than this are never looked up.
        ttl_seconds: Optional expiry for saved entries; None keeps them forever.
    """

    SCAN_BATCH = 500

    def __init__(
        self,
        client: redis.Redis,
        namespace: str = "allergen",
        min_query_length: int = 2,
        ttl_seconds: Optional[int] = None,
    ):
        self.client = client
        self.namespace = namespace
        self.min_query_length = min_query_length
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisResponseCache":
        client = redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
        return cls(client, **kwargs)

    @property
    def prefix(self) -> str:
        return f"{self.namespace}:cache:"

    def _key(self, normalized: str) -> str:
        """Prefix key with namespace."""
        return f"{self.prefix}{normalized}"

    def ping(self) -> bool:
        """Check if Redis is reachable."""
        try:
            return bool(self.client.ping())
        except redis.RedisError:
            return False

    def find(self, query: str) -> Optional[StructuredAnswer]:
        key = normalize_cache_key(query or "")
        if is_too_short(key, self.min_query_length):
            return None

        pattern = f"{escape_glob(self.prefix)}*{escape_glob(key)}*"
        try:
            for redis_key in self.client.scan_iter(match=pattern, count=self.SCAN_BATCH):
                raw = self.client.get(redis_key)
                if raw is None:
                    continue  # expired between SCAN and GET
                stored_key = redis_key[len(self.prefix):]
                logger.info("Cache hit for '%s' (stored key '%s')", key, stored_key)
                return decode_answer(raw, stored_key)
        except redis.RedisError as e:
            logger.error("Cache read failed for '%s': %s", key, e)
            raise StorageFault(f"Cache read failed: {e}") from e
        return None

    def save(self, query: str, answer: StructuredAnswer) -> None:
        key = normalize_cache_key(query or "")
        if not key:
            logger.warning("Refusing to cache an answer under an empty key")
            return
        try:
            self.client.set(self._key(key), answer.model_dump_json(), ex=self.ttl_seconds)
        except redis.RedisError as e:
            logger.error("Cache write failed for '%s': %s", key, e)
            raise StorageFault(f"Cache write failed: {e}") from e
        logger.info("Cached answer for '%s'", key)

    def delete(self, query: str) -> int:
        key = normalize_cache_key(query or "")
        try:
            removed = int(self.client.delete(self._key(key)))
        except redis.RedisError as e:
            raise StorageFault(f"Cache delete failed: {e}") from e
        logger.info("Cache delete for '%s' removed %d key(s)", key, removed)
        return removed

    def count(self) -> int:
        try:
            return sum(1 for _ in self.client.scan_iter(match=f"{escape_glob(self.prefix)}*", count=self.SCAN_BATCH))
        except redis.RedisError as e:
            raise StorageFault(f"Cache count failed: {e}") from e
