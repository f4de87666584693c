"""
Parse cache for dephistory.

Uses diskcache for SQLite-based persistent caching. Manifests rarely change
between neighbouring commits, so parse results are keyed by content rather
than by path or sha.
"""

import hashlib
from typing import Optional

from diskcache import Cache

from .logging_config import get_logger
from .manifests.base import ParseResult

logger = get_logger(__name__)


class ParseCache:
    """
    SQLite-based cache of manifest parse results.

    Features:
    - Content-addressed keys (parser name, include-test flag, file bytes)
    - TTL-based expiration
    - Thread-safe operations; failures degrade to a cache miss
    """

    def __init__(
        self,
        cache_dir: str = ".dephistory-cache",
        ttl_hours: int = 168,
        enabled: bool = True,
    ):
        """
        Initialize cache.

        Args:
            cache_dir: Directory for cache storage
            ttl_hours: Time-to-live in hours
            enabled: Whether caching is enabled
        """
        self.enabled = enabled
        self.ttl_seconds = ttl_hours * 3600

        if self.enabled:
            self.cache: Optional[Cache] = Cache(cache_dir)
            logger.debug(f"Parse cache initialized at {cache_dir} with TTL={ttl_hours}h")
        else:
            self.cache = None
            logger.debug("Parse cache disabled")

    @staticmethod
    def key(
        parser_name: str, include_test: bool, data: bytes, companion: Optional[bytes] = None
    ) -> str:
        digest = hashlib.sha256()
        digest.update(parser_name.encode())
        digest.update(b"\0test=1\0" if include_test else b"\0test=0\0")
        digest.update(data)
        if companion is not None:
            digest.update(b"\0companion\0")
            digest.update(companion)
        return digest.hexdigest()

    def get(self, key: str) -> Optional[ParseResult]:
        """Cached result or None if not found/expired."""
        if not self.enabled or self.cache is None:
            return None

        try:
            doc = self.cache.get(key)
        except Exception as e:
            logger.warning(f"Cache get failed: {e}")
            return None
        if doc is None:
            return None
        logger.debug(f"Cache hit: {key[:16]}...")
        return ParseResult.from_document(doc)

    def set(self, key: str, result: ParseResult) -> None:
        if not self.enabled or self.cache is None:
            return

        try:
            self.cache.set(key, result.to_document(), expire=self.ttl_seconds or None)
            logger.debug(f"Cache set: {key[:16]}...")
        except Exception as e:
            logger.warning(f"Cache set failed: {e}")

    def clear(self) -> None:
        """Clear all cache entries."""
        if not self.enabled or self.cache is None:
            return

        try:
            self.cache.clear()
            logger.info("Cache cleared")
        except Exception as e:
            logger.warning(f"Cache clear failed: {e}")

    def stats(self) -> dict:
        if not self.enabled or self.cache is None:
            return {"enabled": False}

        try:
            return {
                "enabled": True,
                "size": len(self.cache),
                "directory": self.cache.directory,
                "volume": self.cache.volume(),
            }
        except Exception as e:
            logger.warning(f"Cache stats failed: {e}")
            return {"enabled": True, "error": str(e)}

    def close(self) -> None:
        if self.cache is not None:
            self.cache.close()
