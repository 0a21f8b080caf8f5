"""
GlucoTrack - Redis Caching Service
Caches extraction results for repeated scans of identical text
"""

import logging
import hashlib
from typing import Dict, Optional, Any, Tuple
import redis
from redis import Redis, RedisError

from app.config import settings
from app.schemas import ExtractionResult

logger = logging.getLogger(__name__)


# =============================================================================
# Redis Cache Service
# =============================================================================

class RedisCacheService:
    """Service for caching extraction results"""

    PREFIX = "extraction"

    def __init__(self, client: Optional[Redis] = None, enabled: Optional[bool] = None):
        """Initialize Redis connection, or wrap an existing client"""
        self.enabled = settings.cache_enabled if enabled is None else enabled
        self.default_ttl = settings.cache_ttl
        self.redis_client: Optional[Redis] = client

        if self.redis_client is None and self.enabled:
            self._connect()

    def _connect(self):
        """Establish Redis connection"""
        try:
            self.redis_client = redis.from_url(
                settings.redis_url,
                decode_responses=True,
                socket_connect_timeout=2,
                socket_timeout=2
            )
            self.redis_client.ping()
            logger.info(f"✓ Redis cache connected: {settings.redis_url}")

        except RedisError as e:
            logger.error(f"Redis connection failed: {e}")
            logger.warning("Caching will be disabled")
            self.redis_client = None

    def _is_available(self) -> bool:
        """Check if Redis is available"""
        if not self.enabled or not self.redis_client:
            return False
        try:
            self.redis_client.ping()
            return True
        except RedisError:
            return False

    # =========================================================================
    # Key Generation
    # =========================================================================

    def extraction_key(self, text: str, mode: str, plausible_range: Tuple[float, float]) -> str:
        """Key derived from everything the extraction result depends on"""
        low, high = plausible_range
        digest = hashlib.sha256(f"{mode}|{low}|{high}|{text}".encode("utf-8")).hexdigest()
        return f"{self.PREFIX}:{digest}"

    # =========================================================================
    # Extraction Results Caching
    # =========================================================================

    def cache_extraction(self, key: str, result: ExtractionResult, ttl: Optional[int] = None) -> bool:
        """
        Cache an extraction result

        Args:
            key: Key from extraction_key()
            result: Extraction result
            ttl: Time-to-live in seconds (default from settings)

        Returns:
            True if cached successfully
        """
        if not self._is_available():
            return False

        try:
            self.redis_client.setex(key, ttl or self.default_ttl, result.model_dump_json())
            logger.info(f"✓ Cached {len(result.results)} extracted values")
            return True

        except RedisError as e:
            logger.error(f"Failed to cache extraction: {e}")
            return False

    def get_cached_extraction(self, key: str) -> Optional[ExtractionResult]:
        """Retrieve a cached extraction result, or None on miss"""
        if not self._is_available():
            return None

        try:
            cached = self.redis_client.get(key)
            if not cached:
                logger.debug(f"Cache MISS: {key}")
                return None

            result = ExtractionResult.model_validate_json(cached)
            logger.info(f"✓ Cache HIT: Retrieved {len(result.results)} extracted values")
            return result

        except (RedisError, ValueError) as e:
            logger.error(f"Error retrieving cached extraction: {e}")
            return None

    def clear_extractions(self) -> int:
        """Delete all cached extraction results"""
        if not self._is_available():
            return 0

        try:
            keys = list(self.redis_client.scan_iter(f"{self.PREFIX}:*"))
            if not keys:
                return 0
            deleted = self.redis_client.delete(*keys)
            logger.info(f"Invalidated {deleted} cached extractions")
            return deleted

        except RedisError as e:
            logger.error(f"Failed to clear extraction cache: {e}")
            return 0

    # =========================================================================
    # Health Check
    # =========================================================================

    def health_check(self) -> Dict[str, Any]:
        """Check Redis health"""
        if not self.enabled:
            return {"status": "disabled", "available": False}
        if not self.redis_client:
            return {"status": "disconnected", "available": False}

        try:
            self.redis_client.ping()
            return {"status": "healthy", "available": True}

        except RedisError as e:
            logger.error(f"Redis health check failed: {e}")
            return {"status": "unhealthy", "available": False, "error": str(e)}


# =============================================================================
# Global Cache Instance
# =============================================================================

_cache_service: Optional[RedisCacheService] = None


def get_cache_service() -> RedisCacheService:
    """Get or create cache service instance"""
    global _cache_service
    if _cache_service is None:
        _cache_service = RedisCacheService()
    return _cache_service
