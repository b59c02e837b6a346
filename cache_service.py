"""
Redis cache service for price lookup results and lookup statistics.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Optional

import redis

from config import settings
from models import LookupStats, PriceResponse, to_naive_utc

logger = logging.getLogger("price_manager.cache")

STATS_KEY = "stats:lookups"


def price_cache_key(brand_id: int, product_id: int, query_time: datetime) -> str:
    return f"price:{brand_id}:{product_id}:{to_naive_utc(query_time).isoformat()}"


class CacheService:
    """Redis-based caching service with TTL and lookup tracking"""

    def __init__(self):
        """Initialize Redis connection"""
        self.redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)
        self.enabled = settings.CACHE_ENABLED

    async def get_price(self, brand_id: int, product_id: int, query_time: datetime) -> Optional[PriceResponse]:
        """Retrieve a cached lookup result"""
        if not self.enabled:
            return None
        key = price_cache_key(brand_id, product_id, query_time)
        try:
            cached_data = self.redis_client.get(key)
            if cached_data:
                return PriceResponse.model_validate_json(cached_data)
        except Exception as e:
            logger.warning("Cache get error for %s: %s", key, e)
        return None

    async def set_price(
        self, brand_id: int, product_id: int, query_time: datetime, price: PriceResponse
    ) -> None:
        """Cache a lookup result with TTL"""
        if not self.enabled:
            return
        key = price_cache_key(brand_id, product_id, query_time)
        try:
            self.redis_client.setex(key, settings.CACHE_TTL_SECONDS, price.model_dump_json())
        except Exception as e:
            logger.warning("Cache set error for %s: %s", key, e)

    async def get_lookup_stats(self) -> LookupStats:
        """Get price lookup statistics"""
        try:
            cached_data = self.redis_client.get(STATS_KEY)
            if cached_data:
                return LookupStats(**json.loads(cached_data))
        except Exception as e:
            logger.warning("Lookup stats get error: %s", e)
        return LookupStats()

    async def record_lookup(self, found: bool, cache_hit: bool, latency_ms: float) -> None:
        """Update price lookup statistics"""
        try:
            stats = await self.get_lookup_stats()
            stats.total_requests += 1

            if found:
                stats.found += 1
            else:
                stats.not_found += 1
                stats.last_not_found = datetime.now(timezone.utc)
            if cache_hit:
                stats.cache_hits += 1

            # Update average latency (simple moving average)
            if stats.total_requests == 1:
                stats.avg_latency_ms = latency_ms
            else:
                stats.avg_latency_ms = (
                    stats.avg_latency_ms * (stats.total_requests - 1) + latency_ms
                ) / stats.total_requests

            self.redis_client.setex(STATS_KEY, settings.STATS_TTL_SECONDS, stats.model_dump_json())
        except Exception as e:
            logger.warning("Lookup stats update error: %s", e)

    async def ping(self) -> bool:
        try:
            return bool(self.redis_client.ping())
        except Exception:
            return False


# Global cache service instance
cache_service = CacheService()
