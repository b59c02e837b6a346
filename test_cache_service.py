"""
Tests for the Redis-backed result cache and lookup statistics.
"""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
import redis

from cache_service import STATS_KEY, cache_service, price_cache_key
from config import settings
from models import LookupStats, PriceResponse

QUERY_TIME = datetime(2020, 6, 14, 16, 0, 0)


def _response():
    return PriceResponse(
        id=2,
        brand_id=1,
        product_id=35455,
        price=25.45,
        currency="EUR",
        start_date=datetime(2020, 6, 14, 15, 0, 0, tzinfo=timezone.utc),
        end_date=datetime(2020, 6, 14, 18, 30, 0, tzinfo=timezone.utc),
    )


class TestPriceCache:
    """Test caching of resolved prices"""

    def test_cache_key_uses_utc_instant(self):
        aware = datetime(2020, 6, 14, 16, 0, 0, tzinfo=timezone.utc)
        assert price_cache_key(1, 35455, aware) == price_cache_key(1, 35455, QUERY_TIME)
        assert price_cache_key(1, 35455, QUERY_TIME) == "price:1:35455:2020-06-14T16:00:00"

    @pytest.mark.asyncio
    async def test_cache_miss(self, mock_redis):
        assert await cache_service.get_price(1, 35455, QUERY_TIME) is None
        mock_redis.get.assert_called_once_with("price:1:35455:2020-06-14T16:00:00")

    @pytest.mark.asyncio
    async def test_set_then_get(self, mock_redis):
        await cache_service.set_price(1, 35455, QUERY_TIME, _response())

        key, ttl, payload = mock_redis.setex.call_args.args
        assert key == "price:1:35455:2020-06-14T16:00:00"
        assert ttl == settings.CACHE_TTL_SECONDS

        mock_redis.get.return_value = payload
        cached = await cache_service.get_price(1, 35455, QUERY_TIME)
        assert cached == _response()

    @pytest.mark.asyncio
    async def test_redis_errors_are_misses(self, mock_redis):
        mock_redis.get.side_effect = redis.ConnectionError("connection refused")
        mock_redis.setex.side_effect = redis.ConnectionError("connection refused")

        assert await cache_service.get_price(1, 35455, QUERY_TIME) is None
        await cache_service.set_price(1, 35455, QUERY_TIME, _response())

    @pytest.mark.asyncio
    async def test_disabled_cache_skips_redis(self, mock_redis):
        with patch.object(cache_service, "enabled", False):
            await cache_service.set_price(1, 35455, QUERY_TIME, _response())
            assert await cache_service.get_price(1, 35455, QUERY_TIME) is None
        mock_redis.get.assert_not_called()
        mock_redis.setex.assert_not_called()


class TestLookupStats:
    """Test lookup statistics tracking"""

    @pytest.mark.asyncio
    async def test_defaults_when_nothing_recorded(self):
        stats = await cache_service.get_lookup_stats()
        assert stats == LookupStats()

    @pytest.mark.asyncio
    async def test_record_first_lookup(self, mock_redis):
        await cache_service.record_lookup(found=True, cache_hit=False, latency_ms=12.0)

        key, ttl, payload = mock_redis.setex.call_args.args
        assert key == STATS_KEY
        assert ttl == settings.STATS_TTL_SECONDS
        stats = json.loads(payload)
        assert stats["total_requests"] == 1
        assert stats["found"] == 1
        assert stats["avg_latency_ms"] == 12.0

    @pytest.mark.asyncio
    async def test_record_updates_existing_stats(self, mock_redis):
        mock_redis.get.return_value = LookupStats(
            total_requests=1, found=1, avg_latency_ms=10.0
        ).model_dump_json()

        await cache_service.record_lookup(found=False, cache_hit=False, latency_ms=20.0)

        stats = LookupStats(**json.loads(mock_redis.setex.call_args.args[2]))
        assert stats.total_requests == 2
        assert stats.not_found == 1
        assert stats.avg_latency_ms == 15.0
        assert stats.last_not_found is not None
        assert stats.last_not_found.utcoffset() == timedelta(0)

    @pytest.mark.asyncio
    async def test_cache_hits_are_counted(self, mock_redis):
        await cache_service.record_lookup(found=True, cache_hit=True, latency_ms=1.0)
        stats = json.loads(mock_redis.setex.call_args.args[2])
        assert stats["cache_hits"] == 1

    @pytest.mark.asyncio
    async def test_ping(self, mock_redis):
        assert await cache_service.ping() is True
        mock_redis.ping.side_effect = redis.ConnectionError("down")
        assert await cache_service.ping() is False
