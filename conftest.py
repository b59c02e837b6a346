"""
Shared pytest fixtures for the Price Manager test suite.
"""

import os

# Settings are read at import time, so the test environment is set up first
os.environ["DATABASE_PATH"] = ":memory:"
os.environ["SEED_REFERENCE_DATA"] = "true"
os.environ["BACKGROUND_JOBS_ENABLED"] = "false"
os.environ["CACHE_ENABLED"] = "true"
os.environ["RATE_LIMIT"] = "1000/minute"

from datetime import datetime
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from cache_service import cache_service
from models import PriceRate


@pytest.fixture(autouse=True)
def mock_redis():
    """Replace the Redis client so no test needs a running server."""
    client = MagicMock()
    client.get.return_value = None
    client.ping.return_value = True
    with patch.object(cache_service, "redis_client", client):
        yield client


@pytest.fixture
def make_rate():
    """Factory for consistent rates of brand 1 / product 35455 unless overridden."""

    def _make_rate(list_id=1, priority=0, **overrides):
        fields = dict(
            brand_id=1,
            product_id=35455,
            list_id=list_id,
            priority=priority,
            amount=Decimal("35.50"),
            currency="EUR",
            valid_from=datetime(2020, 6, 14, 0, 0, 0),
            valid_to=datetime(2020, 12, 31, 23, 59, 59),
        )
        fields.update(overrides)
        return PriceRate(**fields)

    return _make_rate
