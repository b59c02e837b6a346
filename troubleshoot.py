#!/usr/bin/env python3
"""
Troubleshooting script to verify Redis, the rate store and the price API.
"""

import asyncio
import os

import httpx
import redis

from config import settings

API_URL = os.getenv("API_URL", f"http://localhost:{settings.API_PORT}")

REFERENCE_QUERY = {
    "brandId": 1,
    "productId": 35455,
    "dateQuery": "2020-06-14T16:00:00Z",
}


async def test_redis_connection():
    """Test Redis connection"""
    try:
        client = redis.from_url(settings.REDIS_URL, decode_responses=True)
        client.ping()
        info = client.info("server")
        print(f"✅ Redis connection ({settings.REDIS_URL}): SUCCESS - version {info['redis_version']}")
        return True
    except Exception as e:
        print(f"❌ Redis connection ({settings.REDIS_URL}): FAILED - {e}")
    return False


async def test_api_health():
    """Test API health endpoint and rate store status"""
    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(f"{API_URL}/health")
            if response.status_code == 200:
                store = response.json()["components"]["rate_store"]
                print("✅ API Health Check: SUCCESS")
                print(f"   Rate store: {store['status']} ({store['rates']} rates)")
                return store["status"] == "healthy"
            print(f"❌ API Health Check: FAILED - Status {response.status_code}")
    except Exception as e:
        print(f"❌ API Health Check: FAILED - {e}")
    return False


async def test_price_endpoint():
    """Test the price lookup against the reference dataset"""
    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(
                f"{API_URL}/v1/price/findByBrandProductBetweenDate",
                params=REFERENCE_QUERY
            )
            if response.status_code == 200:
                print("✅ Price Endpoint: SUCCESS")
                print(f"   Response: {response.json()}")
                return True
            print(f"❌ Price Endpoint: FAILED - Status {response.status_code}")
            print(f"   Response: {response.text}")
    except Exception as e:
        print(f"❌ Price Endpoint: FAILED - {e}")
    return False


async def main():
    """Run all checks"""
    print("🔍 Price Manager - Troubleshooting")
    print("=" * 50)

    print("\n1. Testing Redis Connection...")
    redis_ok = await test_redis_connection()

    print("\n2. Testing API Health...")
    api_ok = await test_api_health()

    print("\n3. Testing Price Endpoint...")
    price_ok = await test_price_endpoint()

    print("\n" + "=" * 50)
    if redis_ok and api_ok and price_ok:
        print("🎉 All checks PASSED! Service is working correctly.")
    else:
        print("⚠️  Some checks FAILED. Check the output above.")

    print("\n💡 Quick Fixes:")
    print("   - Redis is optional: lookups still work with CACHE_ENABLED=false")
    print("   - Empty rate store: set SEED_REFERENCE_DATA=true and restart")
    print(f"   - Start the API: uvicorn main:app --port {settings.API_PORT}")


if __name__ == "__main__":
    asyncio.run(main())
