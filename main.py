"""
Main FastAPI application for the Price Manager service.
Resolves the applicable price of a brand's product at a given instant.
"""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from background_jobs import background_job_service
from cache_service import cache_service
from config import settings
from exceptions import PriceManagerError, PriceNotFoundError
from logging_config import setup_logging
from models import ErrorResponse, PriceResponse
from price_repository import REFERENCE_PRICES, price_repository
from price_service import price_service

logger = logging.getLogger("price_manager.api")

# Rate limiter setup
limiter = Limiter(key_func=get_remote_address)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown tasks"""
    # Startup
    setup_logging()
    logger.info("Starting Price Manager service...")
    if settings.SEED_REFERENCE_DATA:
        price_repository.seed_all(REFERENCE_PRICES)
    if settings.BACKGROUND_JOBS_ENABLED:
        background_job_service.start()
    yield
    # Shutdown
    logger.info("Shutting down service...")
    background_job_service.stop()


app = FastAPI(
    title="Price Manager",
    description="""
    Resolves the final price of a brand's product at a point in time.

    ## Rules
    - Only rates whose validity window contains the requested instant apply (bounds inclusive)
    - Among those, the highest **priority** wins
    - On equal priority, the highest **price list** wins

    ## Features
    - **Caching**: Redis-based caching of resolved prices
    - **Rate Limiting**: per client address
    - **Background Jobs**: periodic lookup statistics logging
    """,
    version="1.0.0",
    lifespan=lifespan
)

app.state.limiter = limiter


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    body = ErrorResponse.now(code, message)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s", request.url.path, exc_info=exc)
    return _error_response(500, "INTERNAL_SERVER_ERROR", f"An unexpected error occurred: {exc}")


@app.exception_handler(RateLimitExceeded)
async def rate_limit_error_handler(request: Request, exc: RateLimitExceeded):
    return _error_response(429, "RATE_LIMIT_EXCEEDED", f"Rate limit exceeded: {exc.detail}")


@app.exception_handler(PriceManagerError)
async def price_manager_error_handler(request: Request, exc: PriceManagerError):
    return _error_response(exc.status_code, exc.code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    error = errors[0] if errors else {}
    loc = error.get("loc") or ("request",)
    return _error_response(
        400,
        "INVALID_PARAMETER",
        f"Parameter '{loc[-1]}' must be valid: {error.get('msg', 'invalid value')}"
    )


@app.get("/", tags=["Health"])
async def root():
    """Health check endpoint"""
    return {
        "service": "Price Manager",
        "status": "healthy",
        "version": "1.0.0"
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check with service status"""
    try:
        rate_count = await run_in_threadpool(price_repository.count)
        store_status = "healthy"
    except Exception:
        logger.exception("Rate store health check failed")
        rate_count = None
        store_status = "unhealthy"

    redis_status = "healthy" if await cache_service.ping() else "unhealthy"

    return {
        "status": "healthy" if store_status == "healthy" else "degraded",
        "components": {
            "rate_store": {"status": store_status, "rates": rate_count},
            "redis": redis_status
        }
    }


@app.get(
    "/v1/price/findByBrandProductBetweenDate",
    response_model=PriceResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    tags=["Prices"]
)
@limiter.limit(lambda: settings.RATE_LIMIT)
async def find_by_brand_product_between_date(
    request: Request,
    brand_id: int = Query(..., alias="brandId", gt=0, description="Brand identifier"),
    product_id: int = Query(..., alias="productId", gt=0, description="Product identifier"),
    date_query: datetime = Query(..., alias="dateQuery", description="Instant to price, ISO-8601"),
):
    """
    Get the price that applies to a brand's product at the given instant.

    1. Attempts to serve from cache first
    2. Fetches the rates valid at the instant
    3. Selects the highest priority rate, then the highest price list

    Returns 404 with code PRICE_NOT_FOUND when no rate applies.
    """
    start_time = time.time()

    cached_result = await cache_service.get_price(brand_id, product_id, date_query)
    if cached_result:
        await cache_service.record_lookup(True, True, (time.time() - start_time) * 1000)
        return cached_result

    # SQLite access is blocking; keep it off the event loop
    rate = await run_in_threadpool(price_service.select_best_price, brand_id, product_id, date_query)

    latency_ms = (time.time() - start_time) * 1000
    if rate is None:
        await cache_service.record_lookup(False, False, latency_ms)
        raise PriceNotFoundError("No price found for the given parameters")

    result = PriceResponse.from_rate(rate)
    await cache_service.set_price(brand_id, product_id, date_query, result)
    await cache_service.record_lookup(True, False, latency_ms)
    return result


@app.get("/admin/lookup-stats", tags=["Admin"])
async def get_lookup_stats():
    """
    Get price lookup statistics (Admin endpoint).

    Returns request volume, found/not-found counts, cache hits and average latency.
    """
    stats = await cache_service.get_lookup_stats()

    found_rate = 0.0
    if stats.total_requests > 0:
        found_rate = (stats.found / stats.total_requests) * 100

    return {
        "lookup_stats": {
            "total_requests": stats.total_requests,
            "found": stats.found,
            "not_found": stats.not_found,
            "found_rate_percent": round(found_rate, 2),
            "cache_hits": stats.cache_hits,
            "avg_latency_ms": round(stats.avg_latency_ms, 2),
            "last_not_found": stats.last_not_found.isoformat() if stats.last_not_found else None
        }
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT)
