"""
Storefront Shipping API
FastAPI application entry point

- POST /api/shipping/quote (+ OPTIONS preflight)
- Rate limiting with SlowAPI
- Error sanitization middleware
- Request size limits
- Request metrics collection (/metrics/json)
- HTTP client lifecycle management
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from storefront_api.api.routes import shipping
from storefront_api.core.config import settings
from storefront_api.core.error_handler import ErrorSanitizationMiddleware
from storefront_api.core.monitoring import RequestMetricsMiddleware, metrics
from storefront_api.core.cors import build_cors_headers
from storefront_api.core.rate_limit import limiter, rate_limit_exceeded_handler
from storefront_api.core.request_utils import extract_client_ip, extract_origin
from storefront_api.services.shipping_quote_service import ShippingQuoteService

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the shared quote service on startup and close its HTTP clients on shutdown."""
    app.state.quote_service = await ShippingQuoteService.create(settings)
    try:
        yield
    finally:
        service = getattr(app.state, "quote_service", None)
        if service is not None:
            await service.close()
            app.state.quote_service = None
        logger.info("Shipping quote service closed")


app = FastAPI(
    lifespan=lifespan,
    title=settings.APP_NAME,
    description="Shipping quotes for storefront carts: live carrier rates with a flat-rate fallback.",
    version=APP_VERSION,
    debug=settings.DEBUG,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests that exceed the size limit."""

    async def dispatch(self, request: Request, call_next):
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > settings.MAX_REQUEST_SIZE:
            logger.warning(
                f"Request size limit exceeded: {content_length} bytes from {extract_client_ip(request)}"
            )
            return JSONResponse(
                status_code=413,
                content={
                    "success": False,
                    "error": f"Request body exceeds maximum size of {settings.MAX_REQUEST_SIZE} bytes",
                },
                headers=build_cors_headers(extract_origin(request)),
            )
        return await call_next(request)


app.add_middleware(RequestSizeLimitMiddleware)

# Request metrics collection
app.add_middleware(RequestMetricsMiddleware)

# Error sanitization (catches unhandled exceptions)
app.add_middleware(ErrorSanitizationMiddleware)

app.include_router(shipping.router, prefix="/api", tags=["Shipping"])


@app.get("/", tags=["Health"])
async def root():
    return {
        "message": settings.APP_NAME,
        "version": APP_VERSION,
        "status": "operational",
    }


@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    """Liveness plus the rate provider and fallback table in use."""
    service = getattr(request.app.state, "quote_service", None)
    provider = None
    fallback_rates = 0
    live_configured = False
    if service is not None:
        provider = service.rate_source.provider_name
        fallback_rates = len(service.rate_source.fallback_table)
        live_configured = bool(service.rate_source.provider and service.rate_source.provider.is_configured)

    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "rate_provider": provider or settings.SHIPPING_RATE_PROVIDER,
        "live_rates_configured": live_configured,
        "fallback_rates": fallback_rates,
        "catalog_configured": bool(settings.SANITY_PROJECT_ID),
    }


@app.get("/metrics/json", tags=["Health"])
async def json_metrics():
    """
    JSON metrics endpoint for dashboards.

    Request latency, provider latency and quote outcome counters.
    """
    return metrics.get_all_metrics()
