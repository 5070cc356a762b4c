"""
Rate Limiting Configuration

Uses SlowAPI for in-memory rate limiting. Configurable via environment
variables; the quote endpoint has its own stricter limit.
"""
import logging
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from starlette.requests import Request
from starlette.responses import JSONResponse

from storefront_api.core.config import settings
from storefront_api.core.cors import build_cors_headers
from storefront_api.core.request_utils import extract_client_ip, extract_origin

logger = logging.getLogger(__name__)


def get_client_ip(request: Request) -> str:
    """Client IP for rate-limit keys, honouring X-Forwarded-For."""
    return extract_client_ip(request) or get_remote_address(request)


limiter = Limiter(
    key_func=get_client_ip,
    enabled=settings.RATE_LIMIT_ENABLED,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    Custom handler for rate limit exceeded errors.
    Returns the quote envelope shape with a retry-after header and the
    storefront CORS headers.
    """
    logger.warning(
        f"Rate limit exceeded: {get_client_ip(request)} on {request.url.path}"
    )

    retry_after = exc.detail.split("per")[0].strip() if exc.detail else "1 minute"

    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "error": f"Too many requests. Please try again in {retry_after}.",
        },
        headers={"Retry-After": "60", **build_cors_headers(extract_origin(request))},
    )
