"""
Shipping Quote API Routes

POST /api/shipping/quote computes shipping options for a storefront cart.
OPTIONS answers the CORS preflight with 204.

Response envelope:
- 200 {success: true, options, recommended, ...}
- 400 {success: false, error} for invalid input
- 500 {success: false, error} when no rates are available at all
- 500 {error} for anything unexpected (details are logged, never returned)
"""
import logging
import time

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from storefront_api.api.deps import get_quote_service
from storefront_api.core.config import settings
from storefront_api.core.cors import build_cors_headers
from storefront_api.core.exceptions import ShippingValidationError, UpstreamError
from storefront_api.core.monitoring import metrics
from storefront_api.core.rate_limit import limiter
from storefront_api.core.request_utils import extract_origin
from storefront_api.modules.shipping.normalizer import normalize_quote_request, parse_json_body
from storefront_api.services.shipping_quote_service import ShippingQuoteService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/shipping", tags=["shipping"])

GENERIC_QUOTE_ERROR = "Unable to compute shipping quote"


@router.options("/quote", include_in_schema=False)
async def quote_preflight(request: Request) -> Response:
    """CORS preflight."""
    headers = build_cors_headers(extract_origin(request), preflight=True)
    return Response(status_code=204, headers=headers)


@router.post("/quote")
@limiter.limit(settings.RATE_LIMIT_QUOTE)
async def quote_shipping(
    request: Request,
    service: ShippingQuoteService = Depends(get_quote_service),
) -> JSONResponse:
    """
    Quote shipping for a cart.

    The body is parsed here rather than by a FastAPI body parameter so
    malformed input is reported as 400 in the quote envelope instead of 422.
    """
    cors_headers = build_cors_headers(extract_origin(request))
    started = time.perf_counter()

    try:
        payload = parse_json_body(await request.body())
        quote_request = normalize_quote_request(payload)
        result = await service.quote(quote_request)
        response = JSONResponse(status_code=200, content=result.to_dict(), headers=cors_headers)
    except ShippingValidationError as e:
        metrics.increment("shipping_quote_failures_total", labels={"reason": "validation"})
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": e.message},
            headers=cors_headers,
        )
    except UpstreamError as e:
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": e.message},
            headers=cors_headers,
        )
    except Exception as e:
        logger.error(f"Shipping quote failed: {type(e).__name__}: {e}", exc_info=True)
        metrics.increment("shipping_quote_failures_total", labels={"reason": "internal"})
        return JSONResponse(
            status_code=500,
            content={"error": GENERIC_QUOTE_ERROR},
            headers=cors_headers,
        )

    if result.freight:
        metrics.increment("shipping_quotes_total", labels={"source": "freight"})
    elif result.install_only and not result.options:
        metrics.increment("shipping_quotes_total", labels={"source": "install_only"})

    logger.info(
        f"Shipping quote: {len(result.options)} option(s), source={result.source}, "
        f"freight={result.freight}, missing={len(result.missing)}, "
        f"{(time.perf_counter() - started) * 1000:.0f}ms"
    )
    return response
