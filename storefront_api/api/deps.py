"""
API dependencies
"""
import logging

from fastapi import Request

from storefront_api.core.config import settings
from storefront_api.services.shipping_quote_service import ShippingQuoteService

logger = logging.getLogger(__name__)


def get_quote_service(request: Request) -> ShippingQuoteService:
    """
    Shared quote service from app state.

    Built in the lifespan handler; created lazily here when the app runs
    without lifespan (e.g. a TestClient used outside a `with` block).
    """
    service = getattr(request.app.state, "quote_service", None)
    if service is None:
        logger.info("Quote service not initialised by lifespan; building from settings")
        service = ShippingQuoteService.from_settings(settings)
        request.app.state.quote_service = service
    return service
