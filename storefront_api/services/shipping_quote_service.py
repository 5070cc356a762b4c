"""
Shipping Quote Service

Orchestrates a quote:
1. Look up CMS shipping metadata for the cart identifiers
2. Plan packages (freight / install-only short-circuit here)
3. Rate the plan (live provider, else fallback table)
4. Apply free shipping and pick the recommended option
"""
import logging
from typing import Optional

from storefront_api.modules.shipping.assembler import (
    FreeShippingPolicy,
    assemble_quote,
    freight_quote,
    install_only_quote,
)
from storefront_api.modules.shipping.fallback import FallbackRateTable
from storefront_api.modules.shipping.packaging import PackagingDefaults, plan_packages
from storefront_api.modules.shipping.providers import RateProviderFactory
from storefront_api.modules.shipping.rate_source import RateSource
from storefront_api.modules.shipping.types import AddressInput, QuoteResult
from storefront_api.schemas.shipping import Destination, QuoteRequest
from storefront_api.services.sanity_client import SanityCatalogClient

logger = logging.getLogger(__name__)


def address_from_destination(destination: Destination) -> AddressInput:
    return AddressInput(
        postal_code=destination.postal_code,
        country_code=destination.country,
        city=destination.city,
        state_province=destination.state,
        address_line1=destination.address_line1,
        address_line2=destination.address_line2,
        name=destination.name,
        phone=destination.phone,
    )


def origin_from_settings(settings) -> AddressInput:
    origin = settings.origin_address
    return AddressInput(
        postal_code=origin["postal_code"],
        country_code=origin["country"],
        city=origin["city"],
        state_province=origin["state"],
        address_line1=origin["address_line1"],
        name=origin["name"],
        phone=origin["phone"],
    )


class ShippingQuoteService:
    """Stateless quote pipeline; one instance is shared by all requests."""

    def __init__(
        self,
        catalog: SanityCatalogClient,
        rate_source: RateSource,
        packaging: Optional[PackagingDefaults] = None,
        free_shipping: Optional[FreeShippingPolicy] = None,
    ):
        self.catalog = catalog
        self.rate_source = rate_source
        self.packaging = packaging or PackagingDefaults()
        self.free_shipping = free_shipping or FreeShippingPolicy()

    @classmethod
    def from_settings(cls, settings, fallback_table: Optional[FallbackRateTable] = None) -> "ShippingQuoteService":
        """Build the service from settings; the fallback table defaults to SHIPPING_FALLBACK_RATES."""
        if fallback_table is None:
            fallback_table = FallbackRateTable.from_config(settings.SHIPPING_FALLBACK_RATES)

        rate_source = RateSource(
            provider=RateProviderFactory.create(settings.SHIPPING_RATE_PROVIDER, settings),
            fallback_table=fallback_table,
            origin=origin_from_settings(settings),
            timeout=settings.SHIPPING_RATE_TIMEOUT_SECONDS,
        )
        return cls(
            catalog=SanityCatalogClient.from_settings(settings),
            rate_source=rate_source,
            packaging=PackagingDefaults.from_settings(settings),
            free_shipping=FreeShippingPolicy(settings.SHIPPING_FREE_THRESHOLD),
        )

    @classmethod
    async def create(cls, settings) -> "ShippingQuoteService":
        """
        Build the service, loading the fallback table from the CMS when
        SHIPPING_FALLBACK_FROM_CMS is set. An empty CMS table falls back to
        the configured one.
        """
        fallback_table = None
        if settings.SHIPPING_FALLBACK_FROM_CMS:
            catalog = SanityCatalogClient.from_settings(settings)
            try:
                fallback_table = FallbackRateTable.from_config(await catalog.fetch_fallback_rates())
            finally:
                await catalog.close()
            if fallback_table:
                logger.info(f"Loaded {len(fallback_table)} fallback rate(s) from CMS")
            else:
                logger.warning("CMS fallback rate table is empty; using SHIPPING_FALLBACK_RATES")
                fallback_table = None

        service = cls.from_settings(settings, fallback_table=fallback_table)
        logger.info(
            f"Shipping quote service ready: provider={service.rate_source.provider_name}, "
            f"fallback_rates={len(service.rate_source.fallback_table)}"
        )
        return service

    async def quote(self, request: QuoteRequest) -> QuoteResult:
        """
        Compute a quote for a validated request.

        Raises:
            UpstreamError: live rates unavailable and no fallback table
        """
        identifiers = {i for item in request.cart for i in (item.sku, item.id) if i}
        products = await self.catalog.fetch_products(identifiers)
        plan = plan_packages(request.cart, products, self.packaging)

        if plan.install_only and not plan.packages:
            return install_only_quote(plan)
        if plan.freight:
            return freight_quote(plan)

        destination = address_from_destination(request.destination)
        lookup = await self.rate_source.get_options(destination, plan)
        return assemble_quote(lookup, plan, self.free_shipping)

    async def close(self):
        await self.catalog.close()
        await self.rate_source.close()
