"""
Tests for ShippingQuoteService orchestration.
"""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from storefront_api.core.config import Settings
from storefront_api.modules.shipping.assembler import FreeShippingPolicy
from storefront_api.modules.shipping.providers.shipengine import ShipEngineProvider
from storefront_api.modules.shipping.rate_source import RateSource
from storefront_api.modules.shipping.types import FALLBACK_SOURCE, LIVE_SOURCE
from storefront_api.modules.shipping.normalizer import normalize_quote_request
from storefront_api.services.sanity_client import CatalogProduct, SanityCatalogClient
from storefront_api.services.shipping_quote_service import ShippingQuoteService, address_from_destination


def _catalog(products=None) -> MagicMock:
    catalog = MagicMock()
    catalog.fetch_products = AsyncMock(return_value=list(products or []))
    catalog.close = AsyncMock()
    return catalog


def _service(catalog, provider, table, origin, threshold=0.0):
    return ShippingQuoteService(
        catalog=catalog,
        rate_source=RateSource(provider, table, origin, timeout=1.0),
        free_shipping=FreeShippingPolicy(threshold),
    )


@pytest.mark.asyncio
async def test_quote_uses_catalog_and_live_rates(make_provider, live_options, fallback_table, origin_address, sample_quote_payload):
    catalog = _catalog([CatalogProduct(id="p1", sku="FAS-INTAKE-01", shipping_weight=5, box_dimensions="20x10x8")])
    provider = make_provider(options=live_options)
    service = _service(catalog, provider, fallback_table, origin_address)

    result = await service.quote(normalize_quote_request(sample_quote_payload))

    catalog.fetch_products.assert_awaited_once()
    assert set(catalog.fetch_products.await_args.args[0]) == {"FAS-INTAKE-01", "prod-123"}
    assert result.success is True
    assert result.source == LIVE_SOURCE
    assert result.missing == ["prod-123"]
    assert result.subtotal == 288.99
    destination = provider.calls[0][1]
    assert (destination.postal_code, destination.country_code, destination.state_province) == ("10001", "US", "NY")


@pytest.mark.asyncio
async def test_freight_skips_provider(make_provider, live_options, fallback_table, origin_address):
    provider = make_provider(options=live_options)
    service = _service(_catalog(), provider, fallback_table, origin_address)
    request = normalize_quote_request({
        "cart": [{"sku": "ENGINE", "weight": 200}],
        "destination": {"country": "US", "postalCode": "10001"},
    })

    result = await service.quote(request)

    assert result.freight is True
    assert result.options == []
    assert provider.calls == []


@pytest.mark.asyncio
async def test_install_only_cart(make_provider, fallback_table, origin_address):
    catalog = _catalog([CatalogProduct(id="svc", sku="DYNO-TUNE", shipping_class="Install Only")])
    provider = make_provider()
    service = _service(catalog, provider, fallback_table, origin_address)
    request = normalize_quote_request({
        "cart": [{"sku": "DYNO-TUNE"}],
        "destination": {"country": "US", "postalCode": "10001"},
    })

    result = await service.quote(request)

    assert result.install_only is True
    assert result.packages == []
    assert provider.calls == []


@pytest.mark.asyncio
async def test_free_shipping_threshold(make_provider, live_options, fallback_table, origin_address, sample_quote_payload):
    service = _service(_catalog(), make_provider(options=live_options), fallback_table, origin_address, threshold=200)
    result = await service.quote(normalize_quote_request(sample_quote_payload))

    assert result.options[0].rate == 0.0
    assert result.options[0].free_shipping is True


def test_address_from_destination(sample_quote_payload):
    request = normalize_quote_request(sample_quote_payload)
    address = address_from_destination(request.destination)
    assert address.address_line1 == "123 Main Street"
    assert address.city == "New York"


def test_from_settings_wires_provider_and_table():
    settings = Settings(
        ENVIRONMENT="development",
        SHIPPING_RATE_PROVIDER="shipengine",
        SHIPENGINE_API_KEY="k",
        SHIPPING_FREE_THRESHOLD=150,
    )
    service = ShippingQuoteService.from_settings(settings)

    assert isinstance(service.rate_source.provider, ShipEngineProvider)
    assert len(service.rate_source.fallback_table) == 3
    assert service.rate_source.origin.postal_code == settings.SHIPPING_ORIGIN_ZIP
    assert service.free_shipping.threshold == 150
    assert service.packaging.length == 12.0


@pytest.mark.asyncio
async def test_create_loads_cms_fallback_table():
    settings = Settings(ENVIRONMENT="development", SANITY_PROJECT_ID="proj1", SHIPPING_FALLBACK_FROM_CMS=True)
    cms_rates = [{"carrier": "USPS", "service": "Ground Advantage", "amount": 6.5, "perPound": 0.25}]

    with patch.object(SanityCatalogClient, "fetch_fallback_rates", AsyncMock(return_value=cms_rates)):
        service = await ShippingQuoteService.create(settings)

    table = service.rate_source.fallback_table
    assert len(table) == 1
    assert table.quote(2)[0].rate == 7.0
    assert table.quote(2)[0].source == FALLBACK_SOURCE
    await service.close()


@pytest.mark.asyncio
async def test_create_keeps_configured_table_when_cms_empty():
    settings = Settings(ENVIRONMENT="development", SANITY_PROJECT_ID="proj1", SHIPPING_FALLBACK_FROM_CMS=True)

    with patch.object(SanityCatalogClient, "fetch_fallback_rates", AsyncMock(return_value=[])):
        service = await ShippingQuoteService.create(settings)

    assert len(service.rate_source.fallback_table) == 3
    await service.close()
