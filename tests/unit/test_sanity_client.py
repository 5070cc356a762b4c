"""
Tests for the Sanity catalog client.
"""
import json

import httpx
import pytest

from storefront_api.core.exceptions import CatalogError
from storefront_api.services.sanity_client import CatalogProduct, SanityCatalogClient, flatten_products

PRODUCT_DOC = {
    "_id": "p1",
    "title": "Cold Air Intake",
    "sku": "FAS-INTAKE-01",
    "price": 249.99,
    "shippingWeight": 5,
    "boxDimensions": "20x10x8",
    "shippingClass": None,
    "variants": [
        {"_key": "v1", "sku": "FAS-INTAKE-01-RED", "shippingWeight": None},
        {"_key": "v2", "sku": "FAS-INTAKE-01-XL", "shippingWeight": 7, "shipsAlone": True},
    ],
}


def _client(handler, **kwargs) -> SanityCatalogClient:
    return SanityCatalogClient(
        project_id="proj1",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        **kwargs,
    )


def test_variants_inherit_product_fields():
    products = flatten_products([PRODUCT_DOC])

    assert [p.id for p in products] == ["p1", "v1", "v2"]
    red = products[1]
    assert red.sku == "FAS-INTAKE-01-RED"
    assert red.title == "Cold Air Intake"
    assert red.shipping_weight == 5.0
    assert red.box_dimensions == "20x10x8"
    assert red.price == 249.99
    xl = products[2]
    assert xl.shipping_weight == 7.0
    assert xl.ships_alone is True


def test_from_document_ignores_bad_numbers():
    product = CatalogProduct.from_document({"_id": "p", "shippingWeight": "heavy", "price": "n/a"})
    assert product.shipping_weight is None
    assert product.price is None


def test_from_document_ignores_non_finite_numbers():
    product = CatalogProduct.from_document({"_id": "p", "shippingWeight": "inf", "price": "1e309"})
    assert product.shipping_weight is None
    assert product.price is None


def test_query_url_uses_cdn_without_token():
    assert SanityCatalogClient("proj1").query_url == "https://proj1.apicdn.sanity.io/v2023-06-07/data/query/production"
    assert SanityCatalogClient("proj1", token="t", api_version="v2021-10-21").query_url == (
        "https://proj1.api.sanity.io/v2021-10-21/data/query/production"
    )


@pytest.mark.asyncio
async def test_fetch_products():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["host"] = request.url.host
        seen["ids"] = json.loads(request.url.params["$ids"])
        seen["query"] = request.url.params["query"]
        return httpx.Response(200, json={"result": [PRODUCT_DOC]})

    client = _client(handler)
    products = await client.fetch_products(["FAS-INTAKE-01", "prod-123", "FAS-INTAKE-01", None])
    await client.close()

    assert seen["host"] == "proj1.apicdn.sanity.io"
    assert seen["ids"] == ["FAS-INTAKE-01", "prod-123"]
    assert '_type == "product"' in seen["query"]
    assert len(products) == 3


@pytest.mark.asyncio
async def test_fetch_products_swallows_cms_errors():
    client = _client(lambda request: httpx.Response(500, text="boom"))
    assert await client.fetch_products(["A"]) == []


@pytest.mark.asyncio
async def test_fetch_products_unconfigured_makes_no_request():
    def handler(request):
        raise AssertionError("no request expected")

    client = SanityCatalogClient(
        project_id="",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    assert client.is_configured is False
    assert await client.fetch_products(["A"]) == []


@pytest.mark.asyncio
async def test_query_raises_catalog_error():
    client = _client(lambda request: httpx.Response(403, json={"error": "forbidden"}))
    with pytest.raises(CatalogError) as exc:
        await client.query("*[_type == 'product']")
    assert exc.value.details["status"] == 403


@pytest.mark.asyncio
async def test_fetch_fallback_rates():
    rates = [{"carrier": "USPS", "service": "Ground Advantage", "amount": 8.5, "perPound": 0.4}]
    client = _client(lambda request: httpx.Response(200, json={"result": rates + ["junk"]}))
    assert await client.fetch_fallback_rates() == rates
