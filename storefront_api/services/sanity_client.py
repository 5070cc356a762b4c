"""
Sanity CMS client for product shipping metadata.

Reads product documents (and their variants) through Sanity's HTTP query
API using GROQ. The quote path never writes to the CMS.

Failures are non-fatal for quoting: fetch_products() logs and returns an
empty list so every cart line is packed with default dimensions.
"""
import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

import httpx

from storefront_api.core.exceptions import CatalogError

logger = logging.getLogger(__name__)

PRODUCT_SHIPPING_QUERY = """*[_type == "product" && (
  _id in $ids || sku in $ids ||
  count(variants[@._id in $ids || @._key in $ids || @.sku in $ids]) > 0
)]{
  _id, title, sku, price, shippingWeight, boxDimensions, shipsAlone, shippingClass,
  variants[]{ _id, _key, title, sku, price, shippingWeight, boxDimensions, shipsAlone, shippingClass }
}"""

FALLBACK_RATES_QUERY = """*[_type == "shippingRate" && active != false] | order(amount asc){
  carrier, service, amount, perPound, estimatedDays, currency
}"""


def _to_float(value: Any) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


@dataclass(frozen=True)
class CatalogProduct:
    """Shipping-relevant fields of a product or product variant."""
    id: str
    sku: Optional[str] = None
    title: Optional[str] = None
    price: Optional[float] = None
    shipping_weight: Optional[float] = None
    box_dimensions: Optional[str] = None
    ships_alone: bool = False
    shipping_class: Optional[str] = None

    @classmethod
    def from_document(cls, doc: Dict[str, Any], parent: Optional["CatalogProduct"] = None) -> "CatalogProduct":
        """Build from a Sanity document; variants inherit unset fields from the parent."""
        def pick(key: str, parent_value):
            value = doc.get(key)
            return value if value not in (None, "") else parent_value

        doc_id = doc.get("_id") or doc.get("_key") or doc.get("id") or ""
        return cls(
            id=str(doc_id),
            sku=pick("sku", None),
            title=pick("title", parent.title if parent else None),
            price=_to_float(pick("price", parent.price if parent else None)),
            shipping_weight=_to_float(pick("shippingWeight", parent.shipping_weight if parent else None)),
            box_dimensions=pick("boxDimensions", parent.box_dimensions if parent else None),
            ships_alone=bool(pick("shipsAlone", parent.ships_alone if parent else False)),
            shipping_class=pick("shippingClass", parent.shipping_class if parent else None),
        )


def flatten_products(documents: Iterable[Dict[str, Any]]) -> List[CatalogProduct]:
    """Expand product documents into product + variant entries."""
    products: List[CatalogProduct] = []
    for doc in documents or []:
        if not isinstance(doc, dict):
            continue
        product = CatalogProduct.from_document(doc)
        products.append(product)
        for variant in doc.get("variants") or []:
            if isinstance(variant, dict):
                products.append(CatalogProduct.from_document(variant, parent=product))
    return products


class SanityCatalogClient:
    """
    Read-only Sanity query client.

    Uses the API CDN for anonymous reads and the live API when a token is set.
    """

    def __init__(
        self,
        project_id: str,
        dataset: str = "production",
        api_version: str = "2023-06-07",
        token: str = "",
        timeout: float = 5.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.project_id = project_id
        self.dataset = dataset
        self.api_version = api_version.lstrip("v")
        self.token = token
        self.timeout = timeout
        self._http_client = http_client

    @classmethod
    def from_settings(cls, settings) -> "SanityCatalogClient":
        return cls(
            project_id=settings.SANITY_PROJECT_ID,
            dataset=settings.SANITY_DATASET,
            api_version=settings.SANITY_API_VERSION,
            token=settings.SANITY_API_TOKEN,
            timeout=settings.SANITY_TIMEOUT_SECONDS,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.project_id)

    @property
    def query_url(self) -> str:
        host = "api.sanity.io" if self.token else "apicdn.sanity.io"
        return f"https://{self.project_id}.{host}/v{self.api_version}/data/query/{self.dataset}"

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            headers = {"Accept": "application/json"}
            if self.token:
                headers["Authorization"] = f"Bearer {self.token}"
            self._http_client = httpx.AsyncClient(timeout=self.timeout, headers=headers)
        return self._http_client

    async def close(self):
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def query(self, groq: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Run a GROQ query and return its `result`.

        Raises:
            CatalogError: unconfigured client, network failure, non-2xx or bad payload
        """
        if not self.is_configured:
            raise CatalogError("Sanity project id is not configured", code="CATALOG_NOT_CONFIGURED")

        query_params = {"query": groq}
        for key, value in (params or {}).items():
            query_params[f"${key}"] = json.dumps(value)

        client = await self._get_http_client()
        try:
            response = await client.get(self.query_url, params=query_params)
        except httpx.HTTPError as e:
            raise CatalogError(f"Sanity request failed: {type(e).__name__}")

        if response.status_code >= 400:
            raise CatalogError(
                f"Sanity query returned {response.status_code}",
                details={"status": response.status_code},
            )

        try:
            body = response.json()
        except ValueError:
            raise CatalogError("Sanity returned a non-JSON response")

        return body.get("result") if isinstance(body, dict) else None

    async def fetch_products(self, identifiers: Iterable[str]) -> List[CatalogProduct]:
        """
        Look up shipping metadata for cart identifiers (sku, product id or variant id).

        Returns an empty list when the CMS is unconfigured or unavailable.
        """
        ids = sorted({str(i) for i in identifiers if i})
        if not ids or not self.is_configured:
            return []

        try:
            documents = await self.query(PRODUCT_SHIPPING_QUERY, {"ids": ids})
        except CatalogError as e:
            logger.error(f"[catalog] Failed to fetch products: {e.message}")
            return []

        if not isinstance(documents, list):
            return []
        return flatten_products(documents)

    async def fetch_fallback_rates(self) -> List[Dict[str, Any]]:
        """Load the CMS-managed flat-rate table; empty on failure."""
        if not self.is_configured:
            return []
        try:
            result = await self.query(FALLBACK_RATES_QUERY)
        except CatalogError as e:
            logger.error(f"[catalog] Failed to fetch fallback rates: {e.message}")
            return []
        return [r for r in result or [] if isinstance(r, dict)]
