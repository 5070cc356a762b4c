"""
ShipEngine Rate Provider

POST {base}/rates/estimate with the full package list. Carrier ids come
from SHIPENGINE_CARRIER_IDS; values that do not look like ShipEngine ids
are ignored so carrier names left in config do not break the request.
"""
import logging
import math
import re
from typing import Any, Dict, Iterable, List, Optional

from storefront_api.modules.shipping.providers import register_provider
from storefront_api.modules.shipping.providers.base import BaseRateProvider, transit_days
from storefront_api.modules.shipping.types import AddressInput, Package, PackagePlan, ShippingOption

logger = logging.getLogger(__name__)

CARRIER_ID_PATTERN = re.compile(r"^se-|^car_|^[0-9a-f-]{16,}$", re.IGNORECASE)


def looks_like_carrier_id(value: Optional[str]) -> bool:
    """True for 'se-123', 'car_abc' or long hex/uuid ids."""
    if not value:
        return False
    return bool(CARRIER_ID_PATTERN.search(str(value).strip()))


def _address(address: AddressInput) -> Dict[str, Any]:
    body = {
        "name": address.name or "Customer",
        "phone": address.phone or "",
        "address_line1": address.address_line1 or "",
        "city_locality": address.city or "",
        "state_province": address.state_province or "",
        "postal_code": address.postal_code,
        "country_code": address.country_code,
    }
    if address.address_line2:
        body["address_line2"] = address.address_line2
    return body


def _package(package: Package) -> Dict[str, Any]:
    return {
        "weight": {"value": package.weight, "unit": "pound"},
        "dimensions": {
            "unit": "inch",
            "length": package.length,
            "width": package.width,
            "height": package.height,
        },
    }


def _amount(value: Any) -> float:
    if isinstance(value, dict):
        value = value.get("amount")
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return float("nan")


@register_provider("shipengine")
class ShipEngineProvider(BaseRateProvider):
    """ShipEngine rate estimates."""

    name = "ShipEngine"

    def __init__(self, carrier_ids: Iterable[str] = (), **kwargs):
        super().__init__(**kwargs)
        self.carrier_ids = [c.strip() for c in carrier_ids if looks_like_carrier_id(c)]

    @classmethod
    def from_settings(cls, settings) -> "ShipEngineProvider":
        return cls(
            api_key=settings.SHIPENGINE_API_KEY,
            base_url=settings.SHIPENGINE_BASE_URL,
            timeout=settings.SHIPPING_RATE_TIMEOUT_SECONDS,
            carrier_ids=settings.SHIPENGINE_CARRIER_IDS,
        )

    def _auth(self) -> Dict[str, Any]:
        return {"headers": {"API-Key": self.api_key}}

    def _extract_error_message(self, error_data: Any) -> Optional[str]:
        if isinstance(error_data, dict):
            errors = error_data.get("errors") or []
            if errors and isinstance(errors[0], dict):
                return errors[0].get("message")
        return None

    def build_payload(self, origin: AddressInput, destination: AddressInput, plan: PackagePlan) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "rate_options": {},
            "shipment": {
                "validate_address": "no_validation",
                "ship_from": _address(origin),
                "ship_to": _address(destination),
                "packages": [_package(p) for p in plan.packages],
            },
        }
        if self.carrier_ids:
            payload["rate_options"]["carrier_ids"] = list(self.carrier_ids)
        return payload

    @staticmethod
    def parse_rates(data: Any) -> List[ShippingOption]:
        """
        Normalize a ShipEngine response (list or rate_response.rates).

        Bodies of any other shape yield no options.
        """
        rates: Any = data
        if isinstance(data, dict):
            rate_response = data.get("rate_response")
            rates = rate_response.get("rates") if isinstance(rate_response, dict) else None
            if not rates:
                rates = data.get("rates")
        if not isinstance(rates, list):
            return []

        options: List[ShippingOption] = []
        for r in rates:
            if not isinstance(r, dict):
                continue
            amount = _amount(r.get("shipping_amount", r.get("amount")))
            amount += _amount(r.get("other_amount")) if r.get("other_amount") else 0.0
            if not math.isfinite(amount) or amount < 0:
                logger.debug(f"Dropping ShipEngine rate with invalid amount: {r.get('service_code')}")
                continue

            currency = "USD"
            if isinstance(r.get("shipping_amount"), dict):
                currency = r["shipping_amount"].get("currency") or currency

            options.append(ShippingOption(
                carrier=r.get("carrier_friendly_name") or r.get("carrier_code") or "",
                service=r.get("service_type") or r.get("service_code") or "",
                rate=round(amount, 2),
                currency=str(currency).upper(),
                estimated_days=transit_days(r.get("delivery_days")),
                service_code=r.get("service_code"),
                carrier_id=r.get("carrier_id"),
            ))
        return options

    async def get_rates(
        self,
        origin: AddressInput,
        destination: AddressInput,
        plan: PackagePlan,
    ) -> List[ShippingOption]:
        data = await self._post_json("/rates/estimate", self.build_payload(origin, destination, plan))
        options = self.parse_rates(data)
        logger.info(f"ShipEngine returned {len(options)} rate(s)")
        return options
