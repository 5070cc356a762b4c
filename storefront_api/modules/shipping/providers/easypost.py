"""
EasyPost Rate Provider

Creates an unpurchased shipment (POST {base}/shipments) for one aggregate
parcel and reads its `rates` list. EasyPost wants weight in ounces and
returns amounts as decimal strings.
"""
import logging
import math
from typing import Any, Dict, List, Optional

from storefront_api.modules.shipping.providers import register_provider
from storefront_api.modules.shipping.providers.base import BaseRateProvider, transit_days
from storefront_api.modules.shipping.types import AddressInput, PackagePlan, ShippingOption

logger = logging.getLogger(__name__)

OUNCES_PER_POUND = 16


def _address(address: AddressInput) -> Dict[str, Any]:
    return {
        "name": address.name,
        "phone": address.phone,
        "street1": address.address_line1,
        "street2": address.address_line2,
        "city": address.city,
        "state": address.state_province,
        "zip": address.postal_code,
        "country": address.country_code,
    }


@register_provider("easypost")
class EasyPostProvider(BaseRateProvider):
    """EasyPost shipment rates."""

    name = "EasyPost"

    @classmethod
    def from_settings(cls, settings) -> "EasyPostProvider":
        return cls(
            api_key=settings.EASYPOST_API_KEY,
            base_url=settings.EASYPOST_BASE_URL,
            timeout=settings.SHIPPING_RATE_TIMEOUT_SECONDS,
        )

    def _auth(self) -> Dict[str, Any]:
        return {"auth": (self.api_key, "")}

    def _extract_error_message(self, error_data: Any) -> Optional[str]:
        if isinstance(error_data, dict) and isinstance(error_data.get("error"), dict):
            return error_data["error"].get("message")
        return None

    def build_payload(self, origin: AddressInput, destination: AddressInput, plan: PackagePlan) -> Dict[str, Any]:
        parcel = plan.parcel
        return {
            "shipment": {
                "from_address": _address(origin),
                "to_address": _address(destination),
                "parcel": {
                    "length": parcel.length,
                    "width": parcel.width,
                    "height": parcel.height,
                    "weight": round(parcel.weight * OUNCES_PER_POUND, 1),
                },
            }
        }

    @staticmethod
    def parse_rates(data: Any) -> List[ShippingOption]:
        rates = data.get("rates") if isinstance(data, dict) else None
        if not isinstance(rates, list):
            return []

        options: List[ShippingOption] = []
        for r in rates:
            if not isinstance(r, dict):
                continue
            try:
                amount = float(r.get("rate"))
            except (TypeError, ValueError):
                continue
            if not math.isfinite(amount) or amount < 0:
                continue

            days = r.get("delivery_days") or r.get("est_delivery_days")
            options.append(ShippingOption(
                carrier=r.get("carrier") or "",
                service=r.get("service") or "",
                rate=round(amount, 2),
                currency=str(r.get("currency") or "USD").upper(),
                estimated_days=transit_days(days),
                service_code=r.get("service"),
                carrier_id=r.get("carrier_account_id"),
            ))
        return options

    async def get_rates(
        self,
        origin: AddressInput,
        destination: AddressInput,
        plan: PackagePlan,
    ) -> List[ShippingOption]:
        data = await self._post_json("/shipments", self.build_payload(origin, destination, plan))
        options = self.parse_rates(data)
        logger.info(f"EasyPost returned {len(options)} rate(s)")
        return options
