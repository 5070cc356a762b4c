"""
Pytest configuration and fixtures for storefront shipping tests.
"""
import os
from typing import List

import pytest

# Set test environment before importing app modules
os.environ["ENVIRONMENT"] = "development"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SANITY_PROJECT_ID"] = ""
os.environ["SHIPENGINE_API_KEY"] = ""
os.environ["EASYPOST_API_KEY"] = ""
os.environ["SHIPPING_FALLBACK_FROM_CMS"] = "false"

from storefront_api.modules.shipping.fallback import FallbackRateTable  # noqa: E402
from storefront_api.modules.shipping.providers.base import BaseRateProvider  # noqa: E402
from storefront_api.modules.shipping.types import AddressInput, ShippingOption  # noqa: E402


class StubRateProvider(BaseRateProvider):
    """Rate provider returning canned options, or raising / sleeping on demand."""

    code = "stub"
    name = "Stub"

    def __init__(self, options=None, error=None, delay=0.0):
        super().__init__(api_key="test-key", base_url="https://rates.test")
        self.options: List[ShippingOption] = list(options or [])
        self.error = error
        self.delay = delay
        self.calls = []

    @classmethod
    def from_settings(cls, settings):
        return cls()

    async def get_rates(self, origin, destination, plan):
        import asyncio

        self.calls.append((origin, destination, plan))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.options)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def make_provider():
    """Factory for StubRateProvider instances."""
    return StubRateProvider


@pytest.fixture
def live_options() -> List[ShippingOption]:
    """Unsorted live options."""
    return [
        ShippingOption(carrier="UPS", service="Ground", rate=18.40, estimated_days=4, service_code="ups_ground"),
        ShippingOption(carrier="USPS", service="Priority Mail", rate=11.25, estimated_days=2, service_code="usps_priority_mail"),
        ShippingOption(carrier="FedEx", service="2Day", rate=32.10, estimated_days=2, service_code="fedex_2day"),
    ]


@pytest.fixture
def fallback_table() -> FallbackRateTable:
    return FallbackRateTable.from_config([
        {"carrier": "USPS", "service": "Ground Advantage", "amount": 9.95, "perPound": 0.5, "estimatedDays": 5},
        {"carrier": "UPS", "service": "Ground", "amount": 14.95, "per_pound": 0.75, "estimated_days": 4},
    ])


@pytest.fixture
def origin_address() -> AddressInput:
    return AddressInput(
        postal_code="89101",
        country_code="US",
        city="Las Vegas",
        state_province="NV",
        name="Warehouse",
    )


@pytest.fixture
def destination_address() -> AddressInput:
    return AddressInput(
        postal_code="10001",
        country_code="US",
        city="New York",
        state_province="NY",
        address_line1="123 Main Street",
        name="John Doe",
    )


@pytest.fixture
def sample_quote_payload() -> dict:
    """Quote request body as sent by the storefront."""
    return {
        "cart": [
            {"sku": "FAS-INTAKE-01", "quantity": 1, "price": 249.99},
            {"id": "prod-123", "quantity": 2, "weight": 1.5, "price": 19.5},
        ],
        "destination": {
            "country": "us",
            "postalCode": "10001",
            "state": "NY",
            "city": "New York",
            "addressLine1": "123 Main Street",
        },
    }
