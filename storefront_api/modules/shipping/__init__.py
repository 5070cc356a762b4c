"""
Shipping Module

- Package planning from CMS shipping metadata
- Live carrier rates through a registered provider (ShipEngine, EasyPost)
- Flat-rate fallback table when live rates are unavailable
"""
from storefront_api.modules.shipping.fallback import FallbackRate, FallbackRateTable
from storefront_api.modules.shipping.providers import RateProviderFactory, register_provider
from storefront_api.modules.shipping.providers.base import BaseRateProvider
from storefront_api.modules.shipping.rate_source import RateSource

__all__ = [
    "FallbackRate",
    "FallbackRateTable",
    "RateProviderFactory",
    "register_provider",
    "BaseRateProvider",
    "RateSource",
]
