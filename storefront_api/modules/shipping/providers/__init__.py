"""
Rate Provider Registry and Factory

- Providers register themselves with @register_provider(code)
- RateProviderFactory.create() builds the one selected by
  SHIPPING_RATE_PROVIDER
"""
import logging
from typing import Dict, List, Optional, Type

from storefront_api.modules.shipping.providers.base import BaseRateProvider

logger = logging.getLogger(__name__)

# Registry of provider implementations
_PROVIDER_REGISTRY: Dict[str, Type[BaseRateProvider]] = {}


def register_provider(code: str):
    """
    Decorator to register a rate provider implementation.

    Usage:
        @register_provider("shipengine")
        class ShipEngineProvider(BaseRateProvider):
            ...
    """
    def decorator(cls: Type[BaseRateProvider]):
        cls.code = code
        _PROVIDER_REGISTRY[code] = cls
        logger.debug(f"Registered rate provider: {code} -> {cls.__name__}")
        return cls
    return decorator


class RateProviderFactory:
    """Factory for creating rate provider instances."""

    @classmethod
    def create(cls, code: str, settings) -> Optional[BaseRateProvider]:
        """
        Build the provider registered under `code`.

        Returns None for unknown codes; the quote path then serves the
        fallback table only.
        """
        provider_cls = _PROVIDER_REGISTRY.get((code or "").strip().lower())
        if not provider_cls:
            logger.warning(f"No rate provider registered for: {code!r}")
            return None

        provider = provider_cls.from_settings(settings)
        if not provider.is_configured:
            logger.warning(f"Rate provider {provider.code} has no API key; fallback rates will be used")
        return provider

    @classmethod
    def get_registered_providers(cls) -> List[str]:
        return list(_PROVIDER_REGISTRY.keys())


# Import providers to trigger registration
# These imports must be at the bottom to avoid circular imports
from storefront_api.modules.shipping.providers.shipengine import ShipEngineProvider  # noqa: E402, F401
from storefront_api.modules.shipping.providers.easypost import EasyPostProvider  # noqa: E402, F401
