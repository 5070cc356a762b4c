"""
Base Rate Provider Interface

Every live rate integration implements get_rates() and returns
carrier-agnostic ShippingOption objects in major currency units. HTTP
plumbing (lazy client, error mapping) is shared here.
"""
import logging
import math
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx

from storefront_api.core.exceptions import ProviderNotConfiguredError, RateProviderError
from storefront_api.modules.shipping.types import AddressInput, PackagePlan, ShippingOption

logger = logging.getLogger(__name__)


def transit_days(value: Any) -> Optional[int]:
    """Whole transit days from a provider field, or None when absent or not a finite number."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value) or value < 0:
        return None
    return int(value)


class BaseRateProvider(ABC):
    """
    Abstract base class for live carrier rate providers.

    Subclasses set `code` and implement get_rates().
    """

    code: str = ""
    name: str = ""

    def __init__(
        self,
        api_key: str = "",
        base_url: str = "",
        timeout: float = 5.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http_client = http_client

    @classmethod
    @abstractmethod
    def from_settings(cls, settings) -> "BaseRateProvider":
        """Build a provider from application settings."""

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _auth(self) -> Dict[str, Any]:
        """Per-request auth kwargs for httpx (headers or auth)."""
        return {}

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"Content-Type": "application/json", "Accept": "application/json"},
            )
        return self._http_client

    async def close(self):
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def _post_json(self, path: str, payload: Dict[str, Any]) -> Any:
        """
        POST a JSON payload and return the decoded body.

        Raises:
            ProviderNotConfiguredError: no API key
            RateProviderError: network failure, non-2xx or non-JSON body
        """
        if not self.is_configured:
            raise ProviderNotConfiguredError(f"{self.name} API key is not configured", provider=self.code)

        client = await self._get_http_client()
        url = f"{self.base_url}{path}"

        try:
            response = await client.post(url, json=payload, **self._auth())
        except httpx.TimeoutException:
            raise RateProviderError(f"{self.name} request timed out", provider=self.code)
        except httpx.HTTPError as e:
            raise RateProviderError(f"{self.name} request failed: {type(e).__name__}", provider=self.code)

        logger.debug(f"{self.name} POST {path} -> {response.status_code}")

        if response.status_code >= 400:
            error_msg = f"{self.name} API error"
            try:
                error_data = response.json()
            except ValueError:
                error_data = {"raw": response.text[:500]}
            else:
                error_msg = self._extract_error_message(error_data) or error_msg
            logger.error(f"{self.name} API error: {response.status_code} - {error_msg}")
            raise RateProviderError(
                error_msg,
                provider=self.code,
                http_status=response.status_code,
            )

        try:
            return response.json()
        except ValueError:
            raise RateProviderError(f"{self.name} returned a non-JSON response", provider=self.code)

    def _extract_error_message(self, error_data: Any) -> Optional[str]:
        return None

    @abstractmethod
    async def get_rates(
        self,
        origin: AddressInput,
        destination: AddressInput,
        plan: PackagePlan,
    ) -> List[ShippingOption]:
        """
        Get live shipping rates.

        Args:
            origin: Ship-from address
            destination: Ship-to address
            plan: Packages to ship

        Returns:
            Options in major currency units; order is not guaranteed
        """
