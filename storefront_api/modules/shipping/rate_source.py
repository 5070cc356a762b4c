"""
Rate source.

Wraps the live provider with a timeout and falls back to the flat-rate
table on any failure or empty result. Options are always returned
cheapest first.
"""
import asyncio
import logging
import time
from typing import List, Optional

import httpx

from storefront_api.core.exceptions import RateProviderError, UpstreamError
from storefront_api.core.monitoring import metrics
from storefront_api.modules.shipping.fallback import FallbackRateTable
from storefront_api.modules.shipping.providers.base import BaseRateProvider
from storefront_api.modules.shipping.types import (
    FALLBACK_SOURCE,
    LIVE_SOURCE,
    AddressInput,
    PackagePlan,
    RateLookup,
    ShippingOption,
)

logger = logging.getLogger(__name__)


def sort_options(options: List[ShippingOption]) -> List[ShippingOption]:
    """Ascending by rate; ties broken by carrier then service for stable output."""
    return sorted(options, key=lambda o: (o.rate, o.carrier, o.service))


class RateSource:
    """
    Live rates with flat-rate fallback.

    The fallback table is fixed at construction; an empty table means a
    live failure surfaces as UpstreamError.
    """

    def __init__(
        self,
        provider: Optional[BaseRateProvider],
        fallback_table: FallbackRateTable,
        origin: AddressInput,
        timeout: float = 5.0,
    ):
        self.provider = provider
        self.fallback_table = fallback_table
        self.origin = origin
        self.timeout = timeout

    @property
    def provider_name(self) -> Optional[str]:
        return self.provider.code if self.provider else None

    async def _live_rates(self, destination: AddressInput, plan: PackagePlan) -> List[ShippingOption]:
        if self.provider is None:
            raise RateProviderError("No live rate provider configured")

        started = time.perf_counter()
        try:
            return await asyncio.wait_for(
                self.provider.get_rates(self.origin, destination, plan),
                timeout=self.timeout,
            )
        finally:
            metrics.observe(
                "rate_provider_duration_seconds",
                time.perf_counter() - started,
                {"provider": self.provider.code},
            )

    async def get_options(self, destination: AddressInput, plan: PackagePlan) -> RateLookup:
        """
        Rate a package plan.

        Returns:
            RateLookup with sorted options and their source

        Raises:
            UpstreamError: live rates unavailable and the fallback table is empty
        """
        live_error: Optional[str] = None
        try:
            options = await self._live_rates(destination, plan)
        except asyncio.TimeoutError:
            live_error = f"Rate provider timed out after {self.timeout}s"
        except RateProviderError as e:
            live_error = e.message
        except (httpx.HTTPError, ValueError) as e:
            live_error = f"{type(e).__name__}: {e}"
        except Exception as e:
            logger.error(
                f"Rate provider {self.provider_name} failed unexpectedly: {type(e).__name__}: {e}",
                exc_info=True,
            )
            live_error = f"Unexpected {type(e).__name__} from rate provider"
        else:
            if options:
                metrics.increment("shipping_quotes_total", labels={"source": LIVE_SOURCE})
                return RateLookup(options=sort_options(options), source=LIVE_SOURCE)
            live_error = "Rate provider returned no rates"

        if not self.fallback_table:
            logger.error(f"Live rates unavailable and no fallback table configured: {live_error}")
            metrics.increment("shipping_quote_failures_total", labels={"reason": "upstream"})
            raise UpstreamError(
                "Shipping rates are temporarily unavailable",
                details={"live_error": live_error},
            )

        logger.warning(f"Using fallback shipping rates: {live_error}")
        metrics.increment("shipping_quotes_total", labels={"source": FALLBACK_SOURCE})
        return RateLookup(
            options=sort_options(self.fallback_table.quote(plan.total_weight)),
            source=FALLBACK_SOURCE,
            live_error=live_error,
        )

    async def close(self):
        if self.provider:
            await self.provider.close()
