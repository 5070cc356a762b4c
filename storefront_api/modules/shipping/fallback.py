"""
Flat-rate fallback table.

Used whenever live carrier rates are unavailable. The table is built once
(from settings or the CMS) and handed to the rate source; it is never
mutated afterwards.
"""
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from storefront_api.modules.shipping.types import FALLBACK_SOURCE, ShippingOption

logger = logging.getLogger(__name__)


def _first(entry: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if entry.get(key) is not None:
            return entry[key]
    return None


@dataclass(frozen=True)
class FallbackRate:
    """One flat-rate service: amount + per_pound * weight."""
    carrier: str
    service: str
    amount: float
    per_pound: float = 0.0
    estimated_days: Optional[int] = None
    currency: str = "USD"

    def price_for(self, weight: float) -> float:
        return round(self.amount + self.per_pound * max(weight, 0.0), 2)

    def to_option(self, weight: float) -> ShippingOption:
        return ShippingOption(
            carrier=self.carrier,
            service=self.service,
            rate=self.price_for(weight),
            currency=self.currency,
            estimated_days=self.estimated_days,
            source=FALLBACK_SOURCE,
        )


def _parse_entry(entry: Any) -> FallbackRate:
    if not isinstance(entry, dict):
        raise ValueError("entry must be an object")

    carrier = _first(entry, "carrier")
    service = _first(entry, "service", "serviceName", "service_name")
    if not carrier or not service:
        raise ValueError("carrier and service are required")

    amount = float(_first(entry, "amount", "price", "rate"))
    per_pound = float(_first(entry, "perPound", "per_pound") or 0.0)
    if not math.isfinite(amount) or amount < 0 or not math.isfinite(per_pound) or per_pound < 0:
        raise ValueError("amounts must be non-negative numbers")

    days = _first(entry, "estimatedDays", "estimated_days")
    return FallbackRate(
        carrier=str(carrier),
        service=str(service),
        amount=amount,
        per_pound=per_pound,
        estimated_days=int(days) if days is not None else None,
        currency=str(_first(entry, "currency") or "USD").upper(),
    )


@dataclass(frozen=True)
class FallbackRateTable:
    """Immutable collection of fallback rates."""
    rates: Tuple[FallbackRate, ...] = ()

    @classmethod
    def from_config(cls, entries: Optional[Iterable[Any]]) -> "FallbackRateTable":
        """
        Build a table from settings or CMS documents.

        Accepts camelCase or snake_case keys. Invalid entries are skipped
        with a warning.
        """
        rates: List[FallbackRate] = []
        for position, entry in enumerate(entries or []):
            try:
                rates.append(_parse_entry(entry))
            except (TypeError, ValueError) as e:
                logger.warning(f"Skipping fallback rate #{position}: {e}")
        return cls(rates=tuple(rates))

    def __len__(self) -> int:
        return len(self.rates)

    def __bool__(self) -> bool:
        return bool(self.rates)

    def quote(self, weight: float) -> List[ShippingOption]:
        """Options for a total weight, cheapest first."""
        options = [rate.to_option(weight) for rate in self.rates]
        return sorted(options, key=lambda o: (o.rate, o.carrier, o.service))
