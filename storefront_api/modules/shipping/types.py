"""
Carrier-agnostic data classes for the shipping quote path.

Weights are pounds, dimensions inches, money in major currency units
(dollars) rounded to cents.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

LIVE_SOURCE = "live"
FALLBACK_SOURCE = "fallback"


@dataclass(frozen=True)
class AddressInput:
    """Address handed to a rate provider."""
    postal_code: str
    country_code: str = "US"
    city: Optional[str] = None
    state_province: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None


@dataclass(frozen=True)
class Package:
    """One physical box."""
    weight: float  # pounds
    length: float  # inches
    width: float  # inches
    height: float  # inches
    sku: Optional[str] = None
    title: Optional[str] = None

    @property
    def max_dimension(self) -> float:
        return max(self.length, self.width, self.height)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "weight": self.weight,
            "length": self.length,
            "width": self.width,
            "height": self.height,
            "sku": self.sku,
            "title": self.title,
        }


@dataclass
class PackagePlan:
    """Packages derived from a cart plus the flags that drive quoting."""
    packages: List[Package] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    total_weight: float = 0.0
    max_dimension: float = 0.0
    subtotal: float = 0.0
    freight: bool = False
    install_only: bool = False

    @property
    def parcel(self) -> Package:
        """
        Single aggregate parcel for providers that rate one box.

        Weight is the cart total; each side is the largest seen across packages.
        """
        if not self.packages:
            return Package(weight=round(self.total_weight, 2), length=0.0, width=0.0, height=0.0)
        return Package(
            weight=round(sum(p.weight for p in self.packages), 2),
            length=max(p.length for p in self.packages),
            width=max(p.width for p in self.packages),
            height=max(p.height for p in self.packages),
        )


@dataclass(frozen=True)
class ShippingOption:
    """A single rated shipping service."""
    carrier: str
    service: str
    rate: float
    currency: str = "USD"
    estimated_days: Optional[int] = None
    service_code: Optional[str] = None
    carrier_id: Optional[str] = None
    source: str = LIVE_SOURCE
    free_shipping: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "carrier": self.carrier,
            "service": self.service,
            "rate": self.rate,
            "currency": self.currency,
            "estimatedDays": self.estimated_days,
            "serviceCode": self.service_code,
            "carrierId": self.carrier_id,
            "source": self.source,
            "freeShipping": self.free_shipping,
        }


@dataclass
class RateLookup:
    """Options returned by the rate source and where they came from."""
    options: List[ShippingOption]
    source: str
    live_error: Optional[str] = None


@dataclass
class QuoteResult:
    """
    Tagged quote result.

    success=True carries options (non-empty unless freight or install_only);
    success=False carries only an error message.
    """
    success: bool
    options: List[ShippingOption] = field(default_factory=list)
    recommended: Optional[ShippingOption] = None
    freight: bool = False
    install_only: bool = False
    missing: List[str] = field(default_factory=list)
    packages: List[Package] = field(default_factory=list)
    subtotal: float = 0.0
    source: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def failure(cls, error: str) -> "QuoteResult":
        return cls(success=False, error=error)

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            return {"success": False, "error": self.error or "Unable to compute shipping quote"}

        body: Dict[str, Any] = {
            "success": True,
            "options": [o.to_dict() for o in self.options],
            "recommended": self.recommended.to_dict() if self.recommended else None,
            "freight": self.freight,
            "installOnly": self.install_only,
            "missing": list(self.missing),
            "packages": [p.to_dict() for p in self.packages],
            "subtotal": self.subtotal,
            "source": self.source,
        }
        if self.message:
            body["message"] = self.message
        return body
