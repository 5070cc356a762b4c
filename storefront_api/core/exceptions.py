"""
Storefront Exception Hierarchy

Structured exception classes for the shipping quote path. All exceptions
carry a code, message, details and severity so they can be logged and
mapped to HTTP responses in one place.

Exception Hierarchy:
    StorefrontError
    ├── ShippingError
    │   ├── ShippingValidationError   (client input, HTTP 400)
    │   ├── UpstreamError             (no live rates and no fallback, HTTP 500)
    │   └── RateProviderError
    │       └── ProviderNotConfiguredError
    └── CatalogError
"""
import logging
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)


class StorefrontError(Exception):
    """
    Base exception for all storefront custom errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code for programmatic handling
        details: Additional context for debugging
        severity: P0-P3 severity level
    """

    default_code: str = "STOREFRONT_ERROR"
    default_severity: str = "P2"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[str] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        self.severity = severity or self.default_severity
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "severity": self.severity,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


# =============================================================================
# SHIPPING ERRORS
# =============================================================================

class ShippingError(StorefrontError):
    """Base exception for shipping-related errors."""
    default_code = "SHIPPING_ERROR"
    default_severity = "P1"


class ShippingValidationError(ShippingError):
    """Malformed or missing quote request fields. Never retried."""
    default_code = "SHIPPING_VALIDATION_FAILED"
    default_severity = "P3"
    status_code = 400

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        details["field"] = field
        self.field = field
        super().__init__(message, details=details, **kwargs)


class UpstreamError(ShippingError):
    """Live rates unavailable and no fallback table configured."""
    default_code = "SHIPPING_UPSTREAM_UNAVAILABLE"
    default_severity = "P1"
    status_code = 500


class RateProviderError(ShippingError):
    """A carrier rate API call failed (network, non-2xx, bad payload)."""
    default_code = "RATE_PROVIDER_FAILED"
    default_severity = "P2"

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        http_status: Optional[int] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        details.update({
            "provider": provider,
            "http_status": http_status,
        })
        self.provider = provider
        self.http_status = http_status
        super().__init__(message, details=details, **kwargs)


class ProviderNotConfiguredError(RateProviderError):
    """Carrier rate API has no credentials configured."""
    default_code = "RATE_PROVIDER_NOT_CONFIGURED"
    default_severity = "P3"


# =============================================================================
# CATALOG ERRORS
# =============================================================================

class CatalogError(StorefrontError):
    """Headless CMS query failed."""
    default_code = "CATALOG_QUERY_FAILED"
    default_severity = "P2"
