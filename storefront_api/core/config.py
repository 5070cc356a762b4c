"""
Application configuration

Shipping quote settings are read from the environment (and .env) once at
import time. Defaults are safe for local development; production validation
rejects debug mode and localhost CORS origins.
"""
import json
import os
import logging
from typing import Any, Dict, List, Optional, Union
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Any storefront origin is mirrored unless an allow-list is configured
DEFAULT_CORS_ORIGINS = ["*"]

# Flat-rate table used when the live carrier API is unavailable.
# Amounts are in major currency units (USD).
DEFAULT_FALLBACK_RATES: List[Dict[str, Any]] = [
    {"carrier": "USPS", "service": "Ground Advantage", "amount": 9.95, "per_pound": 0.5, "estimated_days": 5},
    {"carrier": "UPS", "service": "Ground", "amount": 14.95, "per_pound": 0.75, "estimated_days": 4},
    {"carrier": "UPS", "service": "2nd Day Air", "amount": 29.95, "per_pound": 1.25, "estimated_days": 2},
]


def _parse_list(value: Any, default: List[Any]) -> Any:
    """Accept a JSON array or a comma-separated string."""
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        if not value.strip():
            return default
        if value.strip().startswith("["):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass
        return [part.strip() for part in value.split(",") if part.strip()]
    return value


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # App - defaults are PRODUCTION safe
    APP_NAME: str = "Storefront Shipping API"
    DEBUG: bool = False
    ENVIRONMENT: str = "production"
    LOG_LEVEL: str = "INFO"

    # CORS - accepts JSON array or comma-separated string
    CORS_ORIGINS: Union[str, List[str]] = DEFAULT_CORS_ORIGINS

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        return _parse_list(v, DEFAULT_CORS_ORIGINS)

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_DEFAULT: str = "100/minute"
    RATE_LIMIT_QUOTE: str = "30/minute"

    # Request size limit (bytes)
    MAX_REQUEST_SIZE: int = 1024 * 1024

    # Live carrier rates
    SHIPPING_RATE_PROVIDER: str = "shipengine"  # shipengine | easypost
    SHIPPING_RATE_TIMEOUT_SECONDS: float = 5.0

    SHIPENGINE_API_KEY: str = ""
    SHIPENGINE_BASE_URL: str = "https://api.shipengine.com/v1"
    SHIPENGINE_CARRIER_IDS: Union[str, List[str]] = []

    @field_validator("SHIPENGINE_CARRIER_IDS", mode="before")
    @classmethod
    def parse_carrier_ids(cls, v):
        return _parse_list(v, [])

    EASYPOST_API_KEY: str = ""
    EASYPOST_BASE_URL: str = "https://api.easypost.com/v2"

    # Fallback rate table - JSON array of {carrier, service, amount, per_pound, estimated_days}
    SHIPPING_FALLBACK_RATES: Union[str, List[Dict[str, Any]]] = DEFAULT_FALLBACK_RATES
    SHIPPING_FALLBACK_FROM_CMS: bool = False

    @field_validator("SHIPPING_FALLBACK_RATES", mode="before")
    @classmethod
    def parse_fallback_rates(cls, v):
        if isinstance(v, str):
            if not v.strip():
                return []
            parsed = json.loads(v)
            if not isinstance(parsed, list):
                raise ValueError("SHIPPING_FALLBACK_RATES must be a JSON array")
            return parsed
        return v

    # Free shipping (0 disables the override)
    SHIPPING_FREE_THRESHOLD: float = 0.0

    # Packaging defaults (inches / pounds)
    DEFAULT_BOX_LENGTH: float = 12.0
    DEFAULT_BOX_WIDTH: float = 9.0
    DEFAULT_BOX_HEIGHT: float = 3.0
    DEFAULT_BOX_WEIGHT_LB: float = 2.0
    FREIGHT_WEIGHT_THRESHOLD_LB: float = 150.0
    FREIGHT_DIMENSION_THRESHOLD_IN: float = 60.0

    # Ship-from address
    SHIPPING_ORIGIN_NAME: str = "FAS Motorsports"
    SHIPPING_ORIGIN_PHONE: str = ""
    SHIPPING_ORIGIN_ADDRESS: str = ""
    SHIPPING_ORIGIN_CITY: str = "Las Vegas"
    SHIPPING_ORIGIN_STATE: str = "NV"
    SHIPPING_ORIGIN_ZIP: str = "89101"
    SHIPPING_ORIGIN_COUNTRY: str = "US"

    # Sanity CMS (product shipping metadata)
    SANITY_PROJECT_ID: str = ""
    SANITY_DATASET: str = "production"
    SANITY_API_VERSION: str = "2023-06-07"
    SANITY_API_TOKEN: str = ""
    SANITY_TIMEOUT_SECONDS: float = 5.0

    @property
    def origin_address(self) -> Dict[str, Optional[str]]:
        return {
            "name": self.SHIPPING_ORIGIN_NAME,
            "phone": self.SHIPPING_ORIGIN_PHONE or None,
            "address_line1": self.SHIPPING_ORIGIN_ADDRESS or None,
            "city": self.SHIPPING_ORIGIN_CITY,
            "state": self.SHIPPING_ORIGIN_STATE,
            "postal_code": self.SHIPPING_ORIGIN_ZIP,
            "country": (self.SHIPPING_ORIGIN_COUNTRY or "US").upper(),
        }

    @model_validator(mode="after")
    def validate_production_config(self):
        """Runtime validation to catch insecure production configurations."""
        if self.ENVIRONMENT == "production":
            errors = []

            if self.DEBUG:
                errors.append(
                    "DEBUG=True is forbidden in production. "
                    "Set DEBUG=false or ENVIRONMENT=development"
                )

            for origin in self.CORS_ORIGINS:
                if "localhost" in origin or "127.0.0.1" in origin:
                    errors.append(f"Localhost CORS origin '{origin}' is forbidden in production")

            if errors:
                raise ValueError(
                    "PRODUCTION CONFIGURATION VIOLATIONS:\n" + "\n".join(f"  - {e}" for e in errors)
                )

        if self.SHIPPING_RATE_TIMEOUT_SECONDS <= 0:
            raise ValueError("SHIPPING_RATE_TIMEOUT_SECONDS must be positive")

        return self


# Try to load settings, provide helpful error on failure
try:
    settings = Settings()
except Exception as e:
    if os.getenv("ENVIRONMENT", "development") == "development":
        logger.warning(f"Settings validation failed ({e}), using development defaults.")
        os.environ["ENVIRONMENT"] = "development"
        settings = Settings(ENVIRONMENT="development", DEBUG=False)
    else:
        raise
