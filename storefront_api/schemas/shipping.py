"""
Shipping Schemas

Pydantic models for the shipping quote request body. Accepts the camelCase
keys the storefront sends as well as snake_case.
"""
from typing import List, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

MAX_UNIT_PRICE = 1_000_000


def _clean_str(v):
    """Strip strings, coerce numeric ids to str, treat blanks as missing."""
    if v is None:
        return None
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        v = str(v)
    if isinstance(v, str):
        v = v.strip()
        return v or None
    return v


class Dimensions(BaseModel):
    """Box dimensions in inches; accepts {l, w, h} or {length, width, height}."""
    model_config = ConfigDict(populate_by_name=True)

    length: float = Field(..., gt=0, le=240, allow_inf_nan=False, alias="l")
    width: float = Field(..., gt=0, le=240, allow_inf_nan=False, alias="w")
    height: float = Field(..., gt=0, le=240, allow_inf_nan=False, alias="h")


class CartItemInput(BaseModel):
    """A cart line as sent by the storefront."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    sku: Optional[str] = Field(None, max_length=120)
    id: Optional[str] = Field(
        None,
        max_length=120,
        validation_alias=AliasChoices("id", "productId", "product_id"),
    )
    quantity: int = Field(1, ge=1, le=999)
    weight: Optional[float] = Field(None, gt=0, le=2000, allow_inf_nan=False, description="Unit weight in LBS")
    dimensions: Optional[Dimensions] = None
    price: Optional[float] = Field(
        None, ge=0, le=MAX_UNIT_PRICE, allow_inf_nan=False, description="Unit price in major currency units"
    )

    @field_validator("sku", "id", mode="before")
    @classmethod
    def clean_identifier(cls, v):
        return _clean_str(v)

    @model_validator(mode="after")
    def require_identifier(self):
        if not self.sku and not self.id:
            raise ValueError("sku or id is required")
        return self

    @property
    def identifier(self) -> str:
        return self.sku or self.id


class Destination(BaseModel):
    """Ship-to address; country and postal code are required."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    country: str = Field(..., validation_alias=AliasChoices("country", "countryCode", "country_code"))
    postal_code: str = Field(
        ...,
        min_length=3,
        max_length=20,
        validation_alias=AliasChoices("postalCode", "postal_code", "zip"),
    )
    state: Optional[str] = Field(
        None, max_length=50, validation_alias=AliasChoices("state", "stateProvince", "state_province")
    )
    city: Optional[str] = Field(None, max_length=100)
    address_line1: Optional[str] = Field(
        None, max_length=100, validation_alias=AliasChoices("addressLine1", "address_line1", "street1")
    )
    address_line2: Optional[str] = Field(
        None, max_length=100, validation_alias=AliasChoices("addressLine2", "address_line2", "street2")
    )
    name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)

    @field_validator("country", "postal_code", "state", "city", "address_line1", "address_line2", "name", "phone", mode="before")
    @classmethod
    def strip_values(cls, v):
        return _clean_str(v)

    @field_validator("country")
    @classmethod
    def validate_country_code(cls, v):
        if len(v) != 2 or not v.isalpha():
            raise ValueError("country must be a 2-letter ISO code")
        return v.upper()

    @field_validator("postal_code")
    @classmethod
    def normalize_postal_code(cls, v):
        return v.upper()


class QuoteRequest(BaseModel):
    """POST /api/shipping/quote body."""
    model_config = ConfigDict(extra="ignore")

    cart: List[CartItemInput] = Field(default_factory=list)
    destination: Destination

    @field_validator("cart", mode="before")
    @classmethod
    def default_cart(cls, v):
        return [] if v is None else v
