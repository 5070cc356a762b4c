"""
Quote request normalizer.

Turns a raw request body into a typed QuoteRequest or raises
ShippingValidationError naming the first offending field. Malformed carts
are rejected rather than silently dropped.
"""
import json
import logging
from typing import Any, Tuple, Union

from pydantic import ValidationError

from storefront_api.core.exceptions import ShippingValidationError
from storefront_api.schemas.shipping import QuoteRequest

logger = logging.getLogger(__name__)

MISSING_ERROR_TYPES = {"missing"}


def _format_loc(loc: Tuple[Union[str, int], ...]) -> str:
    """('cart', 0, 'quantity') -> 'cart[0].quantity'"""
    out = ""
    for part in loc:
        if isinstance(part, int):
            out += f"[{part}]"
        else:
            out += f".{part}" if out else str(part)
    return out


def _describe(error: ValidationError) -> Tuple[str, str]:
    """Return (field, message) for the first validation error."""
    first = error.errors()[0]
    # model-level validators report no field of their own
    loc = tuple(p for p in first.get("loc", ()) if p != "__root__")
    field = _format_loc(loc) or "body"
    is_missing = first.get("type") in MISSING_ERROR_TYPES or (
        first.get("type") == "string_type" and first.get("input") is None
    )
    if is_missing:
        return field, f"Missing {field}"

    msg = first.get("msg", "is invalid")
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    return field, f"Invalid {field}: {msg}"


def parse_json_body(raw: Union[bytes, str]) -> Any:
    """Decode a JSON request body."""
    if not raw:
        raise ShippingValidationError("Request body is required", field="body")
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ShippingValidationError("Invalid JSON payload", field="body")


def normalize_quote_request(payload: Any) -> QuoteRequest:
    """
    Validate and shape an inbound quote payload.

    Raises:
        ShippingValidationError: body not an object, destination missing or
            incomplete, cart malformed or empty
    """
    if not isinstance(payload, dict):
        raise ShippingValidationError("Request body must be a JSON object", field="body")

    if not payload.get("destination"):
        raise ShippingValidationError("Shipping destination is required", field="destination")

    try:
        request = QuoteRequest.model_validate(payload)
    except ValidationError as e:
        field, message = _describe(e)
        logger.info(f"Rejected quote request: {message}")
        raise ShippingValidationError(message, field=field, details={"error_count": e.error_count()})

    if not request.cart:
        raise ShippingValidationError("Cart items are required", field="cart")

    return request
