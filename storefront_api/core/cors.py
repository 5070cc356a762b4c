"""
Per-route CORS headers for storefront-facing endpoints.

The storefront calls the quote endpoint cross-origin. Instead of a global
CORSMiddleware (which answers preflights with 200), the quote route builds
its own headers so OPTIONS can answer 204 and every JSON response carries the
same headers.
"""
from typing import Dict, Iterable, Optional

from storefront_api.core.config import settings

ALLOWED_METHODS = "POST, OPTIONS"
ALLOWED_HEADERS = "content-type"


def is_origin_allowed(origin: str, allowed_origins: Iterable[str]) -> bool:
    """Case-insensitive allow-list match; '*' allows any origin."""
    origin_lower = origin.lower()
    return any(a == "*" or a.lower() == origin_lower for a in allowed_origins)


def build_cors_headers(
    origin: Optional[str],
    allowed_origins: Optional[Iterable[str]] = None,
    preflight: bool = False,
) -> Dict[str, str]:
    """
    Build CORS response headers for a request origin.

    The request origin is mirrored (never '*') when allowed, so credentials
    and caching by Vary: Origin both work.

    Args:
        origin: Value of the request Origin header, if any
        allowed_origins: Allow-list; defaults to settings.CORS_ORIGINS
        preflight: Include Allow-Methods even when no origin matched

    Returns:
        Header dict, possibly empty
    """
    allowed = list(allowed_origins) if allowed_origins is not None else list(settings.CORS_ORIGINS)
    headers: Dict[str, str] = {}

    if preflight:
        headers["Access-Control-Allow-Methods"] = ALLOWED_METHODS

    if origin and is_origin_allowed(origin, allowed):
        headers["Access-Control-Allow-Origin"] = origin
        headers["Access-Control-Allow-Headers"] = ALLOWED_HEADERS
        headers["Access-Control-Allow-Methods"] = ALLOWED_METHODS
        headers["Vary"] = "Origin"

    return headers
