"""
Last-resort error handling for the storefront API.

Anything a route does not turn into a quote envelope ends up here. The
client gets a generic 500 with an error id and the storefront CORS
headers; the details go to the log only.
"""
import logging
import uuid
from typing import Optional, Union

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from storefront_api.core.config import settings
from storefront_api.core.cors import build_cors_headers
from storefront_api.core.request_utils import extract_origin

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."
REDACTED_MESSAGE = "Internal error (details redacted)"
MAX_MESSAGE_LENGTH = 200

# Credentials, upstream hosts and stack details never reach a client
SENSITIVE_MARKERS = (
    "api-key",
    "api_key",
    "authorization",
    "bearer",
    "token",
    "password",
    "secret",
    "shipengine.com",
    "easypost.com",
    "sanity.io",
    "traceback",
    'file "',
)


def is_sensitive_error(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in SENSITIVE_MARKERS)


def sanitize_error_message(error: Union[str, Exception], debug: Optional[bool] = None) -> str:
    """
    Message for an exception that is safe to show in a debug response.

    Secrets and upstream URLs are redacted even in debug mode; outside
    debug mode only the generic message is ever returned.
    """
    if not (settings.DEBUG if debug is None else debug):
        return GENERIC_ERROR_MESSAGE

    message = error if isinstance(error, str) else f"{type(error).__name__}: {error}"
    if is_sensitive_error(message):
        return REDACTED_MESSAGE
    if len(message) > MAX_MESSAGE_LENGTH:
        return message[:MAX_MESSAGE_LENGTH] + "..."
    return message


class ErrorSanitizationMiddleware(BaseHTTPMiddleware):
    """Turn unhandled exceptions into a generic JSON 500 with CORS headers."""

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except HTTPException:
            raise
        except Exception as e:
            error_id = uuid.uuid4().hex[:12]
            logger.error(
                f"Unhandled exception [{error_id}] on {request.method} {request.url.path}: "
                f"{type(e).__name__}: {e}",
                exc_info=True,
            )

            content = {"error": GENERIC_ERROR_MESSAGE, "error_id": error_id}
            if settings.DEBUG:
                content["detail"] = sanitize_error_message(e, debug=True)

            return JSONResponse(
                status_code=500,
                content=content,
                headers=build_cors_headers(extract_origin(request)),
            )
