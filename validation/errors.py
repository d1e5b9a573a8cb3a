"""
Centralized error classification for VATUSA API failures.

Provides consistent classification of HTTP status codes and exceptions to
decide whether a failed request should be retried (temporary) or given up on
immediately (permanent).
"""

import logging
from typing import Type

import httpx

from vatusa.exceptions import (
    VatusaConnectionError,
    VatusaError,
    VatusaPermanentError,
    VatusaTemporaryError,
)


# HTTP status codes that indicate temporary (retry-able) errors
# 408: Request timeout
# 429: Rate limited - retry after backoff
# 5xx: Server errors - usually temporary
TRANSIENT_CODES = frozenset({408, 429, 500, 502, 503, 504})

# HTTP status codes that indicate permanent (non-retry-able) errors
# 400: Bad request
# 401: Unauthorized - API key wrong or missing
# 403: Forbidden - key lacks facility permissions
# 404: Not found - facility code wrong
# 422: Unprocessable entity
PERMANENT_CODES = frozenset({400, 401, 403, 404, 405, 410, 422})

# Module logger
logger = logging.getLogger(__name__)


def classify_http_error(status_code: int) -> Type[VatusaError]:
    """
    Classify an HTTP status code as temporary or permanent.

    Args:
        status_code: HTTP response status code

    Returns:
        VatusaTemporaryError for retry-able codes,
        VatusaPermanentError for non-retry-able codes
    """
    if status_code in TRANSIENT_CODES:
        logger.debug(f"HTTP {status_code} classified as temporary")
        return VatusaTemporaryError

    if status_code in PERMANENT_CODES:
        logger.debug(f"HTTP {status_code} classified as permanent")
        return VatusaPermanentError

    if 400 <= status_code < 500:
        # Unknown 4xx = permanent (client error, unlikely to change)
        logger.debug(f"HTTP {status_code} (unknown 4xx) classified as permanent")
        return VatusaPermanentError

    # Unknown 5xx and anything unexpected = temporary (safer, allows retry)
    logger.debug(f"HTTP {status_code} classified as temporary")
    return VatusaTemporaryError


def classify_exception(exc: Exception) -> Type[VatusaError]:
    """
    Classify an exception raised while talking to the VATUSA API.

    Handles:
    - Already classified VatusaError: same type
    - httpx.HTTPStatusError: by response status code
    - httpx transport errors and OSError: connection error
    - Validation/data errors: permanent
    - Unknown: temporary (safer, allows retry)

    Args:
        exc: The exception to classify

    Returns:
        The VatusaError subclass the exception should be raised as
    """
    if isinstance(exc, VatusaError):
        return type(exc)

    if isinstance(exc, httpx.HTTPStatusError):
        return classify_http_error(exc.response.status_code)

    if isinstance(exc, (httpx.TransportError, ConnectionError, TimeoutError, OSError)):
        logger.debug(f"Network error classified as connection error: {type(exc).__name__}")
        return VatusaConnectionError

    if isinstance(exc, (ValueError, TypeError, KeyError, AttributeError)):
        logger.debug(f"Data error classified as permanent: {type(exc).__name__}")
        return VatusaPermanentError

    logger.debug(f"Unknown exception classified as temporary: {type(exc).__name__}")
    return VatusaTemporaryError


__all__ = ['classify_http_error', 'classify_exception', 'TRANSIENT_CODES', 'PERMANENT_CODES']
