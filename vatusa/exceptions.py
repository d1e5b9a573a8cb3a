"""
Exception hierarchy for VATUSA API failures.

Every failure talking to the VATUSA API is raised as a VatusaError subclass so
the sync engine can abort a run with a single except clause while the client
still distinguishes retry-able from non-retry-able failures.
"""

from typing import Optional


class VatusaError(Exception):
    """Base class for all VATUSA API failures."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class VatusaConnectionError(VatusaError):
    """
    VATUSA API unreachable or the request timed out.

    Retry-able: the API may come back on a later attempt.
    """


class VatusaTemporaryError(VatusaError):
    """
    VATUSA API returned a transient failure (429 or 5xx).

    Retry-able.
    """


class VatusaPermanentError(VatusaError):
    """
    VATUSA API rejected the request (4xx) or returned a body we cannot parse.

    Not retry-able: a bad API key or a changed response shape will not fix
    itself between attempts.
    """


def is_retryable(exc: Exception) -> bool:
    """Return True if *exc* is a VATUSA failure worth retrying."""
    return isinstance(exc, (VatusaConnectionError, VatusaTemporaryError))


__all__ = [
    'VatusaError',
    'VatusaConnectionError',
    'VatusaTemporaryError',
    'VatusaPermanentError',
    'is_retryable',
]
