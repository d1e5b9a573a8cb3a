"""
VATUSA API package.

The client lives in vatusa.client and is imported from there directly;
this package namespace carries the models and exceptions only.

Models:
    VatusaTrainingRecord: Typed training record

Exceptions:
    VatusaError: Base class for all API failures
    VatusaConnectionError: API unreachable or timed out (retry-able)
    VatusaTemporaryError: 429/5xx responses (retry-able)
    VatusaPermanentError: Other 4xx or undecodable responses
"""

from vatusa.exceptions import (
    VatusaError,
    VatusaConnectionError,
    VatusaTemporaryError,
    VatusaPermanentError,
)
from vatusa.models import VatusaTrainingRecord

__all__ = [
    'VatusaTrainingRecord',
    'VatusaError',
    'VatusaConnectionError',
    'VatusaTemporaryError',
    'VatusaPermanentError',
]
