"""
Domain errors for price resolution.

Every error wraps the lower-level cause (transport, revert, decoding) and
tags it with an ErrorKind so callers can branch without parsing messages.
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    ORACLE_UNAVAILABLE = "oracle_unavailable"
    POOL_LOOKUP_FAILED = "pool_lookup_failed"
    PRICE_EXTRACTION_FAILED = "price_extraction_failed"
    PRICE_RESOLUTION_FAILED = "price_resolution_failed"


class PriceError(RuntimeError):
    """Base error: a fixed message for the failed operation plus its cause.

    Raise with ``raise SubClass(cause=e) from e`` so the chain is kept
    both on ``.cause`` and on ``__cause__``.
    """

    kind: ErrorKind = ErrorKind.PRICE_RESOLUTION_FAILED
    default_message = "Price resolution error"

    def __init__(self, message: Optional[str] = None, cause: Optional[BaseException] = None):
        self.message = message or self.default_message
        self.cause = cause
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.cause is None:
            return self.message
        return f"{self.message}: {self.cause}"

    @property
    def root_cause(self) -> Optional[BaseException]:
        """Innermost non-PriceError exception in the chain."""
        err: Optional[BaseException] = self.cause
        while isinstance(err, PriceError):
            err = err.cause
        return err


class OracleUnavailable(PriceError):
    kind = ErrorKind.ORACLE_UNAVAILABLE
    default_message = "Failed to get ETH/USD price from Chainlink oracle"


class PoolLookupFailed(PriceError):
    kind = ErrorKind.POOL_LOOKUP_FAILED
    default_message = "Failed to get pool address"


class PriceExtractionFailed(PriceError):
    kind = ErrorKind.PRICE_EXTRACTION_FAILED
    default_message = "Failed to get pool price"


class PriceResolutionFailed(PriceError):
    kind = ErrorKind.PRICE_RESOLUTION_FAILED
    default_message = "Failed to get price information"
