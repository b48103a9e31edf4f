"""
LOGISTICS App - Order engine errors

OrderValidationError, NotFoundError and TransientStoreError are raised by the
services and converted into structured results at the API boundary.
DataQualityWarning is never raised: it describes a condition that is logged
and left for reporting.
"""

from dataclasses import dataclass


class OrderError(Exception):
    """Base class for order engine errors."""


class OrderValidationError(OrderError):
    """A required field is missing or malformed. The order is not persisted."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class NotFoundError(OrderError):
    """A referenced order (or driver) does not exist."""


class TransientStoreError(OrderError):
    """The database call failed. Never retried by the engine."""


@dataclass(frozen=True)
class DataQualityWarning:
    code: str
    order_id: str
    message: str

    NEGATIVE_PAYOUT = 'negative_payout'
    DELIVERED_AND_CANCELLED = 'delivered_and_cancelled'
    OVERSIZED_MISMATCH = 'oversized_mismatch'
