"""
Domain Models - Purchase orchestration types using dataclasses.

NO DICTIONARIES - All data structures are strongly typed immutable dataclasses.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class Outcome(str, Enum):
    """Terminal result of a purchase, restore or verification."""

    SUCCESS = "success"
    FAILED = "failed"
    VERIFICATION_FAILED = "verification_failed"
    CANCELLED = "cancelled"
    NOT_ALLOWED = "not_allowed"
    NO_CATALOG = "no_catalog"


class Environment(str, Enum):
    """Receipt verification server."""

    SANDBOX = "sandbox"
    PRODUCTION = "production"


class TransactionState(str, Enum):
    """Platform purchase queue transaction state."""

    PURCHASING = "purchasing"
    PURCHASED = "purchased"
    FAILED = "failed"
    RESTORED = "restored"
    DEFERRED = "deferred"


@dataclass(frozen=True)
class ProductDescriptor:
    """Purchasable product as returned by the platform catalog service."""

    product_id: str
    title: str = ""
    description: str = ""
    price: Decimal | None = None
    currency: str | None = None

    def __post_init__(self) -> None:
        """Validate product descriptor."""
        if not self.product_id:
            raise ValueError("Product ID required")
        if self.price is not None and self.price < 0:
            raise ValueError(f"Price cannot be negative: {self.price}")


@dataclass(frozen=True)
class Transaction:
    """
    Reference to a transaction owned by the platform purchase queue.

    The core never mutates a transaction; it only finalizes it through the queue.
    """

    transaction_id: str
    product_id: str
    state: TransactionState
    error_code: int | None = None  # Platform error code, set on FAILED


@dataclass(frozen=True)
class PurchaseResult:
    """Outcome delivered to a caller, with an optional raw payload.

    The payload is the verification server's response body after a verified
    purchase, or the raw receipt in server-auth mode.
    """

    outcome: Outcome
    payload: bytes | None = None

    @property
    def is_success(self) -> bool:
        """Check if the purchase ended successfully."""
        return self.outcome is Outcome.SUCCESS
