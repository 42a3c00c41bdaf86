"""
Platform Collaborator Protocols - Interfaces the orchestrator depends on.

The purchase queue, receipt store and catalog service belong to the
platform. Any implementation (native bridge, emulator, test fake) must
satisfy these protocols.
"""

from collections.abc import Iterable
from typing import Protocol

from inapppay.models.domain import ProductDescriptor, Transaction


class PaymentQueue(Protocol):
    """
    Platform purchase queue.

    The queue reports transaction state changes by calling the coordinator's
    handle_transactions_updated / handle_restore_completed /
    handle_restore_failed methods on the event loop thread.
    """

    def can_make_payments(self) -> bool:
        """Return True if this device and account may transact."""
        ...

    def add_payment(self, product: ProductDescriptor) -> None:
        """
        Submit a payment for a product.

        The resulting transaction is reported asynchronously.
        """
        ...

    def restore_completed_transactions(self) -> None:
        """Ask the platform to replay previously completed transactions."""
        ...

    def finish_transaction(self, transaction: Transaction) -> None:
        """Acknowledge a transaction so it leaves the pending list."""
        ...


class ReceiptReader(Protocol):
    """Access to the receipt blob for the running install."""

    def read_receipt(self) -> bytes:
        """
        Read the current receipt.

        Raises:
            ReceiptUnavailableError: If no receipt exists or it cannot be read
        """
        ...


class ProductStore(Protocol):
    """Remote product catalog service."""

    async def request_products(self, product_ids: Iterable[str]) -> list[ProductDescriptor]:
        """
        Fetch descriptors for the given product identifiers.

        Unknown identifiers are silently omitted from the result.
        """
        ...
