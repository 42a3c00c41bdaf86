"""
Fakes for the platform collaborators and the verifyReceipt endpoint.

Kept out of conftest.py so test modules can import them directly.
"""

import asyncio
import json
from collections.abc import Iterable
from dataclasses import dataclass, field

import httpx

from inapppay.exceptions import ReceiptUnavailableError
from inapppay.models.domain import ProductDescriptor, Transaction, TransactionState
from inapppay.services.coordinator import TransactionCoordinator

SANDBOX_URL = "https://sandbox.itunes.apple.com/verifyReceipt"
PRODUCTION_URL = "https://buy.itunes.apple.com/verifyReceipt"
RECEIPT = b"signed-receipt-blob"

# ============================================================================
# Platform Fakes
# ============================================================================


class FakePaymentQueue:
    """Purchase queue that reports transactions back through the coordinator."""

    def __init__(self) -> None:
        self.allowed = True
        self.auto_emit = True
        self.coordinator: TransactionCoordinator | None = None
        self.payments: list[ProductDescriptor] = []
        self.finished: list[Transaction] = []
        self.restore_requests = 0
        self.restorable: list[Transaction] = []
        self.purchase_state = TransactionState.PURCHASED
        self.purchase_error_code: int | None = None

    def can_make_payments(self) -> bool:
        return self.allowed

    def add_payment(self, product: ProductDescriptor) -> None:
        self.payments.append(product)
        if not self.auto_emit:
            return
        transaction_id = f"tx-{len(self.payments)}"
        events = [
            Transaction(transaction_id, product.product_id, TransactionState.PURCHASING),
            Transaction(
                transaction_id,
                product.product_id,
                self.purchase_state,
                error_code=self.purchase_error_code,
            ),
        ]
        self.emit(events)

    def restore_completed_transactions(self) -> None:
        self.restore_requests += 1
        loop = asyncio.get_running_loop()
        loop.call_soon(self.coordinator.handle_transactions_updated, list(self.restorable))
        loop.call_soon(self.coordinator.handle_restore_completed)

    def finish_transaction(self, transaction: Transaction) -> None:
        self.finished.append(transaction)

    def emit(self, transactions: list[Transaction]) -> None:
        loop = asyncio.get_running_loop()
        loop.call_soon(self.coordinator.handle_transactions_updated, transactions)


class FakeReceiptReader:
    """Receipt store returning a fixed blob, or failing when told to."""

    def __init__(self, receipt: bytes = RECEIPT) -> None:
        self.receipt = receipt
        self.available = True
        self.reads = 0

    def read_receipt(self) -> bytes:
        self.reads += 1
        if not self.available:
            raise ReceiptUnavailableError("no receipt on device")
        return self.receipt


class FakeProductStore:
    """Catalog service that knows a fixed set of products."""

    def __init__(self, products: Iterable[ProductDescriptor]) -> None:
        self.products = list(products)
        self.requests: list[set[str]] = []

    async def request_products(self, product_ids: Iterable[str]) -> list[ProductDescriptor]:
        ids = set(product_ids)
        self.requests.append(ids)
        await asyncio.sleep(0)
        return [p for p in self.products if p.product_id in ids]


# ============================================================================
# Verification Server
# ============================================================================


@dataclass
class VerifyRequest:
    url: str
    body: dict[str, str]


@dataclass
class FakeVerifyServer:
    """
    Scripted verifyReceipt endpoint.

    Each request consumes the next scripted status; the last one repeats.
    A script entry may also be an httpx.Response or an exception to raise.
    """

    script: list[object] = field(default_factory=lambda: [0])
    requests: list[VerifyRequest] = field(default_factory=list)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(VerifyRequest(str(request.url), json.loads(request.content)))
        index = min(len(self.requests), len(self.script)) - 1
        entry = self.script[index]
        if isinstance(entry, Exception):
            raise entry
        if isinstance(entry, httpx.Response):
            return entry
        return httpx.Response(200, json={"status": entry, "environment": "Sandbox"})

    @property
    def urls(self) -> list[str]:
        return [r.url for r in self.requests]
