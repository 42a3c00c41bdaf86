"""
Pytest Configuration and Centralized Fixtures.

Wires the fakes from fakes.py into fixtures:
- Purchase queue that emits transaction events on the event loop
- Receipt reader and product catalog service
- verifyReceipt endpoint backed by httpx.MockTransport
- Fully wired TransactionCoordinator
"""

from decimal import Decimal

import httpx
import pytest
from fakes import (
    PRODUCTION_URL,
    SANDBOX_URL,
    FakePaymentQueue,
    FakeProductStore,
    FakeReceiptReader,
    FakeVerifyServer,
)

from inapppay.config import Settings
from inapppay.models.domain import ProductDescriptor
from inapppay.services.coordinator import TransactionCoordinator
from inapppay.services.verification import VerificationClient

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def pro_product() -> ProductDescriptor:
    return ProductDescriptor(
        product_id="com.app.pro",
        title="Pro",
        description="Unlock everything",
        price=Decimal("4.99"),
        currency="USD",
    )


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        sandbox_url=SANDBOX_URL,
        production_url=PRODUCTION_URL,
        max_verification_attempts=3,
        restore_mode="last",
    )


@pytest.fixture
def verify_server() -> FakeVerifyServer:
    return FakeVerifyServer()


@pytest.fixture
def http_client(verify_server: FakeVerifyServer) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(verify_server.handle))


@pytest.fixture
def verification_client(
    test_settings: Settings, http_client: httpx.AsyncClient
) -> VerificationClient:
    return VerificationClient(test_settings, http_client=http_client)


@pytest.fixture
def payment_queue() -> FakePaymentQueue:
    return FakePaymentQueue()


@pytest.fixture
def receipt_reader() -> FakeReceiptReader:
    return FakeReceiptReader()


@pytest.fixture
def product_store(pro_product: ProductDescriptor) -> FakeProductStore:
    return FakeProductStore([pro_product])


@pytest.fixture
def coordinator(
    payment_queue: FakePaymentQueue,
    receipt_reader: FakeReceiptReader,
    product_store: FakeProductStore,
    verification_client: VerificationClient,
    test_settings: Settings,
) -> TransactionCoordinator:
    coordinator = TransactionCoordinator(
        payment_queue,
        receipt_reader,
        product_store,
        verification_client=verification_client,
        config=test_settings,
    )
    payment_queue.coordinator = coordinator
    return coordinator
