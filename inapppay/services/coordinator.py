"""
Transaction Coordinator - Purchase orchestration over the platform queue.

Starts purchases and restores, reacts to purchase queue events, runs receipt
verification and finalizes every transaction once its outcome is known.

Every public operation has a callback form and an `*_async` form. Callbacks
are delivered on the event loop via call_soon, never inline.
"""

import asyncio
from collections.abc import Callable, Coroutine, Iterable
from typing import Any

from structlog import get_logger

from inapppay.config import Settings, settings
from inapppay.exceptions import ReceiptUnavailableError, SessionBusyError
from inapppay.models.domain import (
    Environment,
    Outcome,
    ProductDescriptor,
    PurchaseResult,
    Transaction,
    TransactionState,
)
from inapppay.models.payment_errors import classify_payment_error
from inapppay.observability.logging import log_context
from inapppay.observability.metrics import metrics
from inapppay.services.catalog import ProductCatalog
from inapppay.services.collaborators import PaymentQueue, ProductStore, ReceiptReader
from inapppay.services.session import Completion, PurchaseSession, await_completion, deliver
from inapppay.services.verification import VerificationClient

logger = get_logger(__name__)

CatalogCompletion = Callable[[list[ProductDescriptor]], None]


class TransactionCoordinator:
    """
    Purchase orchestrator for one app install.

    Only one purchase or restore may be unresolved at a time; starting
    another raises SessionBusyError instead of dropping the first caller.
    """

    def __init__(
        self,
        queue: PaymentQueue,
        receipt_reader: ReceiptReader,
        product_store: ProductStore,
        verification_client: VerificationClient | None = None,
        config: Settings | None = None,
    ) -> None:
        """
        Initialize coordinator with platform collaborators.

        Args:
            queue: Platform purchase queue
            receipt_reader: Receipt store for the running install
            product_store: Remote product catalog service
            verification_client: Receipt verifier, built from config if omitted
            config: Settings, defaults to global settings
        """
        self.config = config or settings
        self.catalog = ProductCatalog(product_store, queue)
        self._queue = queue
        self._receipt_reader = receipt_reader
        self._verifier = verification_client or VerificationClient(self.config)
        self._session: PurchaseSession | None = None
        self._restoring = False
        self._restored: list[Transaction] = []
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def session(self) -> PurchaseSession | None:
        """The most recent purchase or restore session."""
        return self._session

    @property
    def is_busy(self) -> bool:
        """Check if a purchase or restore is waiting for its outcome."""
        return self._session is not None and not self._session.done

    async def join(self) -> None:
        """Wait for in-flight verification and catalog work to settle."""
        while self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    # ========================================================================
    # Catalog
    # ========================================================================

    def fetch_catalog(self, product_ids: Iterable[str], completion: CatalogCompletion) -> None:
        """Fetch purchasable products; completion receives the product list."""
        self._spawn(self._fetch_catalog(set(product_ids), completion))

    async def fetch_catalog_async(self, product_ids: Iterable[str]) -> list[ProductDescriptor]:
        ids = set(product_ids)
        return await await_completion(lambda done: self.fetch_catalog(ids, done))

    async def _fetch_catalog(self, product_ids: set[str], completion: CatalogCompletion) -> None:
        try:
            products = await self.catalog.fetch(product_ids)
        except Exception:
            logger.exception("catalog_fetch_failed", requested=len(product_ids))
            products = []
        deliver(completion, products)

    # ========================================================================
    # Purchase
    # ========================================================================

    def purchase(
        self,
        product_id: str,
        completion: Completion,
        shared_secret: str = "",
        test_server: bool = False,
        server_auth_only: bool = False,
    ) -> None:
        """
        Start an in-app purchase.

        Args:
            product_id: Identifier of a product in the fetched catalog
            completion: Receives the PurchaseResult exactly once
            shared_secret: App shared secret sent with the receipt
            test_server: Verify against the sandbox endpoint first
            server_auth_only: Skip verification; the raw receipt is returned
                as payload for the caller to upload to its own backend

        Raises:
            SessionBusyError: If another purchase or restore is unresolved
        """
        self._ensure_idle("purchase")

        if self.catalog.is_empty:
            self._resolve_early("purchase", completion, Outcome.NO_CATALOG)
            return
        if not self._queue.can_make_payments():
            self._resolve_early("purchase", completion, Outcome.NOT_ALLOWED)
            return

        product = self.catalog.get(product_id)
        if product is None:
            logger.warning("purchase_unknown_product", product_id=product_id)
            self._resolve_early("purchase", completion, Outcome.FAILED)
            return

        session = PurchaseSession(
            "purchase",
            Environment.SANDBOX if test_server else Environment.PRODUCTION,
            completion,
            shared_secret=shared_secret,
            server_auth_only=server_auth_only,
        )
        self._session = session
        logger.info(
            "purchase_started",
            product_id=product_id,
            environment=session.environment.value,
            server_auth_only=server_auth_only,
        )

        try:
            self._queue.add_payment(product)
        except Exception:
            logger.exception("purchase_queue_rejected_payment", product_id=product_id)
            self._complete(session, PurchaseResult(Outcome.FAILED))

    async def purchase_async(
        self,
        product_id: str,
        shared_secret: str = "",
        test_server: bool = False,
        server_auth_only: bool = False,
    ) -> PurchaseResult:
        return await await_completion(
            lambda done: self.purchase(
                product_id,
                done,
                shared_secret=shared_secret,
                test_server=test_server,
                server_auth_only=server_auth_only,
            )
        )

    # ========================================================================
    # Restore
    # ========================================================================

    def restore(
        self,
        completion: Completion,
        shared_secret: str = "",
        test_server: bool = False,
        server_auth_only: bool = False,
    ) -> None:
        """
        Restore previously completed purchases.

        Verification runs once the queue reports the restore has finished.

        Raises:
            SessionBusyError: If another purchase or restore is unresolved
        """
        self._ensure_idle("restore")

        if not self._queue.can_make_payments():
            self._resolve_early("restore", completion, Outcome.NOT_ALLOWED)
            return

        self._session = PurchaseSession(
            "restore",
            Environment.SANDBOX if test_server else Environment.PRODUCTION,
            completion,
            shared_secret=shared_secret,
            server_auth_only=server_auth_only,
        )
        self._restoring = False
        self._restored = []
        logger.info("restore_started", mode=self.config.restore_mode)

        try:
            self._queue.restore_completed_transactions()
        except Exception:
            logger.exception("restore_queue_request_failed")
            self._complete(self._session, PurchaseResult(Outcome.FAILED))

    async def restore_async(
        self,
        shared_secret: str = "",
        test_server: bool = False,
        server_auth_only: bool = False,
    ) -> PurchaseResult:
        return await await_completion(
            lambda done: self.restore(
                done,
                shared_secret=shared_secret,
                test_server=test_server,
                server_auth_only=server_auth_only,
            )
        )

    # ========================================================================
    # Purchase queue events
    # ========================================================================

    def handle_transactions_updated(self, transactions: Iterable[Transaction]) -> None:
        """Queue event: one or more transactions changed state."""
        for transaction in transactions:
            state = transaction.state
            if state is TransactionState.PURCHASED:
                self._spawn(self._complete_purchase(transaction))
            elif state is TransactionState.FAILED:
                self._fail_transaction(transaction)
            elif state is TransactionState.RESTORED:
                self._restoring = True
                self._restored.append(transaction)
                logger.info(
                    "transaction_restored",
                    transaction_id=transaction.transaction_id,
                    product_id=transaction.product_id,
                )
            elif state is TransactionState.DEFERRED:
                self._defer_transaction(transaction)
            else:
                logger.debug(
                    "transaction_state_ignored",
                    transaction_id=transaction.transaction_id,
                    state=state.value,
                )

    def handle_restore_completed(self) -> None:
        """Queue event: all restorable transactions have been delivered."""
        session = self._restore_session()
        restoring, self._restoring = self._restoring, False
        restored, self._restored = self._restored, []

        if not (restoring and restored):
            logger.warning("restore_found_nothing")
            self._complete(session, PurchaseResult(Outcome.FAILED))
            return

        if self.config.restore_mode == "each":
            self._spawn(self._verify_each_restored(restored, session))
        else:
            self._spawn(self._verify_last_restored(restored, session))

    def handle_restore_failed(self, error_code: int | None = None) -> None:
        """Queue event: the restore request itself failed."""
        category, message = classify_payment_error(error_code)
        logger.warning(
            "restore_failed",
            error_code=error_code,
            category=category.value,
            reason=message,
        )
        metrics.record_purchase_error(category.value)
        self._restoring = False
        self._restored = []
        self._complete(self._restore_session(), PurchaseResult(Outcome.FAILED))

    # ========================================================================
    # Internals
    # ========================================================================

    async def _complete_purchase(self, transaction: Transaction) -> None:
        session = self._active_session()
        result = await self._verify_transaction(transaction, session)
        self._complete(session, result)
        self._finish(transaction)

    async def _verify_last_restored(
        self, restored: list[Transaction], session: PurchaseSession
    ) -> None:
        latest = restored[-1]
        if len(restored) > 1:
            # Only the latest is verified and finalized in this mode
            logger.warning(
                "restored_transactions_left_pending",
                verified_transaction_id=latest.transaction_id,
                pending_transaction_ids=[t.transaction_id for t in restored[:-1]],
            )
        result = await self._verify_transaction(latest, session)
        self._complete(session, result)
        self._finish(latest)

    async def _verify_each_restored(
        self, restored: list[Transaction], session: PurchaseSession
    ) -> None:
        results: list[PurchaseResult] = []
        for transaction in restored:
            results.append(await self._verify_transaction(transaction, session))
            self._finish(transaction)

        failure = next((r for r in results if not r.is_success), None)
        self._complete(session, failure or results[-1])

    async def _verify_transaction(
        self, transaction: Transaction, session: PurchaseSession
    ) -> PurchaseResult:
        """Read the receipt and verify it; never raises."""
        with log_context(
            transaction_id=transaction.transaction_id,
            operation=session.operation,
        ):
            try:
                receipt = self._receipt_reader.read_receipt()
            except ReceiptUnavailableError as exc:
                logger.error("receipt_unreadable", error=exc.message)
                return PurchaseResult(Outcome.VERIFICATION_FAILED)

            try:
                return await self._verifier.verify(transaction, receipt, session)
            except Exception:
                logger.exception("receipt_verification_crashed")
                return PurchaseResult(Outcome.VERIFICATION_FAILED)

    def _defer_transaction(self, transaction: Transaction) -> None:
        # Deferred transactions stay queued until approved or declined
        logger.info(
            "purchase_deferred",
            transaction_id=transaction.transaction_id,
            product_id=transaction.product_id,
        )
        self._complete(self._active_session(), PurchaseResult(Outcome.CANCELLED))

    def _fail_transaction(self, transaction: Transaction) -> None:
        category, message = classify_payment_error(transaction.error_code)
        logger.warning(
            "purchase_failed",
            transaction_id=transaction.transaction_id,
            product_id=transaction.product_id,
            error_code=transaction.error_code,
            category=category.value,
            reason=message,
        )
        metrics.record_purchase_error(category.value)
        self._complete(self._active_session(), PurchaseResult(Outcome.FAILED))
        self._finish(transaction)

    def _finish(self, transaction: Transaction) -> None:
        self._queue.finish_transaction(transaction)
        metrics.record_transaction_finished(transaction.state.value)
        logger.info(
            "transaction_finished",
            transaction_id=transaction.transaction_id,
            state=transaction.state.value,
        )

    def _complete(self, session: PurchaseSession, result: PurchaseResult) -> None:
        if session.complete(result):
            metrics.record_outcome(session.operation, result.outcome.value)

    def _active_session(self) -> PurchaseSession:
        """
        The unresolved session, or a caller-less one for unsolicited events.

        Transactions left over from an earlier run can arrive before anyone
        starts a purchase; they are still verified and finalized.
        """
        if self._session is not None and not self._session.done:
            return self._session
        return PurchaseSession("unsolicited", self.config.default_environment, None)

    def _restore_session(self) -> PurchaseSession:
        """The unresolved restore session; a pending purchase is left alone."""
        if self._session is not None and self._session.operation == "restore":
            return self._active_session()
        return PurchaseSession("unsolicited", self.config.default_environment, None)

    def _ensure_idle(self, operation: str) -> None:
        if self.is_busy:
            logger.warning("purchase_session_busy", operation=operation)
            raise SessionBusyError(operation)

    def _resolve_early(self, operation: str, completion: Completion, outcome: Outcome) -> None:
        logger.info(f"{operation}_rejected", outcome=outcome.value)
        metrics.record_outcome(operation, outcome.value)
        deliver(completion, PurchaseResult(outcome))

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
