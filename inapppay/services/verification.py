"""
Receipt Verification Client - verifyReceipt protocol implementation.

NO DICTIONARIES - Requests and responses use typed wire models.

Sends the base64 receipt to the sandbox or production endpoint chosen by the
session, follows 21007/21008 environment-mismatch redirects up to a fixed
number of attempts, and reduces every failure to Outcome.VERIFICATION_FAILED.
"""

import time

import httpx
from pydantic import ValidationError
from structlog import get_logger

from inapppay.config import Settings, settings
from inapppay.exceptions import VerificationError
from inapppay.models.domain import Environment, Outcome, PurchaseResult, Transaction
from inapppay.models.verify_receipt import (
    STATUS_PRODUCTION_RECEIPT_ON_SANDBOX,
    STATUS_SANDBOX_RECEIPT_ON_PRODUCTION,
    VerifyReceiptRequest,
    VerifyReceiptResponse,
)
from inapppay.observability.metrics import metrics
from inapppay.observability.tracing import add_span_attributes, get_tracer
from inapppay.services.session import PurchaseSession

logger = get_logger(__name__)
tracer = get_tracer(__name__)

# Status code -> environment the receipt actually belongs to
_REDIRECTS: dict[int, Environment] = {
    STATUS_SANDBOX_RECEIPT_ON_PRODUCTION: Environment.SANDBOX,
    STATUS_PRODUCTION_RECEIPT_ON_SANDBOX: Environment.PRODUCTION,
}


class VerificationClient:
    """
    Receipt verification against the sandbox/production verifyReceipt endpoints.

    The only state it touches is session.environment, which is switched when
    the server reports the receipt belongs to the other environment.
    """

    def __init__(
        self,
        config: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize verification client.

        Args:
            config: Endpoint and retry settings, defaults to global settings
            http_client: Shared client; a short-lived client is opened per
                request when omitted
        """
        self.config = config or settings
        self._http_client = http_client

    async def verify(
        self,
        transaction: Transaction,
        receipt: bytes,
        session: PurchaseSession,
    ) -> PurchaseResult:
        """
        Verify a receipt for a transaction.

        Args:
            transaction: Transaction being verified (used for logging)
            receipt: Raw receipt blob from the receipt store
            session: Active session; its environment may be switched

        Returns:
            SUCCESS with the server response body (or the raw receipt in
            server-auth mode), otherwise VERIFICATION_FAILED. Never raises.
        """
        if session.server_auth_only:
            logger.info(
                "receipt_handed_to_caller",
                transaction_id=transaction.transaction_id,
                receipt_size=len(receipt),
            )
            return PurchaseResult(Outcome.SUCCESS, receipt)

        try:
            request = VerifyReceiptRequest.from_receipt(receipt, session.shared_secret)
        except ValidationError:
            logger.error("receipt_empty", transaction_id=transaction.transaction_id)
            return PurchaseResult(Outcome.VERIFICATION_FAILED)

        max_attempts = self.config.max_verification_attempts
        for attempt in range(1, max_attempts + 1):
            environment = session.environment
            logger.info(
                "verifying_receipt",
                transaction_id=transaction.transaction_id,
                product_id=transaction.product_id,
                environment=environment.value,
                attempt=attempt,
            )

            try:
                response, body = await self._post(environment, request)
            except VerificationError as exc:
                logger.error(
                    "receipt_verification_failed",
                    transaction_id=transaction.transaction_id,
                    environment=exc.environment.value,
                    error=exc.message,
                )
                return PurchaseResult(Outcome.VERIFICATION_FAILED)

            if response.is_valid:
                logger.info(
                    "receipt_verified",
                    transaction_id=transaction.transaction_id,
                    environment=environment.value,
                    attempts=attempt,
                )
                return PurchaseResult(Outcome.SUCCESS, body)

            if not response.is_environment_mismatch:
                logger.warning(
                    "receipt_rejected",
                    transaction_id=transaction.transaction_id,
                    environment=environment.value,
                    status=response.status,
                )
                return PurchaseResult(Outcome.VERIFICATION_FAILED)

            session.switch_environment(_REDIRECTS[response.status])

        logger.error(
            "receipt_verification_attempts_exhausted",
            transaction_id=transaction.transaction_id,
            attempts=max_attempts,
            last_environment=session.environment.value,
        )
        return PurchaseResult(Outcome.VERIFICATION_FAILED)

    async def _post(
        self,
        environment: Environment,
        request: VerifyReceiptRequest,
    ) -> tuple[VerifyReceiptResponse, bytes]:
        """
        Send one verification request.

        Raises:
            VerificationError: On transport failure, HTTP error status or an
                unparseable response body
        """
        url = self.config.url_for(environment)
        started = time.perf_counter()
        status_label = "transport_error"

        with tracer.start_as_current_span("verify_receipt") as span:
            add_span_attributes(span, environment=environment.value, url=url)
            try:
                try:
                    response = await self._send(url, request.to_body())
                except httpx.HTTPError as exc:
                    raise VerificationError(environment, f"Transport error: {exc}") from exc

                if response.status_code >= 400:
                    status_label = f"http_{response.status_code}"
                    raise VerificationError(environment, f"HTTP {response.status_code}")

                try:
                    parsed = VerifyReceiptResponse.model_validate_json(response.content)
                except ValidationError as exc:
                    status_label = "invalid_response"
                    raise VerificationError(
                        environment, f"Invalid response body ({exc.error_count()} errors)"
                    ) from exc

                status_label = str(parsed.status)
                add_span_attributes(span, status=parsed.status)
                return parsed, response.content
            finally:
                metrics.record_verification_attempt(
                    environment.value, status_label, time.perf_counter() - started
                )

    async def _send(self, url: str, body: dict[str, str]) -> httpx.Response:
        timeout = self.config.verification_timeout
        if self._http_client is not None:
            return await self._http_client.post(url, json=body, timeout=timeout)

        async with httpx.AsyncClient() as client:
            return await client.post(url, json=body, timeout=timeout)
