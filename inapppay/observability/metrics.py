"""
Metrics Collection with Prometheus.

Exposes purchase and verification metrics for monitoring.
"""

from prometheus_client import Counter, Histogram, Info

from inapppay.config import settings


class PurchaseMetrics:
    """
    Centralized metrics for purchase orchestration.

    Covers:
    - Verification attempts (rate, duration, status codes per server)
    - Outcomes delivered to callers
    - Finalized transactions
    - Classified platform purchase errors
    """

    def __init__(self) -> None:
        """Initialize all Prometheus metrics."""
        self.enabled = settings.metrics_enabled

        self.service_info = Info(
            "inapppay_service",
            "Service information",
        )
        self.service_info.info(
            {
                "version": settings.version,
                "service_name": settings.service_name,
            }
        )

        # ====================================================================
        # Verification Metrics
        # ====================================================================
        self.verification_attempts_total = Counter(
            "inapppay_verification_attempts_total",
            "Receipt verification requests sent",
            ["environment", "status"],
        )

        self.verification_duration_seconds = Histogram(
            "inapppay_verification_duration_seconds",
            "Receipt verification request duration in seconds",
            ["environment"],
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
        )

        # ====================================================================
        # Purchase Metrics
        # ====================================================================
        self.outcomes_total = Counter(
            "inapppay_outcomes_total",
            "Outcomes delivered to callers",
            ["operation", "outcome"],
        )

        self.transactions_finished_total = Counter(
            "inapppay_transactions_finished_total",
            "Transactions acknowledged to the purchase queue",
            ["state"],
        )

        self.purchase_errors_total = Counter(
            "inapppay_purchase_errors_total",
            "Platform purchase errors by diagnostic category",
            ["category"],
        )

    # ========================================================================
    # Helper Methods
    # ========================================================================

    def record_verification_attempt(self, environment: str, status: str, duration: float) -> None:
        """Record one verification request."""
        if not self.enabled:
            return
        self.verification_attempts_total.labels(environment=environment, status=status).inc()
        self.verification_duration_seconds.labels(environment=environment).observe(duration)

    def record_outcome(self, operation: str, outcome: str) -> None:
        """Record an outcome delivered to a caller."""
        if not self.enabled:
            return
        self.outcomes_total.labels(operation=operation, outcome=outcome).inc()

    def record_transaction_finished(self, state: str) -> None:
        """Record a finalized transaction."""
        if not self.enabled:
            return
        self.transactions_finished_total.labels(state=state).inc()

    def record_purchase_error(self, category: str) -> None:
        """Record a classified platform purchase error."""
        if not self.enabled:
            return
        self.purchase_errors_total.labels(category=category).inc()


# Global metrics instance
metrics = PurchaseMetrics()
