"""
Exception Classes - Strongly typed exception hierarchy.

Only SessionBusyError reaches callers of the coordinator; the others are
raised by collaborators or the verification client and downgraded to an
Outcome before they cross the public boundary.
"""

from inapppay.models.domain import Environment


class InAppPayError(Exception):
    """Base exception for all purchase orchestration errors."""

    pass


class SessionBusyError(InAppPayError):
    """Raised when a purchase or restore starts while another is unresolved."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Cannot start {operation}: another purchase session is in progress")


class ReceiptUnavailableError(InAppPayError):
    """Raised by a receipt reader when no receipt can be read."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Receipt unavailable: {message}")


class VerificationError(InAppPayError):
    """Raised when a verification attempt cannot produce a usable status."""

    def __init__(self, environment: Environment, message: str) -> None:
        self.environment = environment
        self.message = message
        super().__init__(f"Verification against {environment.value} failed: {message}")
