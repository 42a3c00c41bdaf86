"""
Purchase Session - Per-operation state for one purchase or restore.

A session carries the verification environment, shared secret, server-auth
flag and the caller's completion callback across the asynchronous lifecycle
of a purchase. Completion fires at most once and is always delivered through
the event loop, never inline.
"""

import asyncio
from collections.abc import Callable
from typing import TypeVar

from structlog import get_logger

from inapppay.models.domain import Environment, PurchaseResult

logger = get_logger(__name__)

T = TypeVar("T")

Completion = Callable[[PurchaseResult], None]


def deliver(callback: Callable[[T], None], value: T) -> None:
    """Schedule a callback on the running event loop."""
    asyncio.get_running_loop().call_soon(callback, value)


class PurchaseSession:
    """State for a single purchase or restore attempt."""

    def __init__(
        self,
        operation: str,
        environment: Environment,
        completion: Completion | None,
        shared_secret: str = "",
        server_auth_only: bool = False,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        """
        Create a session.

        Args:
            operation: "purchase", "restore" or "unsolicited" (no caller)
            environment: Verification server to try first
            completion: Caller callback, None when nobody is waiting
            shared_secret: App shared secret sent as the request password
            server_auth_only: Skip verification and hand the raw receipt back
            loop: Delivery loop, defaults to the running loop
        """
        self.operation = operation
        self.environment = environment
        self.shared_secret = shared_secret
        self.server_auth_only = server_auth_only
        self._completion = completion
        self._loop = loop or asyncio.get_running_loop()
        self._result: PurchaseResult | None = None

    @property
    def done(self) -> bool:
        """Check if the session already produced its result."""
        return self._result is not None

    @property
    def result(self) -> PurchaseResult | None:
        return self._result

    def switch_environment(self, environment: Environment) -> None:
        """Redirect later verification attempts to another server."""
        if environment is not self.environment:
            logger.info(
                "purchase_session_environment_switched",
                operation=self.operation,
                from_environment=self.environment.value,
                to_environment=environment.value,
            )
        self.environment = environment

    def complete(self, result: PurchaseResult) -> bool:
        """
        Resolve the session and schedule the completion callback.

        Returns:
            False if the session was already resolved; the result is dropped
        """
        if self._result is not None:
            logger.warning(
                "purchase_session_already_completed",
                operation=self.operation,
                outcome=result.outcome.value,
                first_outcome=self._result.outcome.value,
            )
            return False

        self._result = result
        logger.info(
            "purchase_session_completed",
            operation=self.operation,
            outcome=result.outcome.value,
            has_payload=result.payload is not None,
        )
        if self._completion is not None:
            self._loop.call_soon(self._completion, result)
        return True


async def await_completion(start: Callable[[Callable[[T], None]], None]) -> T:
    """
    Run a callback-style operation and wait for its single result.

    Args:
        start: Function that begins the operation and later invokes the
            callback it is given

    Returns:
        The first value passed to the callback; later values are ignored
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future[T] = loop.create_future()

    def resolve(value: T) -> None:
        if future.done():
            logger.warning("completion_fired_twice", value=repr(value))
            return
        future.set_result(value)

    start(resolve)
    return await future
