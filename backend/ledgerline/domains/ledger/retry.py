"""Bounded retry for balance compare-and-swap.

Each attempt must run the whole read-decide-write body again in a fresh unit
of work, so the decision is always based on the latest balance.
"""

from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random,
)

from ledgerline.core.logging import logger
from ledgerline.core.protocols.metrics import BillingMetrics
from ledgerline.domains.ledger.exceptions import (
    BalanceVersionConflictError,
    ConcurrencyConflictError,
)

T = TypeVar("T")


async def run_with_cas_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    operation_name: str,
    max_attempts: int,
    max_wait_seconds: float = 0.05,
    metrics: Optional[BillingMetrics] = None,
) -> T:
    """Run ``operation`` until it stops hitting balance version conflicts.

    Args:
        operation: Zero-argument coroutine factory doing one full attempt
        operation_name: Label for logs and metrics
        max_attempts: Total attempts before giving up
        max_wait_seconds: Upper bound of the random pause between attempts
        metrics: Optional metrics sink for retry counts

    Returns:
        Whatever ``operation`` returns

    Raises:
        ConcurrencyConflictError: Every attempt lost its race
    """

    def _before_sleep(retry_state: RetryCallState) -> None:
        if metrics:
            metrics.inc_cas_retry(operation_name)
        logger.with_context(operation=operation_name).warning(
            f"billing.cas_retry: attempt {retry_state.attempt_number} of {max_attempts} "
            f"hit a balance version conflict"
        )

    try:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(BalanceVersionConflictError),
            stop=stop_after_attempt(max_attempts),
            wait=wait_random(0, max_wait_seconds),
            before_sleep=_before_sleep,
            reraise=True,
        ):
            with attempt:
                return await operation()
    except BalanceVersionConflictError as e:
        raise ConcurrencyConflictError(attempts=max_attempts) from e
    raise ConcurrencyConflictError(attempts=max_attempts)  # pragma: no cover
