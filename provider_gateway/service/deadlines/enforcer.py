"""
Deadline enforcement for asynchronous operations.

Every helper arms timers around a unit of work the caller already knows how
to start; none of them spawns workers or forcibly aborts the work. A timeout
stops *waiting* for the operation. Callers that need the work killed pass an
``on_timeout`` hook that cancels it.

    result = await with_timeout(
        lambda: client.get(url),
        TimeoutConfig(timeout_ms=5000, operation_name="plaid_accounts"),
    )
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, List, Optional, Sequence, TypeVar

import structlog

from provider_gateway.core.clock import Clock, system_clock
from provider_gateway.core.metrics import record_soft_deadline, record_timeout
from provider_gateway.domain.exceptions import OperationTimeoutException

from .models import (
    Callback,
    Deadline,
    Operation,
    ParallelOperation,
    ParallelResult,
    TimeoutConfig,
)

T = TypeVar("T")

logger = structlog.get_logger(__name__)


async def _run_best_effort(callback: Callback, operation_name: str, event: str) -> None:
    """Run a sync or async hook, logging (never raising) its failure."""
    try:
        outcome = callback()
        if inspect.isawaitable(outcome):
            await outcome
    except Exception as e:
        logger.error(
            event,
            operation_name=operation_name,
            error=str(e),
            error_type=type(e).__name__,
        )


def _observe_late_outcome(operation_name: str) -> Callable[[asyncio.Future], None]:
    """Retrieve the outcome of work abandoned after a timeout."""

    def _callback(task: asyncio.Future) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.debug(
                "abandoned_operation_failed",
                operation_name=operation_name,
                error=str(error),
            )

    return _callback


async def with_timeout(
    operation: Operation,
    config: TimeoutConfig,
    clock: Optional[Clock] = None,
) -> Any:
    """
    Execute an operation with a timeout.

    Args:
        operation: Zero-argument callable returning an awaitable
        config: Timeout configuration
        clock: Timer source (defaults to the system clock)

    Returns:
        The operation's result

    Raises:
        OperationTimeoutException: If the operation exceeds ``timeout_ms``
        Exception: Whatever the operation itself raises
    """
    clock = clock or system_clock
    operation_name = config.operation_name

    outcome = operation()
    if not inspect.isawaitable(outcome):
        return outcome

    loop = asyncio.get_running_loop()
    task = asyncio.ensure_future(outcome)
    expired: asyncio.Future = loop.create_future()

    def _expire() -> None:
        # A timer that comes due after the work settled has lost the race
        if not task.done() and not expired.done():
            expired.set_result(None)

    handle = clock.call_later(config.timeout_ms, _expire)
    try:
        await asyncio.wait({task, expired}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        handle.cancel()

    # Once the timer has fired the timeout wins, even if the work also settled.
    if expired.done():
        task.add_done_callback(_observe_late_outcome(operation_name))
        logger.warning(
            "operation_timed_out",
            operation_name=operation_name,
            timeout_ms=config.timeout_ms,
        )
        record_timeout(operation_name)

        if config.on_timeout is not None:
            await _run_best_effort(config.on_timeout, operation_name, "timeout_cleanup_failed")

        raise OperationTimeoutException(
            config.message(),
            operation_name=operation_name,
            timeout_ms=config.timeout_ms,
        )

    return task.result()


async def with_timeout_or_none(
    operation: Operation,
    config: TimeoutConfig,
    clock: Optional[Clock] = None,
) -> Any:
    """
    Execute an operation with a timeout, returning None on timeout.

    Non-timeout errors still propagate.
    """
    try:
        return await with_timeout(operation, config, clock=clock)
    except OperationTimeoutException:
        return None


async def with_timeout_or_default(
    operation: Operation,
    config: TimeoutConfig,
    default_value: Any,
    clock: Optional[Clock] = None,
) -> Any:
    """
    Execute an operation with a timeout, returning ``default_value`` on timeout.

    Non-timeout errors still propagate.
    """
    try:
        return await with_timeout(operation, config, clock=clock)
    except OperationTimeoutException:
        return default_value


async def with_parallel_timeouts(
    operations: Sequence[ParallelOperation],
    clock: Optional[Clock] = None,
) -> List[ParallelResult]:
    """
    Run operations concurrently, each under its own timeout.

    Returns one result per input, in input order. A failing or timed-out item
    never affects the others.
    """

    async def _run(item: ParallelOperation) -> ParallelResult:
        try:
            result = await with_timeout(item.operation, item.config, clock=clock)
        except Exception as e:
            return ParallelResult(success=False, error=e)
        return ParallelResult(success=True, result=result)

    results = await asyncio.gather(*(_run(item) for item in operations))
    return list(results)


async def with_deadlines(
    operation: Operation,
    deadlines: Sequence[Deadline],
    operation_name: str = "unknown",
    clock: Optional[Clock] = None,
) -> Any:
    """
    Execute an operation under tiered deadlines.

    All deadlines but the largest are soft: reaching one runs its callback
    (for alerts or metrics) without aborting the operation. The largest is the
    hard deadline and behaves like ``with_timeout``; its callback runs as the
    timeout cleanup. Pending soft timers are cancelled as soon as the
    operation settles. With no deadlines the operation runs unbounded.

    Example:
        await with_deadlines(
            lambda: sync_accounts(),
            [
                Deadline(ms=1000, on_deadline=lambda: logger.warning("slow_sync")),
                Deadline(ms=5000, on_deadline=alert_oncall),
                Deadline(ms=10000),
            ],
            operation_name="account_sync",
        )
    """
    clock = clock or system_clock
    ordered = sorted(deadlines, key=lambda d: d.ms)

    if not ordered:
        outcome = operation()
        if inspect.isawaitable(outcome):
            return await outcome
        return outcome

    started = clock.monotonic()
    soft_handles = []
    running_callbacks: set[asyncio.Future] = set()
    settled = False

    def _cancel_soft() -> None:
        nonlocal settled
        settled = True
        for handle in soft_handles:
            handle.cancel()

    def _fire_soft(tier: int, deadline: Deadline) -> None:
        if settled:
            return
        logger.info(
            "soft_deadline_reached",
            operation_name=operation_name,
            tier=tier,
            deadline_ms=deadline.ms,
        )
        record_soft_deadline(operation_name)
        callback_task = asyncio.ensure_future(
            _run_best_effort(deadline.on_deadline, operation_name, "deadline_callback_failed")
        )
        running_callbacks.add(callback_task)
        callback_task.add_done_callback(running_callbacks.discard)

    for tier, deadline in enumerate(ordered[:-1], start=1):
        if deadline.on_deadline is None:
            continue
        soft_handles.append(
            clock.call_later(deadline.ms, lambda t=tier, d=deadline: _fire_soft(t, d))
        )

    hard = ordered[-1]

    async def _on_hard_deadline() -> None:
        logger.warning(
            "hard_deadline_reached",
            operation_name=operation_name,
            deadline_ms=hard.ms,
            elapsed_ms=round((clock.monotonic() - started) * 1000, 2),
        )
        if hard.on_deadline is not None:
            outcome = hard.on_deadline()
            if inspect.isawaitable(outcome):
                await outcome

    async def _guarded() -> Any:
        # Soft timers stop the moment the work settles, not when the caller resumes
        try:
            outcome = operation()
            if inspect.isawaitable(outcome):
                return await outcome
            return outcome
        finally:
            _cancel_soft()

    try:
        return await with_timeout(
            _guarded,
            TimeoutConfig(
                timeout_ms=hard.ms,
                operation_name=operation_name,
                on_timeout=_on_hard_deadline,
            ),
            clock=clock,
        )
    finally:
        _cancel_soft()


def create_timeout_wrapper(
    default_config: TimeoutConfig,
    clock: Optional[Clock] = None,
) -> Callable[..., Awaitable[Any]]:
    """
    Create a timeout wrapper with pre-configured settings.

        provider_timeout = create_timeout_wrapper(
            TimeoutConfig(timeout_ms=30000, operation_name="provider_api")
        )
        accounts = await provider_timeout(lambda: plaid.accounts_get())
        balances = await provider_timeout(lambda: plaid.balances(), timeout_ms=5000)
    """

    async def _wrapped(operation: Operation, **overrides: Any) -> Any:
        config = default_config.with_overrides(**overrides) if overrides else default_config
        return await with_timeout(operation, config, clock=clock)

    return _wrapped
