"""Provider call guard - circuit check, deadline and outcome reporting."""

from typing import Any, Optional

import structlog

from provider_gateway.core.clock import Clock, system_clock
from provider_gateway.core.metrics import record_circuit_rejection, record_provider_call
from provider_gateway.domain.entities import Provider
from provider_gateway.domain.exceptions import (
    ProviderUnavailableException,
    is_timeout_error,
)
from provider_gateway.service.deadlines import (
    Callback,
    Operation,
    TimeoutSettings,
    timeout_settings,
    with_timeout,
)

from .circuit_breaker_service import CircuitBreakerService

logger = structlog.get_logger(__name__)


class ProviderCallService:
    """
    Wraps outbound provider calls in the resilience layer.

    Usage:
        accounts = await provider_calls.call(
            Provider.PLAID,
            lambda: plaid_client.accounts_get(token),
            region="US",
        )
    """

    def __init__(
        self,
        circuit_breaker: CircuitBreakerService,
        timeouts: TimeoutSettings = timeout_settings,
        clock: Clock = system_clock,
    ):
        self._breaker = circuit_breaker
        self._timeouts = timeouts
        self._clock = clock

    async def call(
        self,
        provider: Provider | str,
        operation: Operation,
        region: Optional[str] = None,
        category: str = "provider_api",
        timeout_ms: Optional[float] = None,
        on_timeout: Optional[Callback] = None,
    ) -> Any:
        """
        Call a provider unless its circuit is open.

        Args:
            provider: The provider being called
            operation: Zero-argument callable starting the call
            region: Region partition (defaults to the breaker's region)
            category: Timeout preset to use
            timeout_ms: Override for the preset timeout
            on_timeout: Cleanup hook run when the call times out

        Returns:
            The operation's result

        Raises:
            ProviderUnavailableException: If the circuit is open
            OperationTimeoutException: If the call exceeds its deadline
            Exception: Whatever the operation raises
        """
        provider = Provider(provider)
        is_open = await self._breaker.is_circuit_open(provider, region)
        region = region or self._breaker.default_region

        if is_open:
            record_circuit_rejection(provider.value, region)
            logger.warning("provider_call_rejected", provider=provider.value, region=region)
            raise ProviderUnavailableException(provider.value, region)

        overrides: dict[str, Any] = {"operation_name": f"{provider.value}_{category}"}
        if timeout_ms is not None:
            overrides["timeout_ms"] = timeout_ms
        if on_timeout is not None:
            overrides["on_timeout"] = on_timeout
        config = self._timeouts.config_for(category, **overrides)

        started = self._clock.monotonic()
        try:
            result = await with_timeout(operation, config, clock=self._clock)
        except Exception as e:
            elapsed = self._clock.monotonic() - started
            outcome = "timeout" if is_timeout_error(e) else "failure"
            record_provider_call(provider.value, outcome, elapsed)
            # Logged first: a health store outage below would replace this error
            logger.warning(
                "provider_call_failed",
                provider=provider.value,
                region=region,
                outcome=outcome,
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=round(elapsed * 1000, 2),
            )
            await self._breaker.record_failure(
                provider,
                region,
                error_message=str(e) or type(e).__name__,
                response_time_ms=int(elapsed * 1000),
            )
            raise

        elapsed = self._clock.monotonic() - started
        record_provider_call(provider.value, "success", elapsed)
        await self._breaker.record_success(
            provider,
            region,
            response_time_ms=int(elapsed * 1000),
        )
        return result
