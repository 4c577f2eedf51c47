"""Circuit breaker service - per-(provider, region) failure isolation."""

from datetime import datetime

import structlog

from provider_gateway.core.clock import Clock, system_clock
from provider_gateway.core.metrics import (
    record_circuit_transition,
    record_health_store_fallback,
)
from provider_gateway.domain.entities import (
    CircuitBreakerState,
    CircuitState,
    HealthStatus,
    Provider,
    ProviderHealthRecord,
    circuit_key,
)
from provider_gateway.domain.exceptions import HealthStoreUnavailableException
from provider_gateway.domain.interfaces import ProviderHealthRepository
from provider_gateway.infrastructure.cache import BreakerMemory
from provider_gateway.service.circuit import (
    CircuitBreakerSettings,
    circuit_breaker_settings,
    derive_state,
    next_attempt_at,
    open_timeout_elapsed,
    should_trip,
    window_expired,
)

logger = structlog.get_logger(__name__)


class CircuitBreakerService:
    """
    Application service for provider circuit breaking.

    Durable state lives in the health repository; the half-open
    consecutive-success counters and the fallback copy used while the store
    is unreachable live in ``BreakerMemory``, which is local to this process.

    Only ``is_circuit_open`` tolerates store failures (it answers from memory
    and fails open toward availability). Every mutating operation propagates
    ``HealthStoreUnavailableException`` so callers never believe an outcome
    was recorded when it was not.
    """

    def __init__(
        self,
        repository: ProviderHealthRepository,
        settings: CircuitBreakerSettings = circuit_breaker_settings,
        clock: Clock = system_clock,
        memory: BreakerMemory | None = None,
    ):
        self._repo = repository
        self._settings = settings
        self._clock = clock
        self._memory = memory or BreakerMemory(settings.fallback_cache_size)

    @property
    def default_region(self) -> str:
        return self._settings.default_region

    def _region(self, region: str | None) -> str:
        return region or self._settings.default_region

    async def is_circuit_open(
        self,
        provider: Provider | str,
        region: str | None = None,
    ) -> bool:
        """
        Decide whether calls to a provider should be rejected.

        An open circuit whose timeout has elapsed moves to half-open as a side
        effect of this call, and the call is allowed through as a probe.

        Args:
            provider: The provider identifier
            region: Region partition (defaults to the configured region)

        Returns:
            True if the caller should fail fast without calling the provider
        """
        provider = Provider(provider)
        region = self._region(region)
        key = circuit_key(provider, region)
        now = self._clock.now()

        try:
            record = await self._repo.find(provider, region)
        except HealthStoreUnavailableException as e:
            logger.warning(
                "circuit_check_using_memory_fallback",
                provider=provider.value,
                region=region,
                error=e.message,
            )
            record_health_store_fallback(provider.value, region)
            return self._is_open_in_memory(key, now)

        if record is None:
            self._memory.forget(key)
            return False

        self._memory.remember(key, record)

        if not record.circuit_breaker_open or record.is_half_open:
            return False

        if not open_timeout_elapsed(record, now, self._settings):
            return True

        try:
            record = await self._repo.upsert(
                provider, region, now, status=HealthStatus.DEGRADED
            )
        except HealthStoreUnavailableException as e:
            logger.warning(
                "circuit_half_open_write_failed",
                provider=provider.value,
                region=region,
                error=e.message,
            )
            self._memory.mark_half_open(key, now)
            return False

        self._memory.remember(key, record)
        self._memory.clear_successes(key)
        record_circuit_transition(provider.value, region, CircuitState.HALF_OPEN.value)
        logger.info("circuit_half_open", provider=provider.value, region=region)
        return False

    async def record_failure(
        self,
        provider: Provider | str,
        region: str | None = None,
        error_message: str = "",
        response_time_ms: int = 0,
    ) -> ProviderHealthRecord:
        """
        Record a failed provider call and trip the circuit if warranted.

        Args:
            provider: The provider identifier
            region: Region partition (defaults to the configured region)
            error_message: Description of the failure
            response_time_ms: Latency observed before the failure

        Returns:
            The health record after the failure was recorded

        Raises:
            HealthStoreUnavailableException: If the store cannot be written
        """
        provider = Provider(provider)
        region = self._region(region)
        key = circuit_key(provider, region)
        now = self._clock.now()
        log = logger.bind(provider=provider.value, region=region)

        record = await self._repo.get_or_create(provider, region, now)

        if record.is_half_open:
            # A failed probe re-opens immediately
            await self._repo.increment(
                provider,
                region,
                now,
                failed=1,
                response_time_ms=response_time_ms,
                error=error_message,
            )
            record = await self._trip(provider, region, now)
            log.error("circuit_reopened", error=error_message)
            return record

        if window_expired(record, now, self._settings):
            record = await self._repo.upsert(
                provider,
                region,
                now,
                failed_calls=1,
                successful_calls=0,
                window_start_at=now,
                avg_response_time_ms=response_time_ms,
                last_failure_at=now,
                last_error=error_message,
            )
            self._memory.remember(key, record)
            log.warning("provider_failure_recorded", failed_calls=1, window_reset=True)
            return record

        record = await self._repo.increment(
            provider,
            region,
            now,
            failed=1,
            response_time_ms=response_time_ms,
            error=error_message,
        )
        log.warning(
            "provider_failure_recorded",
            failed_calls=record.failed_calls,
            successful_calls=record.successful_calls,
            error=error_message,
        )

        if not record.circuit_breaker_open and should_trip(
            record.failed_calls, record.successful_calls, self._settings
        ):
            record = await self._trip(provider, region, now)
            log.error(
                "circuit_opened",
                failed_calls=record.failed_calls,
                failure_rate=round(record.failure_rate, 3),
                retry_after_ms=self._settings.open_timeout_ms,
            )
            return record

        self._memory.remember(key, record)
        return record

    async def record_success(
        self,
        provider: Provider | str,
        region: str | None = None,
        response_time_ms: int = 0,
    ) -> ProviderHealthRecord:
        """
        Record a successful provider call.

        A half-open circuit closes after ``success_threshold`` consecutive
        successes. A success never closes a circuit that is open but not yet
        half-open.

        Raises:
            HealthStoreUnavailableException: If the store cannot be written
        """
        provider = Provider(provider)
        region = self._region(region)
        key = circuit_key(provider, region)
        now = self._clock.now()
        log = logger.bind(provider=provider.value, region=region)

        record = await self._repo.get_or_create(provider, region, now)

        if record.is_half_open:
            successes = self._memory.bump_success(key)
            if successes >= self._settings.success_threshold:
                self._memory.clear_successes(key)
                record = await self._repo.upsert(
                    provider,
                    region,
                    now,
                    circuit_breaker_open=False,
                    status=HealthStatus.HEALTHY,
                    failed_calls=0,
                    successful_calls=0,
                    window_start_at=now,
                    avg_response_time_ms=response_time_ms,
                    last_success_at=now,
                )
                record_circuit_transition(provider.value, region, CircuitState.CLOSED.value)
                log.info("circuit_closed", consecutive_successes=successes)
            else:
                record = await self._repo.increment(
                    provider,
                    region,
                    now,
                    successful=1,
                    response_time_ms=response_time_ms,
                )
                log.info(
                    "half_open_success_recorded",
                    consecutive_successes=successes,
                    success_threshold=self._settings.success_threshold,
                )
        else:
            self._memory.clear_successes(key)
            if window_expired(record, now, self._settings):
                record = await self._repo.upsert(
                    provider,
                    region,
                    now,
                    failed_calls=0,
                    successful_calls=1,
                    window_start_at=now,
                    avg_response_time_ms=response_time_ms,
                    last_success_at=now,
                )
            else:
                record = await self._repo.increment(
                    provider,
                    region,
                    now,
                    successful=1,
                    response_time_ms=response_time_ms,
                )
            log.debug("provider_success_recorded", successful_calls=record.successful_calls)

        self._memory.remember(key, record)
        return record

    async def reset(
        self,
        provider: Provider | str,
        region: str | None = None,
    ) -> ProviderHealthRecord:
        """
        Force a partition closed with zeroed counters.

        Raises:
            HealthStoreUnavailableException: If the store cannot be written
        """
        provider = Provider(provider)
        region = self._region(region)
        key = circuit_key(provider, region)

        self._memory.clear_successes(key)
        record = await self._repo.reset(provider, region, self._clock.now())
        self._memory.remember(key, record)

        record_circuit_transition(provider.value, region, CircuitState.CLOSED.value)
        logger.info("circuit_reset", provider=provider.value, region=region)
        return record

    async def get_state(
        self,
        provider: Provider | str,
        region: str | None = None,
    ) -> CircuitBreakerState:
        """
        Diagnostic snapshot of a partition.

        The open timeout is evaluated here too (without writing), so an open
        circuit whose timeout elapsed reads as half-open even before
        ``is_circuit_open`` performed the transition.
        """
        provider = Provider(provider)
        region = self._region(region)
        now = self._clock.now()

        record = await self._repo.find(provider, region)
        if record is None:
            return CircuitBreakerState(
                provider=provider,
                region=region,
                state=CircuitState.CLOSED,
            )

        state = derive_state(record, now, self._settings)
        return CircuitBreakerState(
            provider=provider,
            region=region,
            state=state,
            failures=record.failed_calls,
            successes=record.successful_calls,
            avg_response_time_ms=record.avg_response_time_ms,
            last_failure_at=record.last_failure_at,
            last_success_at=record.last_success_at,
            last_error=record.last_error,
            next_attempt_at=(
                next_attempt_at(record, self._settings)
                if state == CircuitState.OPEN
                else None
            ),
        )

    async def _trip(
        self,
        provider: Provider,
        region: str,
        now: datetime,
    ) -> ProviderHealthRecord:
        key = circuit_key(provider, region)
        self._memory.clear_successes(key)
        record = await self._repo.upsert(
            provider,
            region,
            now,
            circuit_breaker_open=True,
            status=HealthStatus.DOWN,
        )
        self._memory.remember(key, record)
        record_circuit_transition(provider.value, region, CircuitState.OPEN.value)
        return record

    def _is_open_in_memory(self, key: str, now: datetime) -> bool:
        """Answer from the last record seen for this partition."""
        record = self._memory.recall(key)
        if record is None or not record.circuit_breaker_open or record.is_half_open:
            return False
        if open_timeout_elapsed(record, now, self._settings):
            self._memory.mark_half_open(key, now)
            self._memory.clear_successes(key)
            return False
        return True
