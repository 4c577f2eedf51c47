"""
Deadline Enforcer

Bounds the wall-clock duration of asynchronous operations:

- with_timeout: hard timeout with best-effort cleanup hook
- with_timeout_or_none / with_timeout_or_default: graceful degradation
- with_parallel_timeouts: independent timeouts over concurrent operations
- with_deadlines: soft deadline callbacks ahead of a hard cutoff

Presets per operation category live in ``settings.TimeoutSettings``.
"""

from provider_gateway.domain.exceptions import OperationTimeoutException, is_timeout_error

from .enforcer import (
    create_timeout_wrapper,
    with_deadlines,
    with_parallel_timeouts,
    with_timeout,
    with_timeout_or_default,
    with_timeout_or_none,
)
from .models import (
    Callback,
    Deadline,
    Operation,
    ParallelOperation,
    ParallelResult,
    TimeoutConfig,
)
from .settings import TimeoutSettings, get_timeout_settings, timeout_settings

__all__ = [
    "OperationTimeoutException",
    "is_timeout_error",
    "create_timeout_wrapper",
    "with_deadlines",
    "with_parallel_timeouts",
    "with_timeout",
    "with_timeout_or_default",
    "with_timeout_or_none",
    "Deadline",
    "Callback",
    "Operation",
    "ParallelOperation",
    "ParallelResult",
    "TimeoutConfig",
    "TimeoutSettings",
    "get_timeout_settings",
    "timeout_settings",
]
