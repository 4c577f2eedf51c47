"""Value objects for the deadline enforcer."""

from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar, Union

T = TypeVar("T")

# A unit of work: a zero-argument callable returning an awaitable (or a plain
# value for work that completes synchronously).
Operation = Callable[[], Union[Awaitable[T], T]]

# Best-effort hooks may be sync or async.
Callback = Callable[[], Union[Awaitable[None], None]]


@dataclass(frozen=True)
class TimeoutConfig:
    """
    Bound for a single operation.

    ``on_timeout`` runs after the timer fires and before the timeout error is
    raised; use it to cancel the underlying work (e.g. close an HTTP request).
    """

    timeout_ms: float
    operation_name: str = "unknown"
    error_message: Optional[str] = None
    on_timeout: Optional[Callback] = None

    def __post_init__(self) -> None:
        if self.timeout_ms < 0:
            raise ValueError(f"timeout_ms must be >= 0, got {self.timeout_ms}")

    def with_overrides(self, **overrides: Any) -> "TimeoutConfig":
        """Return a copy with the given fields replaced."""
        return replace(self, **overrides)

    def message(self) -> str:
        return self.error_message or (
            f"Operation '{self.operation_name}' timed out after {self.timeout_ms:g}ms"
        )


@dataclass(frozen=True)
class Deadline:
    """One tier of ``with_deadlines``; the largest ``ms`` is the hard cutoff."""

    ms: float
    on_deadline: Optional[Callback] = None


@dataclass(frozen=True)
class ParallelOperation(Generic[T]):
    operation: Operation
    config: TimeoutConfig


@dataclass(frozen=True)
class ParallelResult(Generic[T]):
    """Per-item outcome of ``with_parallel_timeouts``."""

    success: bool
    result: Optional[T] = None
    error: Optional[Exception] = None
