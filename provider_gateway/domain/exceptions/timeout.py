"""Deadline-related domain exceptions."""

from .base import DomainException


class OperationTimeoutException(DomainException):
    """Raised when an operation does not complete within its bound."""

    def __init__(
        self,
        message: str,
        operation_name: str = "unknown",
        timeout_ms: float = 0,
    ):
        super().__init__(
            message=message,
            code="TIMEOUT",
        )
        self.operation_name = operation_name
        self.timeout_ms = timeout_ms


def is_timeout_error(error: BaseException | None) -> bool:
    """Check whether an error is a timeout raised by the deadline enforcer."""
    return isinstance(error, OperationTimeoutException) or (
        getattr(error, "code", None) == "TIMEOUT"
    )
