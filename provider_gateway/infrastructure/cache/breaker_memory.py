"""Process-local circuit breaker state."""

from collections import OrderedDict
from dataclasses import replace
from datetime import datetime

from provider_gateway.domain.entities import HealthStatus, ProviderHealthRecord


class BreakerMemory:
    """
    In-memory companion to the durable health store.

    Holds two things per ``provider:region`` key:

    - the last record read from the store, used by ``is_circuit_open`` when
      the store is unreachable (bounded, least recently used evicted first)
    - the consecutive-success counter of a half-open circuit

    Neither survives a restart and neither is shared between processes.
    """

    def __init__(self, max_entries: int = 1024):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._max_entries = max_entries
        self._records: "OrderedDict[str, ProviderHealthRecord]" = OrderedDict()
        self._half_open_successes: dict[str, int] = {}

    def remember(self, key: str, record: ProviderHealthRecord) -> None:
        """Store the latest known record for ``key``."""
        self._records[key] = record
        self._records.move_to_end(key)
        while len(self._records) > self._max_entries:
            evicted, _ = self._records.popitem(last=False)
            self._half_open_successes.pop(evicted, None)

    def recall(self, key: str) -> ProviderHealthRecord | None:
        record = self._records.get(key)
        if record is not None:
            self._records.move_to_end(key)
        return record

    def forget(self, key: str) -> None:
        self._records.pop(key, None)
        self._half_open_successes.pop(key, None)

    def mark_half_open(self, key: str, now: datetime) -> None:
        """Reflect a half-open transition in the cached record, if any."""
        record = self._records.get(key)
        if record is not None:
            self._records[key] = replace(record, status=HealthStatus.DEGRADED, updated_at=now)

    def bump_success(self, key: str) -> int:
        """Increment and return the half-open consecutive-success count."""
        count = self._half_open_successes.get(key, 0) + 1
        self._half_open_successes[key] = count
        return count

    def clear_successes(self, key: str) -> None:
        self._half_open_successes.pop(key, None)

    def successes(self, key: str) -> int:
        return self._half_open_successes.get(key, 0)

    def __len__(self) -> int:
        return len(self._records)
