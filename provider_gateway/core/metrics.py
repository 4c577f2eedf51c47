"""Prometheus metrics for the Provider Gateway service.

Metrics are organized into three categories:

Circuit Breaker Metrics:
- provider_gateway_circuit_transitions_total: State transitions by provider/region
- provider_gateway_circuit_open: 1 while a partition's circuit is open
- provider_gateway_circuit_rejections_total: Calls fast-failed by an open circuit
- provider_gateway_health_store_fallbacks_total: Reads served from memory

Deadline Metrics:
- provider_gateway_timeouts_total: Hard timeouts by operation
- provider_gateway_soft_deadlines_total: Soft deadlines reached by operation
- provider_gateway_provider_call_latency_seconds: Guarded provider call latency

Webhook / HTTP Metrics:
- provider_gateway_webhook_total: Webhook deliveries by provider and outcome
- provider_gateway_http_requests_total: HTTP requests by endpoint/status
"""

import time
from contextlib import contextmanager
from typing import Generator

from prometheus_client import Counter, Histogram, Gauge, REGISTRY, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST


# =============================================================================
# Circuit Breaker Metrics
# =============================================================================

circuit_transitions = Counter(
    "provider_gateway_circuit_transitions_total",
    "Circuit breaker state transitions",
    ["provider", "region", "to_state"],  # open, half_open, closed
)

circuit_open_gauge = Gauge(
    "provider_gateway_circuit_open",
    "Whether the circuit for a provider/region is open (1) or not (0)",
    ["provider", "region"],
)

circuit_rejections = Counter(
    "provider_gateway_circuit_rejections_total",
    "Provider calls rejected because the circuit was open",
    ["provider", "region"],
)

health_store_fallbacks = Counter(
    "provider_gateway_health_store_fallbacks_total",
    "Circuit checks served from the in-memory fallback",
    ["provider", "region"],
)


# =============================================================================
# Deadline Metrics
# =============================================================================

operation_timeouts = Counter(
    "provider_gateway_timeouts_total",
    "Operations that exceeded their hard timeout",
    ["operation"],
)

soft_deadlines_reached = Counter(
    "provider_gateway_soft_deadlines_total",
    "Soft deadlines reached before an operation settled",
    ["operation"],
)

provider_call_latency = Histogram(
    "provider_gateway_provider_call_latency_seconds",
    "Latency of guarded provider calls in seconds",
    ["provider", "outcome"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)


# =============================================================================
# Webhook / HTTP Metrics
# =============================================================================

webhook_total = Counter(
    "provider_gateway_webhook_total",
    "Inbound webhook deliveries by outcome",
    ["provider", "outcome"],  # processed, duplicate, failed, invalid_signature
)

webhook_latency = Histogram(
    "provider_gateway_webhook_latency_seconds",
    "Inbound webhook processing latency in seconds",
    ["provider"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

http_requests_total = Counter(
    "provider_gateway_http_requests_total",
    "Total HTTP requests by endpoint and status",
    ["method", "endpoint", "status"],
)

http_request_latency = Histogram(
    "provider_gateway_http_request_latency_seconds",
    "HTTP request latency by endpoint",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)


# =============================================================================
# Helper Functions
# =============================================================================

def record_circuit_transition(provider: str, region: str, to_state: str) -> None:
    """Record a circuit state transition and update the open gauge."""
    circuit_transitions.labels(provider=provider, region=region, to_state=to_state).inc()
    circuit_open_gauge.labels(provider=provider, region=region).set(
        1 if to_state == "open" else 0
    )


def record_circuit_rejection(provider: str, region: str) -> None:
    """Record a call fast-failed by an open circuit."""
    circuit_rejections.labels(provider=provider, region=region).inc()


def record_health_store_fallback(provider: str, region: str) -> None:
    """Record a circuit check answered from the in-memory fallback."""
    health_store_fallbacks.labels(provider=provider, region=region).inc()


def record_timeout(operation: str) -> None:
    """Record a hard timeout."""
    operation_timeouts.labels(operation=operation).inc()


def record_soft_deadline(operation: str) -> None:
    """Record a soft deadline being reached."""
    soft_deadlines_reached.labels(operation=operation).inc()


def record_provider_call(provider: str, outcome: str, duration: float) -> None:
    """Record the latency of a guarded provider call."""
    provider_call_latency.labels(provider=provider, outcome=outcome).observe(duration)


def record_webhook(provider: str, outcome: str) -> None:
    """Record an inbound webhook outcome."""
    webhook_total.labels(provider=provider, outcome=outcome).inc()


@contextmanager
def track_webhook_latency(provider: str) -> Generator[None, None, None]:
    """Context manager to track inbound webhook latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        duration = time.perf_counter() - start
        webhook_latency.labels(provider=provider).observe(duration)


def record_http_request(method: str, endpoint: str, status: int, duration: float) -> None:
    """Record an HTTP request."""
    http_requests_total.labels(method=method, endpoint=endpoint, status=str(status)).inc()
    http_request_latency.labels(method=method, endpoint=endpoint).observe(duration)


def get_metrics() -> bytes:
    """Get current metrics in Prometheus format."""
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    """Get the content type for metrics response."""
    return CONTENT_TYPE_LATEST
