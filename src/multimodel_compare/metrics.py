from __future__ import annotations

from prometheus_client import Counter, Histogram, start_http_server

server_requests_total = Counter(
    "compare_server_requests_total",
    "Total HTTP requests handled by server",
    labelnames=["path", "status"],
)

server_errors_total = Counter(
    "compare_server_errors_total",
    "Total errors returned by server",
    labelnames=["type"],
)

provider_requests_total = Counter(
    "compare_provider_requests_total",
    "Per-model completions by provider and outcome",
    labelnames=["provider", "outcome"],
)

provider_latency_seconds = Histogram(
    "compare_provider_latency_seconds",
    "Live provider call latency",
    buckets=[0.1, 0.3, 0.5, 1, 2, 5, 10, 30, 60],
    labelnames=["provider"],
)

batch_latency_seconds = Histogram(
    "compare_batch_latency_seconds",
    "Wall-clock time of one fan-out/fan-in batch",
    buckets=[0.1, 0.3, 0.5, 1, 2, 5, 10, 30, 60, 120],
)

upstream_circuit_breaker_events_total = Counter(
    "compare_upstream_circuit_breaker_events_total",
    "Circuit breaker events",
    labelnames=["provider", "event"],
)


def maybe_start_metrics(*, enable: bool, bind: str, port: int) -> None:
    if not enable:
        return
    start_http_server(port, addr=bind)
