"""Prometheus metric definitions for the gateway."""

from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "route", "method", "status_code"],
)
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration seconds",
    ["service", "route", "method"],
)
messages_published_total = Counter(
    "ingest_messages_published_total",
    "Messages acknowledged by Kafka",
    ["service", "topic"],
)
publish_failures_total = Counter(
    "ingest_publish_failures_total",
    "Publish attempts that failed or timed out inside the client",
    ["service", "topic", "error_type"],
)
requests_rejected_total = Counter(
    "ingest_requests_rejected_total",
    "Requests rejected before publishing",
    ["service", "reason"],
)
publish_latency_seconds = Histogram(
    "ingest_publish_latency_seconds",
    "Time from send to broker acknowledgment",
    ["service", "topic"],
)


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
