"""
Prometheus metrics for the Moments API.

- HTTP request counter (method, path, status)
- Request latency histogram (method, path)
- Moment action outcome counter (action, result)

Metrics are stored in-memory using prometheus-client.
"""

from typing import Optional

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=["method", "path", "status"]
)

request_latency_seconds = Histogram(
    "request_latency_seconds",
    "Request latency in seconds",
    labelnames=["method", "path"]
)

# result: success, failure
moment_actions_total = Counter(
    "moment_actions_total",
    "Total dispatched actions by outcome",
    labelnames=["action", "result"]
)

KNOWN_ACTIONS = {"addMoment", "uploadImage", "getMoments"}


def record_http_request(method: str, path: str, status: int, latency_seconds: float) -> None:
    """Record one HTTP request and its latency."""
    normalized_path = path.split("?")[0]

    http_requests_total.labels(
        method=method,
        path=normalized_path,
        status=str(status)
    ).inc()

    request_latency_seconds.labels(
        method=method,
        path=normalized_path
    ).observe(latency_seconds)


def record_action_outcome(action: Optional[str], success: bool) -> None:
    """
    Record a dispatched action's outcome.

    Unknown action names are folded into "invalid" to keep label cardinality bounded.
    """
    label = action if action in KNOWN_ACTIONS else "invalid"
    moment_actions_total.labels(
        action=label,
        result="success" if success else "failure"
    ).inc()


def get_metrics() -> bytes:
    """Metrics in Prometheus text exposition format."""
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
