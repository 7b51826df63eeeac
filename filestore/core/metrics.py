"""Prometheus metrics for the HTTP app and the storage backends."""
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

HTTP_REQUESTS = Counter(
    "filestore_http_requests_total",
    "HTTP requests by route template and status class",
    ["method", "route", "status_class"],
)
HTTP_LATENCY = Histogram(
    "filestore_http_request_duration_seconds",
    "HTTP request latency",
    ["method", "route"],
    buckets=(0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0),
)
STORAGE_OPERATIONS_TOTAL = Counter(
    "storage_operations_total",
    "Storage backend operations",
    ["backend", "operation", "result"],  # result: success | failure
)
STORAGE_OPERATION_LATENCY = Histogram(
    "storage_operation_duration_seconds",
    "Storage backend operation latency",
    ["backend", "operation"],
    # remote backends: uploads and mkzip index writes can take seconds
    buckets=(0.001, 0.01, 0.1, 0.5, 1.0, 2.5, 10.0, 30.0),
)
SIGNED_URL_MINT_TOTAL = Counter(
    "storage_signed_url_mint_total",
    "Signed URL mints",
    ["backend"],
)


def record_request(method: str, route: str, status_code: int, latency_seconds: float) -> None:
    """route is the matched template (/files/{path:path}), never the raw path."""
    status_class = f"{min(max(status_code // 100, 1), 5)}xx"
    HTTP_REQUESTS.labels(method=method, route=route, status_class=status_class).inc()
    HTTP_LATENCY.labels(method=method, route=route).observe(latency_seconds)


def record_storage_operation(backend: str, operation: str, ok: bool, latency_seconds: float | None = None) -> None:
    STORAGE_OPERATIONS_TOTAL.labels(
        backend=backend,
        operation=operation,
        result="success" if ok else "failure",
    ).inc()
    if latency_seconds is not None:
        STORAGE_OPERATION_LATENCY.labels(backend=backend, operation=operation).observe(latency_seconds)


def record_signed_url_mint(backend: str) -> None:
    SIGNED_URL_MINT_TOTAL.labels(backend=backend).inc()


def get_metrics() -> tuple[bytes, str]:
    return generate_latest(), CONTENT_TYPE_LATEST
