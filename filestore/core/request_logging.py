"""Access log middleware: one line per request with request id, route template, status and latency."""
import json
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from filestore.core.config import get_settings
from filestore.core.logging_redaction import redact_for_log
from filestore.core.metrics import record_request

logger = logging.getLogger("filestore.request")

UNMETERED_ROUTES = ("/metrics", "/healthz")


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or "<unmatched>"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Tags each response with X-Request-ID and logs it.

    Only the path is logged. Query strings carry e/token signatures and
    stay out of the log.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id
        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started

        route = _route_template(request)
        record = redact_for_log({
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "route": route,
            "status_code": response.status_code,
            "latency_ms": round(elapsed * 1000, 2),
            "backend": get_settings().storage_backend,
        })
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        if get_settings().log_json:
            logger.log(level, json.dumps({"event": "request", **record}))
        else:
            logger.log(
                level,
                "%s %s -> %s in %.2fms [%s]",
                request.method, record["path"], response.status_code, record["latency_ms"], request_id,
            )

        response.headers["X-Request-ID"] = request_id
        if route not in UNMETERED_ROUTES:
            record_request(request.method, route, response.status_code, elapsed)
        return response
