"""FastAPI app: access log, health, metrics and signed local file serving."""
import hmac
import logging

from fastapi import FastAPI, Header, HTTPException, status
from fastapi.responses import Response

from filestore.api.files import router as files_router
from filestore.core.config import Settings, get_settings
from filestore.core.metrics import get_metrics
from filestore.core.request_logging import RequestLoggingMiddleware


def configure_logging(settings: Settings) -> None:
    """Access log as bare JSON lines when log_json; backend loggers follow debug."""
    logging.getLogger("filestore").setLevel(logging.DEBUG if settings.debug else logging.INFO)
    if not settings.log_json:
        return
    access = logging.getLogger("filestore.request")
    access.handlers.clear()
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    access.addHandler(handler)
    access.propagate = False


settings = get_settings()
configure_logging(settings)

app = FastAPI(title=settings.app_name, debug=settings.debug)
app.add_middleware(RequestLoggingMiddleware)


@app.middleware("http")
async def security_headers(request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    # keeps signed query strings out of Referer
    response.headers["Referrer-Policy"] = "no-referrer"
    return response


app.include_router(files_router)


@app.get("/healthz")
async def healthz():
    return {"status": "ok", "backend": get_settings().storage_backend}


@app.get("/metrics", response_class=Response)
async def metrics(x_metrics_secret: str | None = Header(default=None)):
    """Prometheus exposition. With METRICS_SECRET set, callers must send it in X-Metrics-Secret."""
    secret = get_settings().metrics_secret
    if secret and not hmac.compare_digest(x_metrics_secret or "", secret):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    body, content_type = get_metrics()
    return Response(content=body, media_type=content_type)
