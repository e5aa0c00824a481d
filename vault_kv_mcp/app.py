import logging
import os
import time
import uuid
from pathlib import Path

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response as FastAPIResponse
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, Gauge, Histogram, generate_latest

from .errors import RemoteRequestError
from .logs import configure_logger
from .mcp_rpc import router as mcp_rpc_router
from .routes.health import router as health_router
from .routes.policies import router as policies_router
from .routes.secrets import router as secrets_router
from .settings import ConfigError, settings
from .transport import VAULT_REQUESTS


def _setup_tracing(app: FastAPI) -> None:
    endpoint = os.environ.get("OTEL_EXPORTER_OTLP_ENDPOINT")
    if not endpoint:
        return
    service_name = os.environ.get("OTEL_SERVICE_NAME", "vault-mcp")
    provider = TracerProvider(resource=Resource(attributes={SERVICE_NAME: service_name}))
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
    trace.set_tracer_provider(provider)
    FastAPIInstrumentor().instrument_app(app)


def create_app() -> FastAPI:
    app = FastAPI(title="Vault KV MCP Bridge", version="1.0.0")
    logs_dir = Path(os.environ.get("LOG_DIR", settings.LOG_DIR))
    req_logger = configure_logger("vault_kv_mcp.request", logs_dir, "requests.log", settings.LOG_LEVEL)
    configure_logger("vault_kv_mcp.response", logs_dir, "responses.log", settings.LOG_LEVEL)
    configure_logger("vault_kv_mcp.vault", logs_dir, "vault.log", settings.LOG_LEVEL)

    # CORS (optional, for MCP Inspector over HTTP)
    origins = (settings.CORS_ALLOW_ORIGINS or "").strip()
    if origins:
        origin_list = [o.strip() for o in origins.split(",") if o.strip()]
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origin_list,
            allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            allow_headers=["*"]
        )

    # Prometheus
    registry = CollectorRegistry()
    registry.register(VAULT_REQUESTS)
    http_req_hist = Histogram("http_request_duration_seconds", "Request duration", labelnames=("method", "route", "status"), registry=registry, buckets=(0.005,0.01,0.025,0.05,0.1,0.25,0.5,1,2,5))
    http_req_count = Counter("http_requests_total", "Total HTTP requests", labelnames=("method", "route", "status"), registry=registry)
    http_req_in_flight = Gauge("http_requests_in_progress", "Number of HTTP requests actively being processed", registry=registry)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.time(); request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        correlation_id = request.headers.get("x-correlation-id") or str(uuid.uuid4())
        request.state.correlation_id = correlation_id
        status = 500
        http_req_in_flight.inc()
        try:
            response = await call_next(request)
            status = response.status_code
            response.headers["X-Request-Id"] = request_id
            response.headers["X-Correlation-Id"] = correlation_id
            return response
        finally:
            dur = time.time() - start
            route = request.scope.get("route").path if request.scope.get("route") else request.url.path
            http_req_hist.labels(request.method, route, str(status)).observe(dur)
            http_req_count.labels(request.method, route, str(status)).inc()
            http_req_in_flight.dec()
            trace_id_hex = None
            ctx = trace.get_current_span().get_span_context()
            if ctx and ctx.trace_id:
                trace_id_hex = format(ctx.trace_id, "032x")
            req_logger.info(
                "request",
                extra={
                    "extra": {
                        "request_id": request_id,
                        "correlation_id": correlation_id,
                        "trace_id": trace_id_hex,
                        "client": request.client.host if request.client else "-",
                        "method": request.method,
                        "path": route,
                        "status": status,
                        "duration_ms": int(dur*1000),
                    }
                },
            )

    @app.exception_handler(RemoteRequestError)
    async def handle_vault_error(request: Request, exc: RemoteRequestError):
        # Not-found and permission outcomes keep their meaning; anything else is a bad gateway
        if exc.status == 404:
            return JSONResponse(status_code=404, content={"detail": str(exc), "error": "invalid_path"})
        if exc.status == 403:
            return JSONResponse(status_code=403, content={"detail": str(exc), "error": "forbidden"})
        return JSONResponse(status_code=502, content={"detail": str(exc), "error": "vault_error"})

    @app.exception_handler(httpx.HTTPError)
    async def handle_vault_unreachable(request: Request, exc: httpx.HTTPError):
        return JSONResponse(status_code=503, content={"detail": f"Vault unreachable: {exc}", "error": "vault_unavailable"})

    @app.exception_handler(ConfigError)
    async def handle_config_error(request: Request, exc: ConfigError):
        return JSONResponse(status_code=503, content={"detail": str(exc), "error": "not_configured"})

    @app.get("/metrics")
    async def metrics():
        return FastAPIResponse(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)

    # Routers
    app.include_router(health_router)
    if settings.EXPOSE_REST_ROUTES:
        app.include_router(secrets_router)
        app.include_router(policies_router)
    # JSON-RPC MCP endpoint (HTTP transport)
    app.include_router(mcp_rpc_router)

    _setup_tracing(app)
    logging.getLogger("vault_kv_mcp.vault").debug("app_created", extra={"extra": {"vault_addr": settings.VAULT_ADDR, "mount": settings.KV_MOUNT}})
    return app
