"""
Front-end application for the frontdoor gateway.

Responsibilities:
  - Owns the routing table that fans requests out to backend origins by path prefix
  - Serves the root static directory (with index.html fallback) for unmatched paths
  - Shares one httpx client across all proxy routes
  - Structured request logging via structlog contextvars
  - Liveness and Prometheus metrics under the admin prefix
"""

import uuid
from contextlib import asynccontextmanager

import httpx
import structlog
from fastapi import FastAPI, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from frontdoor import __version__
from frontdoor.config import Settings
from frontdoor.errors import ProxyForwardError
from frontdoor.listener import mount_static
from frontdoor.proxy import proxy_error_handler

log = structlog.get_logger(__name__)


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.proxy_timeout_seconds),
        limits=httpx.Limits(
            max_connections=500,
            max_keepalive_connections=100,
            keepalive_expiry=30,
        ),
        follow_redirects=False,
        trust_env=False,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.http_client = create_http_client(app.state.settings)
    log.info("frontend_starting")

    yield

    await app.state.http_client.aclose()
    log.info("frontend_stopped")


def create_frontend_app(static_dir: str = "", settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings()
    app = FastAPI(
        title="frontdoor",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.add_exception_handler(ProxyForwardError, proxy_error_handler)

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request.headers.get("x-request-id") or str(uuid.uuid4()),
            client_ip=request.client.host if request.client else "unknown",
        )
        return await call_next(request)

    admin = "/" + settings.admin_prefix.strip("/")

    @app.get(f"{admin}/health", include_in_schema=False)
    async def health():
        return {"status": "ok"}

    @app.get(f"{admin}/metrics", include_in_schema=False)
    async def prometheus_metrics():
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    if static_dir:
        mount_static(app, static_dir)
    return app
