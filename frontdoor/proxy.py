"""
Transparent reverse proxy onto a backend origin.

The origin sees the same method, path, query string, headers and body the
client sent; only the scheme/host are swapped for the target's. Hop-by-hop
headers are dropped in both directions. Failures to reach the origin become
ProxyForwardError, which the front-end app turns into a 502/504.
"""

import time

import httpx
import structlog
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.background import BackgroundTask
from starlette.responses import StreamingResponse

from frontdoor import metrics
from frontdoor.errors import ProxyForwardError

log = structlog.get_logger(__name__)

HOP_BY_HOP = {
    "connection", "keep-alive", "proxy-authenticate", "proxy-authorization",
    "te", "trailers", "transfer-encoding", "upgrade",
}


def upstream_url(request: Request, target: str) -> httpx.URL:
    raw_path = (request.scope.get("raw_path") or request.url.path.encode()).split(b"?", 1)[0]
    query = request.scope.get("query_string", b"")
    if query:
        raw_path += b"?" + query
    return httpx.URL(target).copy_with(raw_path=raw_path)


def upstream_headers(request: Request) -> list[tuple[bytes, bytes]]:
    headers = [
        (key, value)
        for key, value in request.headers.raw
        if key.lower().decode("latin-1") not in HOP_BY_HOP and key.lower() != b"host"
    ]
    if request.client:
        prior = request.headers.get("x-forwarded-for")
        forwarded = f"{prior}, {request.client.host}" if prior else request.client.host
        headers = [(k, v) for k, v in headers if k.lower() != b"x-forwarded-for"]
        headers.append((b"x-forwarded-for", forwarded.encode("latin-1")))
    return headers


async def forward(request: Request, client: httpx.AsyncClient, target: str, route: str = "") -> StreamingResponse:
    url = upstream_url(request, target)
    has_body = "content-length" in request.headers or "transfer-encoding" in request.headers
    upstream_request = client.build_request(
        request.method,
        url,
        headers=upstream_headers(request),
        content=request.stream() if has_body else None,
    )

    start = time.monotonic()
    metrics.ACTIVE_REQUESTS.inc()
    try:
        resp = await client.send(upstream_request, stream=True)
    except httpx.TimeoutException as exc:
        metrics.UPSTREAM_ERRORS.labels(route).inc()
        metrics.PROXY_REQUESTS.labels(route, request.method, "504").inc()
        log.error("proxy_upstream_timeout", route=route, target=target, path=url.path)
        raise ProxyForwardError(target, f"Upstream timed out: {exc}", status_code=504) from exc
    except httpx.RequestError as exc:
        metrics.UPSTREAM_ERRORS.labels(route).inc()
        metrics.PROXY_REQUESTS.labels(route, request.method, "502").inc()
        log.error("proxy_upstream_error", route=route, target=target, path=url.path, error=str(exc))
        raise ProxyForwardError(target, f"Cannot reach upstream: {exc}") from exc
    finally:
        metrics.ACTIVE_REQUESTS.dec()

    duration = time.monotonic() - start
    metrics.PROXY_LATENCY.labels(route).observe(duration)
    metrics.PROXY_REQUESTS.labels(route, request.method, str(resp.status_code)).inc()
    log.info(
        "request_forwarded",
        route=route,
        method=request.method,
        path=url.path,
        status=resp.status_code,
        duration=round(duration, 3),
    )

    response = StreamingResponse(
        resp.aiter_raw(),
        status_code=resp.status_code,
        background=BackgroundTask(resp.aclose),
    )
    response.raw_headers = [
        (key, value)
        for key, value in resp.headers.raw
        if key.lower().decode("latin-1") not in HOP_BY_HOP
    ]
    return response


async def proxy_error_handler(request: Request, exc: ProxyForwardError) -> JSONResponse:
    return JSONResponse({"detail": exc.detail}, status_code=exc.status_code)
