"""
Prefix routes on the front-end router.

A prefix owns the exact path and everything below it on a segment boundary:
"/app1" forwards "/app1", "/app1/" and "/app1/x", but not "/app10". Prefixes
that nest inside one another are rejected; the first one installed wins.
"""

import structlog
from fastapi import FastAPI, Request

from frontdoor.errors import InvalidRoutePrefixError, RouteConflictError
from frontdoor.proxy import forward

log = structlog.get_logger(__name__)

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]


def should_route(prefix: str) -> bool:
    """The root belongs to the front-end listener itself."""
    return prefix not in ("", "/")


def normalize_prefix(prefix: str) -> str:
    prefix = "/" + prefix.strip("/")
    return prefix


def overlaps(a: str, b: str) -> bool:
    return a == b or a.startswith(b + "/") or b.startswith(a + "/")


class RouteTable:
    """Installed prefix → origin URL, in installation order."""

    def __init__(self):
        self._routes: dict[str, str] = {}

    def __contains__(self, prefix: str) -> bool:
        return normalize_prefix(prefix) in self._routes

    def __len__(self) -> int:
        return len(self._routes)

    def items(self) -> list[tuple[str, str]]:
        return list(self._routes.items())

    def target(self, prefix: str) -> str | None:
        return self._routes.get(normalize_prefix(prefix))

    def check(self, prefix: str) -> None:
        for existing in self._routes:
            if overlaps(prefix, existing):
                raise RouteConflictError(prefix, existing)

    def install(self, app: FastAPI, prefix: str, target: str) -> bool:
        """Forward every method under ``prefix`` to ``target``.

        Returns False when ``prefix`` is the root and nothing was installed.
        Raises RouteConflictError if ``prefix`` overlaps an installed one and
        InvalidRoutePrefixError if it would be read as a path template.
        """
        prefix = normalize_prefix(prefix)
        if not should_route(prefix):
            return False
        if "{" in prefix or "}" in prefix:
            raise InvalidRoutePrefixError(prefix, "braces would become path parameters")
        self.check(prefix)

        async def proxy_route(request: Request):
            return await forward(request, request.app.state.http_client, target, route=prefix)

        name = f"proxy:{prefix}"
        app.add_api_route(prefix, proxy_route, methods=PROXY_METHODS, name=name, include_in_schema=False)
        app.add_api_route(
            prefix + "/{path:path}", proxy_route, methods=PROXY_METHODS, name=name, include_in_schema=False
        )
        self._routes[prefix] = target
        log.info("route_installed", prefix=prefix, target=target)
        return True
