"""
Static-content listeners.

Each listener is a small Starlette app served by its own uvicorn.Server in a
background asyncio task. The socket is bound before the task is created, so a
port clash surfaces as ListenerBindError at launch time rather than inside the
task. There is no readiness wait: a request routed to a listener right after
launch can race its startup.
"""

import asyncio
import socket
from pathlib import Path

import structlog
import uvicorn
from fastapi import FastAPI
from starlette.exceptions import HTTPException
from starlette.responses import FileResponse
from starlette.staticfiles import StaticFiles
from starlette.types import Scope

from frontdoor import metrics
from frontdoor.config import ServiceDescriptor
from frontdoor.errors import ListenerBindError

log = structlog.get_logger(__name__)

WILDCARD_ADDRESSES = {"", "0.0.0.0", "::"}


class FallbackStaticFiles(StaticFiles):
    """StaticFiles that answers unmatched requests with a fixed file."""

    def __init__(self, *, directory: str, fallback: Path | None = None):
        super().__init__(directory=directory, html=True)
        self.fallback = fallback

    async def get_response(self, path: str, scope: Scope):
        try:
            return await super().get_response(path, scope)
        except HTTPException as exc:
            # 405 too: static serving only knows GET/HEAD, the fallback takes any method
            if self.fallback is None or exc.status_code not in (404, 405):
                raise
            return FileResponse(self.fallback)


def mount_static(app: FastAPI, static_dir: str) -> None:
    """Serve ``static_dir`` for every request the app's routes don't match.

    index.html is looked up once, here; creating it later does not enable the
    fallback.
    """
    directory = Path(static_dir)
    if not directory.is_dir():
        log.warning("static_dir_missing", static_dir=static_dir)
        return

    index = directory / "index.html"
    fallback = index if index.is_file() else None
    app.router.default = FallbackStaticFiles(directory=str(directory), fallback=fallback)
    log.debug("static_mounted", static_dir=static_dir, index_fallback=fallback is not None)


def build_static_app(static_dir: str, title: str = "frontdoor backend") -> FastAPI:
    app = FastAPI(title=title, docs_url=None, redoc_url=None, openapi_url=None)
    if static_dir:
        mount_static(app, static_dir)
    return app


def origin_url(address: str, port: int) -> str:
    if address in WILDCARD_ADDRESSES:
        address = "127.0.0.1"
    if ":" in address:
        address = f"[{address}]"
    return f"http://{address}:{port}"


def bind_socket(address: str, port: int) -> socket.socket:
    family = socket.AF_INET6 if ":" in address else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((address, port))
        sock.listen(2048)
    except OSError as exc:
        sock.close()
        raise ListenerBindError(address, port, exc.strerror or str(exc)) from exc
    return sock


class Listener:
    """Handle on one running uvicorn server and the task serving it."""

    def __init__(self, name: str, app, sock: socket.socket, verbose: bool = True):
        self.name = name
        self.address, self.port = sock.getsockname()[:2]
        self._sock = sock
        self.server = uvicorn.Server(
            uvicorn.Config(
                app,
                log_config=None,  # structlog owns logging
                access_log=verbose,
                server_header=False,
            )
        )
        self.task: asyncio.Task | None = None

    @classmethod
    def bind(cls, name: str, app, address: str, port: int, verbose: bool = True) -> "Listener":
        return cls(name, app, bind_socket(address, port), verbose=verbose)

    @property
    def url(self) -> str:
        return origin_url(self.address, self.port)

    def start(self) -> None:
        self.task = asyncio.create_task(
            self.server.serve(sockets=[self._sock]), name=f"listener:{self.name}"
        )
        metrics.LISTENERS_RUNNING.inc()
        log.info("listener_started", listener=self.name, address=self.address, port=self.port)

    async def close(self) -> None:
        if self.task is None:
            self._sock.close()
            return
        self.server.should_exit = True
        await asyncio.gather(self.task, return_exceptions=True)
        self._sock.close()
        self.task = None
        metrics.LISTENERS_RUNNING.dec()
        log.info("listener_stopped", listener=self.name)


def launch(descriptor: ServiceDescriptor, verbose: bool = True) -> tuple[str, Listener | None]:
    """Start a static listener for ``descriptor`` and return its origin URL.

    A descriptor that already carries a url is running elsewhere: nothing is
    started and the url is returned verbatim. Raises ListenerBindError when
    the address/port cannot be bound.
    """
    if descriptor.url:
        return descriptor.url, None

    name = descriptor.name or descriptor.route_prefix or f"{descriptor.bind_address}:{descriptor.bind_port}"
    app = build_static_app(descriptor.static_dir, title=name)
    listener = Listener.bind(name, app, descriptor.bind_address, descriptor.bind_port, verbose=verbose)
    listener.start()
    return listener.url, listener
