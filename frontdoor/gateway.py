"""
Gateway orchestrator.

Starts the front-end listener, then walks the configured services in order:

    resolve → launch (unless the service already has a url) → install route

One broken service never stops the rest. Bind failures, route conflicts and
unusable prefixes are recorded in ``Gateway.failures`` and logged; a service
whose listener failed to bind still gets its route, so its prefix answers 502.
"""

import asyncio
from dataclasses import dataclass

import structlog
from fastapi import FastAPI

from frontdoor.app import create_frontend_app
from frontdoor.config import ConfigStore, ServiceDescriptor, Settings
from frontdoor.errors import FrontdoorError, InvalidRoutePrefixError, ListenerBindError, RouteConflictError
from frontdoor.listener import Listener, launch, origin_url
from frontdoor.reload import ConfigWatcher
from frontdoor.resolver import resolve
from frontdoor.routes import RouteTable

log = structlog.get_logger(__name__)


@dataclass
class ServiceFailure:
    name: str
    route_prefix: str
    error: FrontdoorError


class Gateway:
    def __init__(self, store: ConfigStore, settings: Settings | None = None):
        self.store = store
        self.settings = settings or Settings()
        self.app: FastAPI | None = None
        self.frontend: Listener | None = None
        self.listeners: list[Listener] = []
        self.services: list[ServiceDescriptor] = []
        self.failures: list[ServiceFailure] = []
        self.routes = RouteTable()
        self._watcher_task: asyncio.Task | None = None

    async def start(self) -> None:
        """Bind the front end and set up every configured service.

        Raises ListenerBindError if the front-end address cannot be bound.
        """
        config = self.store.current
        self.app = create_frontend_app(config.static_dir, self.settings)
        self.frontend = Listener.bind(
            "frontend", self.app, config.bind_address, config.bind_port, verbose=config.verbose
        )
        self.frontend.start()
        self.listeners.append(self.frontend)

        for descriptor in config.services:
            self.add_service(descriptor, verbose=config.verbose)

        log.info(
            "gateway_started",
            address=self.frontend.address,
            port=self.frontend.port,
            routes=len(self.routes),
            listeners=len(self.listeners),
            failures=len(self.failures),
        )

    def add_service(self, descriptor: ServiceDescriptor, verbose: bool = True) -> ServiceDescriptor:
        resolved = resolve(descriptor)

        if not resolved.url:
            try:
                url, listener = launch(resolved, verbose=verbose)
            except ListenerBindError as exc:
                self._record_failure(resolved, exc)
                url = origin_url(resolved.bind_address, resolved.bind_port)
            else:
                self.listeners.append(listener)
                resolved = resolved.model_copy(update={"bind_port": listener.port})
            resolved = resolved.model_copy(update={"url": url})

        try:
            self.routes.install(self.app, resolved.route_prefix, resolved.url)
        except (RouteConflictError, InvalidRoutePrefixError) as exc:
            self._record_failure(resolved, exc)

        self.services.append(resolved)
        return resolved

    def _record_failure(self, descriptor: ServiceDescriptor, exc: FrontdoorError) -> None:
        self.failures.append(ServiceFailure(descriptor.name, descriptor.route_prefix, exc))
        log.error(
            "service_setup_failed",
            service=descriptor.name,
            route_prefix=descriptor.route_prefix,
            error=str(exc),
        )

    async def run(self) -> None:
        """Start everything and block until every listener has exited."""
        await self.start()
        if self.store.path is not None:
            watcher = ConfigWatcher(self.store, self.store.path, self.settings.reload_interval_seconds)
            self._watcher_task = asyncio.create_task(watcher.run(), name="config-watcher")
        try:
            await asyncio.gather(*(lst.task for lst in self.listeners if lst.task), return_exceptions=True)
        finally:
            self._stop_watcher()

    def _stop_watcher(self) -> None:
        if self._watcher_task is not None:
            self._watcher_task.cancel()
            self._watcher_task = None

    async def close(self) -> None:
        self._stop_watcher()
        for listener in reversed(self.listeners):
            await listener.close()
        self.listeners.clear()
