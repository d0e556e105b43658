"""
Fill in the unset fields of a ServiceDescriptor.

Order matters:
  1. bind_port    : ephemeral port when 0 (left at 0 if allocation fails)
  2. bind_address : loopback when empty; backends are only reachable via the gateway
  3. route_prefix : "/" + last component of static_dir when empty

Resolution never raises.
"""

import structlog

from frontdoor.config import ServiceDescriptor
from frontdoor.errors import PortAllocationError
from frontdoor.ports import allocate_ephemeral_port

log = structlog.get_logger(__name__)

DEFAULT_BACKEND_ADDRESS = "127.0.0.1"


def derive_route_prefix(static_dir: str) -> str:
    """``"./public/app1"`` → ``"/app1"``; ``"assets"`` → ``"/assets"``."""
    last = static_dir.replace("\\", "/").rsplit("/", 1)[-1]
    return "/" + last


def resolve(descriptor: ServiceDescriptor) -> ServiceDescriptor:
    updates: dict = {}

    if descriptor.bind_port == 0:
        try:
            updates["bind_port"] = allocate_ephemeral_port()
        except PortAllocationError as exc:
            log.warning("port_allocation_failed", service=descriptor.name, error=str(exc))

    if not descriptor.bind_address:
        updates["bind_address"] = DEFAULT_BACKEND_ADDRESS

    if not descriptor.route_prefix and descriptor.static_dir:
        updates["route_prefix"] = derive_route_prefix(descriptor.static_dir)

    resolved = descriptor.model_copy(update=updates)
    log.debug(
        "service_resolved",
        service=resolved.name,
        bind_address=resolved.bind_address,
        bind_port=resolved.bind_port,
        route_prefix=resolved.route_prefix,
    )
    return resolved
