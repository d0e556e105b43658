"""Ephemeral port allocation for services that leave bindPort unset."""

import socket

from frontdoor.errors import PortAllocationError


def allocate_ephemeral_port(host: str = "127.0.0.1") -> int:
    """Ask the OS for a free TCP port on ``host`` and release it again.

    The port is only known to be free at the moment of the call; another
    process may grab it before the real listener binds.
    """
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind((host, 0))
            return sock.getsockname()[1]
    except OSError as exc:
        raise PortAllocationError(f"No free port available on {host}: {exc}") from exc
