import socket
from unittest.mock import patch

import pytest

from frontdoor.errors import PortAllocationError
from frontdoor.ports import allocate_ephemeral_port


def test_allocated_port_is_in_range():
    port = allocate_ephemeral_port()
    assert 0 < port <= 65535


def test_allocated_port_is_free_after_allocation():
    port = allocate_ephemeral_port()
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", port))


def test_allocation_failure_is_wrapped():
    with patch("frontdoor.ports.socket.socket") as fake_socket:
        fake_socket.return_value.__enter__.return_value.bind.side_effect = OSError("no ports")
        with pytest.raises(PortAllocationError):
            allocate_ephemeral_port()
