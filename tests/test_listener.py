import socket
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

from frontdoor.config import ServiceDescriptor
from frontdoor.errors import ListenerBindError
from frontdoor.listener import Listener, bind_socket, build_static_app, launch, origin_url


def test_static_files_are_served(web_root: Path):
    client = TestClient(build_static_app(str(web_root / "app1")))

    resp = client.get("/style.css")
    assert resp.status_code == 200
    assert "color: red" in resp.text


def test_unmatched_path_falls_back_to_index(web_root: Path, app1_index: bytes):
    client = TestClient(build_static_app(str(web_root / "app1")))

    for path in ("/", "/app1/index.html", "/deep/client/route"):
        resp = client.get(path)
        assert resp.status_code == 200
        assert resp.content == app1_index

    assert client.post("/form-target").content == app1_index


def test_no_index_means_plain_not_found(web_root: Path):
    client = TestClient(build_static_app(str(web_root / "plain")))

    assert client.get("/readme.txt").text == "plain text"
    assert client.get("/missing").status_code == 404


def test_index_checked_once_at_build_time(web_root: Path):
    plain = web_root / "plain"
    client = TestClient(build_static_app(str(plain)))
    (plain / "index.html").write_text("late index")

    assert client.get("/missing").status_code == 404


def test_missing_static_dir_serves_nothing(tmp_path: Path):
    client = TestClient(build_static_app(str(tmp_path / "nope")))
    assert client.get("/").status_code == 404


@pytest.mark.parametrize(
    "address, port, url",
    [
        ("127.0.0.1", 9001, "http://127.0.0.1:9001"),
        ("0.0.0.0", 8082, "http://127.0.0.1:8082"),
        ("10.1.2.3", 80, "http://10.1.2.3:80"),
        ("::1", 9002, "http://[::1]:9002"),
    ],
)
def test_origin_url(address, port, url):
    assert origin_url(address, port) == url


def test_bind_socket_reports_port_in_use():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as holder:
        holder.bind(("127.0.0.1", 0))
        holder.listen(1)
        taken = holder.getsockname()[1]

        with pytest.raises(ListenerBindError) as excinfo:
            bind_socket("127.0.0.1", taken)

    assert excinfo.value.port == taken


def test_launch_skips_descriptor_with_url():
    url, listener = launch(ServiceDescriptor(url="http://10.0.0.5:3000", bind_address="127.0.0.1"))
    assert url == "http://10.0.0.5:3000"
    assert listener is None


async def test_launch_serves_static_dir(web_root: Path):
    descriptor = ServiceDescriptor(name="app1", static_dir=str(web_root / "app1"), bind_address="127.0.0.1")
    url, listener = launch(descriptor, verbose=False)
    try:
        assert url == f"http://127.0.0.1:{listener.port}"
        async with httpx.AsyncClient() as client:
            resp = await client.get(f"{url}/style.css")
        assert resp.status_code == 200
        assert "color: red" in resp.text
    finally:
        await listener.close()


async def test_listener_close_releases_port():
    listener = Listener.bind("tmp", build_static_app(""), "127.0.0.1", 0, verbose=False)
    listener.start()
    port = listener.port
    await listener.close()

    bind_socket("127.0.0.1", port).close()
