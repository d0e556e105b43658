"""Shared fixtures: on-disk static sites and a live echo origin."""

from pathlib import Path

import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from frontdoor.listener import Listener

APP1_INDEX = b"<html><body>app1 index</body></html>"


@pytest.fixture
def web_root(tmp_path: Path) -> Path:
    """tmp/web/app1 with index.html + style.css, tmp/web/plain without an index."""
    app1 = tmp_path / "web" / "app1"
    app1.mkdir(parents=True)
    (app1 / "index.html").write_bytes(APP1_INDEX)
    (app1 / "style.css").write_text("body { color: red; }")

    plain = tmp_path / "web" / "plain"
    plain.mkdir()
    (plain / "readme.txt").write_text("plain text")
    return tmp_path / "web"


def build_echo_app() -> FastAPI:
    app = FastAPI()

    @app.api_route("/{path:path}", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
    async def echo(request: Request, path: str):
        body = await request.body()
        return JSONResponse(
            {
                "method": request.method,
                "path": request.url.path,
                "query": request.url.query,
                "body": body.decode(),
                "host": request.headers.get("host"),
                "x_custom": request.headers.get("x-custom"),
                "x_forwarded_for": request.headers.get("x-forwarded-for"),
            },
            status_code=201 if request.method == "POST" else 200,
            headers={"x-origin": "echo"},
        )

    return app


@pytest.fixture
async def echo_origin():
    listener = Listener.bind("echo", build_echo_app(), "127.0.0.1", 0, verbose=False)
    listener.start()
    yield listener
    await listener.close()


@pytest.fixture
def app1_index() -> bytes:
    return APP1_INDEX
