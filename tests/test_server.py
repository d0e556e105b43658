from pathlib import Path
from unittest.mock import patch

import pytest

from frontdoor.errors import ListenerBindError
from frontdoor.server import main, parse_args


class FakeGateway:
    instances: list["FakeGateway"] = []

    def __init__(self, store, settings):
        self.store = store
        self.settings = settings
        FakeGateway.instances.append(self)

    async def run(self):
        return None


class FailingGateway(FakeGateway):
    async def run(self):
        raise ListenerBindError("0.0.0.0", 8082, "Address already in use")


@pytest.fixture(autouse=True)
def reset_instances():
    FakeGateway.instances.clear()


def test_parse_args_defaults():
    assert parse_args([]).config is None
    assert parse_args(["--config", "gw.yaml"]).config == "gw.yaml"


def test_main_loads_explicit_config(tmp_path: Path):
    path = tmp_path / "gw.yaml"
    path.write_text("bindPort: 9000\nverbose: false\nservices:\n  - staticDir: ./web/app1\n")

    with patch("frontdoor.server.Gateway", FakeGateway):
        main(["--config", str(path)])

    store = FakeGateway.instances[0].store
    assert store.path == path
    assert store.current.bind_port == 9000
    assert store.current.services[0].static_dir == "./web/app1"


def test_main_falls_back_to_defaults_on_bad_config(tmp_path: Path):
    path = tmp_path / "gw.yaml"
    path.write_text("services: [unclosed\n")

    with patch("frontdoor.server.Gateway", FakeGateway):
        main(["--config", str(path)])

    assert FakeGateway.instances[0].store.current.bind_port == 8082


def test_main_exits_when_front_end_cannot_bind(tmp_path: Path):
    path = tmp_path / "gw.yaml"
    path.write_text("verbose: false\n")

    with patch("frontdoor.server.Gateway", FailingGateway):
        with pytest.raises(SystemExit) as excinfo:
            main(["--config", str(path)])
    assert excinfo.value.code == 1
