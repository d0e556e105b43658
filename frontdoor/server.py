#!/usr/bin/env python3
"""Entry point: load the services file and run the gateway until killed."""
import argparse
import asyncio
import sys
from pathlib import Path

import structlog

from frontdoor.config import ConfigStore, GatewayConfig, Settings, load_config, resolve_config_path
from frontdoor.errors import ConfigParseError, ListenerBindError
from frontdoor.gateway import Gateway
from frontdoor.logging_config import configure_logging

log = structlog.get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="frontdoor",
        description="Serve static sites and proxy backends behind one bind address.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Services file (YAML or JSON). Defaults to config.{yaml,yml,json} in ./config or $HOME.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    settings = Settings()
    if args.config:
        settings.config_file = args.config

    configure_logging(level=settings.log_level)

    path = resolve_config_path(settings)
    try:
        config = load_config(path)
    except ConfigParseError as exc:
        log.error("config_load_failed", error=str(exc))
        config = GatewayConfig()
    if path is None:
        log.warning("config_not_found", searched=["config", str(Path.home())])

    configure_logging(verbose=config.verbose, level=settings.log_level)
    store = ConfigStore(config, path=path)

    try:
        asyncio.run(Gateway(store, settings).run())
    except ListenerBindError as exc:
        log.error("frontend_bind_failed", error=str(exc))
        sys.exit(1)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
