"""
Config file watcher.

Polls the services file's mtime and swaps a freshly parsed GatewayConfig into
the ConfigStore when it changes. A file that fails to parse is logged and the
previous config kept. Listeners and routes that are already running are left
alone; a reload only affects what reads the store afterwards.
"""

import asyncio
from pathlib import Path

import structlog

from frontdoor import metrics
from frontdoor.config import ConfigStore, load_config
from frontdoor.errors import ConfigParseError

log = structlog.get_logger(__name__)


class ConfigWatcher:
    def __init__(self, store: ConfigStore, path: Path, interval: float = 2.0):
        self.store = store
        self.path = path
        self.interval = interval
        self._mtime = self._stat()

    def _stat(self) -> float | None:
        try:
            return self.path.stat().st_mtime
        except OSError:
            return None

    def check(self) -> bool:
        """Reload if the file changed since the last check. Returns True on swap."""
        mtime = self._stat()
        if mtime is None or mtime == self._mtime:
            return False
        self._mtime = mtime

        try:
            config = load_config(self.path)
        except ConfigParseError as exc:
            metrics.CONFIG_RELOADS.labels("error").inc()
            log.error("config_reload_failed", path=str(self.path), error=str(exc))
            return False

        version = self.store.swap(config)
        metrics.CONFIG_RELOADS.labels("ok").inc()
        log.info("config_reloaded", path=str(self.path), version=version)
        return True

    async def run(self) -> None:
        log.info("config_watch_started", path=str(self.path), interval=self.interval)
        while True:
            await asyncio.sleep(self.interval)
            self.check()
