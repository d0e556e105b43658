import json
import threading
from pathlib import Path

import structlog
import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from frontdoor.errors import ConfigParseError

log = structlog.get_logger(__name__)

CONFIG_NAMES = ("config.yaml", "config.yml", "config.json")


class Settings(BaseSettings):
    """Process-level settings, read from the environment / config/.env."""

    model_config = SettingsConfigDict(
        env_prefix="FRONTDOOR_",
        env_file="config/.env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Explicit path to the services file; searched for when empty
    config_file: str = ""

    # Logging
    log_level: str = "INFO"

    # Seconds between mtime polls of the services file
    reload_interval_seconds: float = 2.0

    # None means no upstream timeout at all
    proxy_timeout_seconds: float | None = None

    # Reserved path for the gateway's own endpoints
    admin_prefix: str = "/_frontdoor"


class ServiceDescriptor(BaseModel):
    """One backend service entry, before or after resolution."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = ""
    static_dir: str = Field("", validation_alias=AliasChoices("staticDir", "static_dir"))
    route_prefix: str = Field(
        "", validation_alias=AliasChoices("routePrefix", "accessPath", "route_prefix")
    )
    bind_address: str = Field(
        "", validation_alias=AliasChoices("bindAddress", "bindIp", "bind_address")
    )
    bind_port: int = Field(0, ge=0, le=65535, validation_alias=AliasChoices("bindPort", "bind_port"))
    url: str = ""
    description: str = Field("", validation_alias=AliasChoices("description", "des"))


class GatewayConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    bind_address: str = Field(
        "0.0.0.0", validation_alias=AliasChoices("bindAddress", "bindIp", "bind_address")
    )
    bind_port: int = Field(8082, ge=0, le=65535, validation_alias=AliasChoices("bindPort", "bind_port"))
    verbose: bool = True
    # Served at "/" by the front-end listener when set
    static_dir: str = Field("", validation_alias=AliasChoices("staticDir", "static_dir"))
    services: list[ServiceDescriptor] = Field(
        default_factory=list, validation_alias=AliasChoices("services", "servers")
    )


def find_config_file(search_paths: list[Path] | None = None) -> Path | None:
    """Return the first config.{yaml,yml,json} under ./config or $HOME."""
    if search_paths is None:
        search_paths = [Path("config"), Path.home()]
    for directory in search_paths:
        for name in CONFIG_NAMES:
            candidate = directory / name
            if candidate.is_file():
                return candidate
    return None


def resolve_config_path(settings: Settings) -> Path | None:
    if settings.config_file:
        return Path(settings.config_file)
    return find_config_file()


def load_config(path: Path | None) -> GatewayConfig:
    """Parse a YAML or JSON services file into a GatewayConfig.

    A missing path yields the defaults. Anything unreadable or invalid raises
    ConfigParseError so the caller can keep whatever config it already has.
    """
    if path is None:
        return GatewayConfig()

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigParseError(f"Cannot read config file {path}: {exc}") from exc

    try:
        if path.suffix == ".json":
            raw = json.loads(text) if text.strip() else {}
        else:
            raw = yaml.safe_load(text) or {}
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigParseError(f"Invalid config file {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigParseError(f"Config file {path} must contain a mapping, got {type(raw).__name__}")

    try:
        return GatewayConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigParseError(f"Config file {path} failed validation: {exc}") from exc


class ConfigStore:
    """Owns the current GatewayConfig; reloads replace it wholesale."""

    def __init__(self, config: GatewayConfig, path: Path | None = None):
        self._config = config
        self._version = 1
        self.path = path
        self._lock = threading.Lock()

    @property
    def current(self) -> GatewayConfig:
        return self._config

    @property
    def version(self) -> int:
        return self._version

    def swap(self, config: GatewayConfig) -> int:
        with self._lock:
            self._config = config
            self._version += 1
            version = self._version
        log.info("config_swapped", version=version, services=len(config.services))
        return version
