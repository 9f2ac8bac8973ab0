from __future__ import annotations

import shutil
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

from replboot import config
from replboot.errors import ConfigurationError, DependencyMissingError


@dataclass(frozen=True)
class BootstrapSettings:
    service_name: str
    replica_set: str = config.REPLICA_SET
    interface: Optional[str] = None
    consul_url: str = config.CONSUL_URL
    db_port: int = config.DB_PORT
    mongod_conf: str = config.MONGOD_CONF
    mongo_shell: str = config.MONGO_SHELL
    debug: bool = config.DEBUG
    http_timeout: int = config.HTTP_TIMEOUT
    shell_timeout: int = config.SHELL_TIMEOUT
    local_db_deadline: float = config.LOCAL_DB_DEADLINE
    local_db_poll_interval: float = config.LOCAL_DB_POLL_INTERVAL
    replication_deadline: float = config.REPLICATION_DEADLINE
    registry_deadline: float = config.REGISTRY_DEADLINE
    poll_interval: float = config.POLL_INTERVAL
    reconfigure_pause: float = config.RECONFIGURE_PAUSE


def build_settings(
    service_name: Optional[str] = None,
    replica_set: Optional[str] = None,
    interface: Optional[str] = None,
    **overrides,
) -> BootstrapSettings:
    """Merge explicit values over environment defaults and validate the result."""
    settings = BootstrapSettings(
        service_name=str(service_name or config.SERVICE_NAME or "").strip(),
        replica_set=str(replica_set or config.REPLICA_SET or "rs0").strip(),
        interface=(interface or config.INTERFACE or None),
        **overrides,
    )
    validate_settings(settings)
    return settings


def _require_valid_port(port: int, field_name: str = "db_port") -> None:
    if int(port) < 1 or int(port) > 65535:
        raise ConfigurationError(f"{field_name} must be in range 1..65535")


def validate_settings(settings: BootstrapSettings) -> None:
    if not settings.service_name:
        raise ConfigurationError("service name is required (--service or REPLBOOT_SERVICE_NAME)")
    if not settings.replica_set:
        raise ConfigurationError("replica set name must not be empty")
    if "/" in settings.replica_set:
        raise ConfigurationError(f"replica set name '{settings.replica_set}' must not contain '/'")
    _require_valid_port(settings.db_port)

    parsed = urlparse(settings.consul_url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ConfigurationError("consul_url must be a valid http(s) URL")


def require_commands(*commands: str) -> None:
    for command in commands:
        if shutil.which(command) is None:
            raise DependencyMissingError(f"required command '{command}' not found on PATH")
