"""Configuration management for fleetwatch."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from paramiko import SSHException

from fleetwatch.directory import HostDirectory, HostRecord

logger = logging.getLogger(__name__)

REQUIRED_HOST_FIELDS = ("name", "remote", "username", "password")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

DEFAULT_CONFIG_PATHS = [
    "fleetwatch.json",
    "fleetwatch.yaml",
    "fleetwatch.yml",
    "~/.config/fleetwatch/config.yaml",
]


class ConfigError(ValueError):
    """Raised when a configuration file cannot be used."""


TRUE_STRINGS = ("true", "yes", "on", "1")
FALSE_STRINGS = ("false", "no", "off", "0")


def parse_bool(value: Any, key: str) -> bool:
    """Interpret a boolean setting, accepting the usual string spellings."""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower() if isinstance(value, str) else None
    if text in TRUE_STRINGS:
        return True
    if text in FALSE_STRINGS:
        return False
    raise ConfigError(f"Invalid value for {key}: {value!r} (expected true or false)")


@dataclass
class HostDescriptor:
    """One host to monitor, as written in the configuration file."""

    name: str
    remote: str
    username: str
    password: str
    port: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HostDescriptor":
        if not isinstance(data, dict):
            raise ConfigError(f"Host entry must be a mapping, got: {data!r}")

        for key in REQUIRED_HOST_FIELDS:
            if key not in data:
                raise ConfigError(f"The {key} field in the configuration file is missing")

        port = data.get("port")
        if port is not None and port != "":
            try:
                port = int(port)
            except (TypeError, ValueError):
                raise ConfigError(f"Invalid port for host {data['name']}: {port!r}") from None
        else:
            port = None

        return cls(
            name=str(data["name"]),
            remote=str(data["remote"]),
            username=str(data["username"]),
            password=str(data["password"]),
            port=port,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "remote": self.remote,
            "username": self.username,
            "password": self.password,
        }
        if self.port:
            data["port"] = self.port
        return data


@dataclass
class Config:
    """Main configuration for fleetwatch."""

    hosts: list[HostDescriptor] = field(default_factory=list)
    ssh_config: HostDirectory = field(default_factory=HostDirectory)
    ssh_config_file: str | None = None
    interval: float = 5.0  # seconds
    connect_timeout: float = 5.0
    command_timeout: float = 10.0
    verify_host_keys: bool = False
    known_hosts_file: str | None = None
    max_workers: int = 10
    log_level: str = "WARNING"

    @classmethod
    def from_file(cls, path: str | Path) -> "Config":
        """Load configuration from a JSON or YAML file."""
        path = Path(path).expanduser()
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        try:
            with open(path, encoding="utf-8") as f:
                if path.suffix.lower() in (".yaml", ".yml"):
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e

        config = cls.from_dict(data, base_dir=path.parent)
        logger.info(f"Loaded {len(config.hosts)} hosts from {path}")
        return config

    @classmethod
    def from_dict(cls, data: Any, base_dir: Path | None = None) -> "Config":
        """Create configuration from parsed file contents.

        ``data`` is either a bare list of host entries or a mapping with a
        ``hosts`` list and optional settings.
        """
        if data is None:
            data = []
        if isinstance(data, list):
            data = {"hosts": data}
        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a list of hosts or a mapping")

        hosts_data = data.get("hosts") or []
        if not isinstance(hosts_data, list):
            raise ConfigError("The hosts field must be a list")
        hosts = [HostDescriptor.from_dict(h) for h in hosts_data]

        directory = HostDirectory()
        ssh_config_file = data.get("ssh_config_file")
        if ssh_config_file:
            ssh_path = Path(ssh_config_file).expanduser()
            if not ssh_path.is_absolute() and base_dir is not None:
                ssh_path = base_dir / ssh_path
            try:
                directory.update(HostDirectory.from_ssh_config(ssh_path))
            except (OSError, ValueError, SSHException) as e:
                raise ConfigError(f"Cannot read ssh config file {ssh_path}: {e}") from e

        inline = data.get("ssh_config") or {}
        if not isinstance(inline, dict):
            raise ConfigError("The ssh_config field must be a mapping of host patterns")
        try:
            directory.update(HostDirectory.from_dict(inline))
        except (TypeError, ValueError, AttributeError) as e:
            raise ConfigError(f"Invalid ssh_config entry: {e}") from e

        log_level = str(data.get("log_level", "WARNING")).upper()
        if log_level not in LOG_LEVELS:
            raise ConfigError(f"Invalid log_level: {log_level}")

        try:
            interval = float(data.get("interval", 5.0))
            connect_timeout = float(data.get("connect_timeout", 5.0))
            command_timeout = float(data.get("command_timeout", 10.0))
            max_workers = int(data.get("max_workers", 10))
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid numeric setting: {e}") from e
        if interval <= 0:
            raise ConfigError(f"interval must be positive, got {interval}")

        return cls(
            hosts=hosts,
            ssh_config=directory,
            ssh_config_file=ssh_config_file,
            interval=interval,
            connect_timeout=connect_timeout,
            command_timeout=command_timeout,
            verify_host_keys=parse_bool(data.get("verify_host_keys", False), "verify_host_keys"),
            known_hosts_file=data.get("known_hosts_file"),
            max_workers=max(max_workers, 1),
            log_level=log_level,
        )

    @classmethod
    def find(cls, paths: list[str] | None = None) -> Path | None:
        """Return the first existing default config path, if any."""
        for candidate in paths or DEFAULT_CONFIG_PATHS:
            path = Path(candidate).expanduser()
            if path.exists():
                return path
        return None

    def to_file(self, path: str | Path) -> None:
        """Save configuration as JSON or YAML, chosen by file suffix."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = self._to_dict()
        with open(path, "w") as f:
            if path.suffix.lower() in (".yaml", ".yml"):
                yaml.dump(data, f, default_flow_style=False, sort_keys=False)
            else:
                json.dump(data, f, indent=2)
                f.write("\n")

    def _to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        data: dict[str, Any] = {
            "hosts": [h.to_dict() for h in self.hosts],
        }
        if len(self.ssh_config):
            data["ssh_config"] = self.ssh_config.to_dict()
        if self.ssh_config_file:
            data["ssh_config_file"] = self.ssh_config_file
        data.update({
            "interval": self.interval,
            "connect_timeout": self.connect_timeout,
            "command_timeout": self.command_timeout,
            "verify_host_keys": self.verify_host_keys,
            "max_workers": self.max_workers,
            "log_level": self.log_level,
        })
        if self.known_hosts_file:
            data["known_hosts_file"] = self.known_hosts_file
        return data


def create_example_config() -> Config:
    """Create an example configuration for documentation."""
    return Config(
        hosts=[
            HostDescriptor(
                name="web-1",
                remote="web-1",
                username="deploy",
                password="changeme",
            ),
            HostDescriptor(
                name="web-2",
                remote="192.168.1.11",
                username="deploy",
                password="changeme",
            ),
            HostDescriptor(
                name="db-primary",
                remote="db-1",
                username="admin",
                password="changeme",
                port=2222,
            ),
        ],
        ssh_config=HostDirectory({
            "*": HostRecord(user="ops", port=22),
            "web-*": HostRecord(identity_file="~/.ssh/web_ed25519"),
            "db-1": HostRecord(hostname="192.168.1.20"),
        }),
    )
