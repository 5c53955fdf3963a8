"""Host directory and per-host configuration resolution."""

import logging
import re
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterator

from paramiko.config import SSHConfig

if TYPE_CHECKING:
    from fleetwatch.config import HostDescriptor

logger = logging.getLogger(__name__)

DEFAULT_KEY = "*"
DEFAULT_SSH_PORT = 22

# OpenSSH HostName tokens understood here: %h (the lookup name) and %%
HOSTNAME_TOKEN = re.compile(r"%([%h])")


def expand_hostname(hostname: str, name: str) -> str:
    return HOSTNAME_TOKEN.sub(lambda m: name if m.group(1) == "h" else "%", hostname)


@dataclass
class HostRecord:
    """Overridable settings for one directory entry.

    Empty strings and a zero port mean "inherit from the default record".
    """

    hostname: str = ""
    port: int = 0
    user: str = ""
    identity_file: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HostRecord":
        return cls(
            hostname=data.get("hostname") or "",
            port=int(data.get("port") or 0),
            user=data.get("user") or "",
            identity_file=data.get("identity_file") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.hostname:
            data["hostname"] = self.hostname
        if self.port:
            data["port"] = self.port
        if self.user:
            data["user"] = self.user
        if self.identity_file:
            data["identity_file"] = self.identity_file
        return data

    def merged(self, default: "HostRecord") -> "HostRecord":
        """Fill each empty field from ``default``."""
        return HostRecord(
            hostname=self.hostname or default.hostname,
            port=self.port or default.port,
            user=self.user or default.user,
            identity_file=self.identity_file or default.identity_file,
        )


@dataclass(frozen=True)
class EffectiveConfig:
    """Fully resolved connection settings for one host."""

    host: str
    port: int
    user: str
    identity_file: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "identity_file": self.identity_file,
        }


class HostDirectory:
    """Ordered store of host records keyed by literal name or glob pattern.

    The ``"*"`` key holds the default record. Re-adding a key replaces its
    record but keeps its first position in the scan order.
    """

    def __init__(self, entries: dict[str, HostRecord] | None = None) -> None:
        self._entries: dict[str, HostRecord] = {}
        for key, record in (entries or {}).items():
            self.add(key, record)

    def add(self, key: str, record: HostRecord) -> None:
        if key in self._entries:
            logger.debug(f"Replacing host directory entry: {key}")
        self._entries[key] = record

    def get(self, key: str) -> HostRecord | None:
        return self._entries.get(key)

    @property
    def default(self) -> HostRecord | None:
        return self._entries.get(DEFAULT_KEY)

    def patterns(self) -> Iterator[tuple[str, HostRecord]]:
        """Yield non-default entries in insertion order."""
        for key, record in self._entries.items():
            if key != DEFAULT_KEY:
                yield key, record

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> list[str]:
        return list(self._entries)

    def update(self, other: "HostDirectory") -> None:
        """Add every entry of ``other``, in its order."""
        for key in other.keys():
            self.add(key, other._entries[key])

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HostDirectory":
        return cls({key: HostRecord.from_dict(value or {}) for key, value in data.items()})

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {key: record.to_dict() for key, record in self._entries.items()}

    @classmethod
    def from_ssh_config(cls, path: str | Path) -> "HostDirectory":
        """Load ``Host`` blocks from an OpenSSH client config file.

        Every pattern on a ``Host`` line becomes its own entry. Negated
        patterns, ``Match`` blocks and blocks without options are ignored.
        """
        path = Path(path).expanduser()
        ssh_config = SSHConfig.from_path(str(path))

        directory = cls()
        for entry in ssh_config._config:
            options = entry.get("config", {})
            if not options:
                continue
            identity_files = options.get("identityfile") or []
            record = HostRecord(
                hostname=options.get("hostname", ""),
                port=int(options.get("port", 0)),
                user=options.get("user", ""),
                identity_file=identity_files[0] if identity_files else "",
            )
            for pattern in entry.get("host", []):
                if pattern.startswith("!"):
                    continue
                directory.add(pattern, record)

        logger.info(f"Loaded {len(directory)} host entries from {path}")
        return directory


class ConfigResolver:
    """Resolve host names against a :class:`HostDirectory`."""

    def __init__(self, directory: HostDirectory | None = None) -> None:
        self.directory = directory if directory is not None else HostDirectory()

    def match(self, name: str) -> HostRecord | None:
        """Find the record for ``name``: exact key first, then first glob match."""
        record = self.directory.get(name)
        if record is not None:
            return record

        for pattern, record in self.directory.patterns():
            if fnmatchcase(name, pattern):
                return record
        return None

    def resolve(self, name: str) -> EffectiveConfig:
        """Produce the effective configuration for ``name``.

        Fields missing from the matching record fall back to the default
        record; the host name falls back to ``name`` itself. ``%h`` in a
        host name expands to ``name``, as in an OpenSSH client config.
        """
        default = self.directory.default or HostRecord(hostname=name)

        record = self.match(name)
        resolved = record.merged(default) if record is not None else default

        return EffectiveConfig(
            host=expand_hostname(resolved.hostname, name) or name,
            port=resolved.port,
            user=resolved.user,
            identity_file=resolved.identity_file,
        )

    def resolve_descriptor(self, descriptor: "HostDescriptor") -> EffectiveConfig:
        """Combine a descriptor with the directory entry for its address.

        The descriptor's ``remote`` is looked up like an alias; explicit
        descriptor port and username win over directory values.
        """
        resolved = self.resolve(descriptor.remote)
        return EffectiveConfig(
            host=resolved.host,
            port=descriptor.port or resolved.port or DEFAULT_SSH_PORT,
            user=descriptor.username or resolved.user,
            identity_file=resolved.identity_file,
        )
