"""SSH session management for the monitored fleet."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable

import paramiko

from fleetwatch.config import Config, HostDescriptor
from fleetwatch.directory import ConfigResolver, EffectiveConfig

logger = logging.getLogger(__name__)


class CommandError(RuntimeError):
    """A remote command could not be run or exited with a non-zero status."""

    def __init__(self, command: str, message: str, exit_status: int | None = None) -> None:
        super().__init__(f"{command!r}: {message}")
        self.command = command
        self.exit_status = exit_status


@dataclass
class ServerHandle:
    """A named, open SSH session to one host."""

    name: str
    config: EffectiveConfig
    client: paramiko.SSHClient

    @property
    def is_active(self) -> bool:
        transport = self.client.get_transport()
        return transport is not None and transport.is_active()

    def close(self) -> None:
        self.client.close()


class SessionPool:
    """Opens and owns one SSH session per reachable host.

    Hosts that cannot be reached are dropped; they are not retried.
    """

    def __init__(
        self,
        resolver: ConfigResolver | None = None,
        connect_timeout: float = 5.0,
        command_timeout: float = 10.0,
        verify_host_keys: bool = False,
        known_hosts_file: str | None = None,
        max_workers: int = 10,
        client_factory: Callable[[], paramiko.SSHClient] = paramiko.SSHClient,
    ) -> None:
        """Initialize the pool.

        Args:
            resolver: Resolves descriptor addresses against the host directory.
            connect_timeout: TCP/handshake/auth timeout per host, in seconds.
            command_timeout: Default timeout for :meth:`run`, in seconds.
            verify_host_keys: Reject hosts whose key is not in known_hosts.
            known_hosts_file: Extra known_hosts file, used with verify_host_keys.
            max_workers: Maximum number of concurrent connection attempts.
            client_factory: Callable returning a new SSH client.
        """
        self.resolver = resolver or ConfigResolver()
        self.connect_timeout = connect_timeout
        self.command_timeout = command_timeout
        self.verify_host_keys = verify_host_keys
        self.known_hosts_file = known_hosts_file
        self.max_workers = max_workers
        self._client_factory = client_factory
        self._handles: list[ServerHandle] = []

    @classmethod
    def from_config(cls, config: Config, **kwargs: Any) -> "SessionPool":
        return cls(
            resolver=ConfigResolver(config.ssh_config),
            connect_timeout=config.connect_timeout,
            command_timeout=config.command_timeout,
            verify_host_keys=config.verify_host_keys,
            known_hosts_file=config.known_hosts_file,
            max_workers=config.max_workers,
            **kwargs,
        )

    @property
    def handles(self) -> list[ServerHandle]:
        return list(self._handles)

    def open(self, descriptors: Iterable[HostDescriptor]) -> list[ServerHandle]:
        """Connect to every descriptor and return the live sessions.

        The result keeps the order of ``descriptors``; hosts that failed to
        connect are left out.
        """
        descriptors = list(descriptors)
        if not descriptors:
            return []

        workers = max(1, min(self.max_workers, len(descriptors)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(self._connect, d) for d in descriptors]

        errors = [f.exception() for f in futures if f.exception() is not None]
        handles = [f.result() for f in futures if f.exception() is None]
        handles = [h for h in handles if h is not None]
        if errors:
            # Nothing is handed out if a connect attempt failed unexpectedly
            for handle in handles:
                handle.close()
            raise errors[0]

        self._handles.extend(handles)

        logger.info(f"Connected to {len(handles)} of {len(descriptors)} hosts")
        return handles

    def _connect(self, descriptor: HostDescriptor) -> ServerHandle | None:
        """Open one session, or return None if the host is unreachable."""
        effective = self.resolver.resolve_descriptor(descriptor)
        if not effective.host:
            logger.warning(f"Skipping {descriptor.name}: no host address")
            return None

        connect_kwargs: dict[str, Any] = {
            "hostname": effective.host,
            "port": effective.port,
            "username": effective.user,
            "password": descriptor.password,
            "timeout": self.connect_timeout,
            "auth_timeout": self.connect_timeout,
            "allow_agent": False,
            "look_for_keys": False,
        }
        if effective.identity_file:
            connect_kwargs["key_filename"] = str(Path(effective.identity_file).expanduser())

        logger.debug(f"Connecting to {descriptor.name} ({effective.user}@{effective.host}:{effective.port})")
        client = self._client_factory()
        try:
            self._set_host_key_policy(client)
            client.connect(**connect_kwargs)
        except Exception as e:
            logger.warning(f"Cannot connect to {descriptor.name} ({effective.host}:{effective.port}): {e}")
            client.close()
            return None

        return ServerHandle(name=descriptor.name, config=effective, client=client)

    def _set_host_key_policy(self, client: paramiko.SSHClient) -> None:
        if self.verify_host_keys:
            client.load_system_host_keys()
            if self.known_hosts_file:
                client.load_host_keys(str(Path(self.known_hosts_file).expanduser()))
            client.set_missing_host_key_policy(paramiko.RejectPolicy())
        else:
            # Unknown host keys are accepted without verification
            client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

    def run(
        self,
        handle: ServerHandle,
        command: str,
        timeout: float | None = None,
    ) -> tuple[str, CommandError | None]:
        """Run ``command`` on a fresh channel of ``handle``'s session.

        Returns:
            Tuple of (stdout, error). On failure stdout is empty and error is
            set; the session itself stays open.
        """
        if timeout is None:
            timeout = self.command_timeout

        if not handle.is_active:
            logger.debug(f"Session to {handle.name} is closed, not running {command!r}")
            return "", CommandError(command, "session is closed")

        channel = None
        try:
            _, stdout, stderr = handle.client.exec_command(command, timeout=timeout)
            channel = stdout.channel
            drain = threading.Thread(target=self._discard, args=(handle, stderr), daemon=True)
            drain.start()
            output = stdout.read().decode(errors="replace")
            exit_status = channel.recv_exit_status()
            drain.join(timeout)
        except (paramiko.SSHException, OSError) as e:
            logger.debug(f"Command failed on {handle.name}: {command!r}: {e}")
            return "", CommandError(command, str(e) or type(e).__name__)
        finally:
            if channel is not None:
                channel.close()

        if exit_status != 0:
            logger.debug(f"Command exited {exit_status} on {handle.name}: {command!r}")
            return "", CommandError(command, f"exit status {exit_status}", exit_status)

        return output, None

    @staticmethod
    def _discard(handle: ServerHandle, stream: Any) -> None:
        """Read a stream to EOF so the channel window keeps moving."""
        try:
            stream.read()
        except (paramiko.SSHException, OSError) as e:
            logger.debug(f"Error reading stderr on {handle.name}: {e}")

    def close_all(self) -> None:
        """Close every session owned by the pool."""
        for handle in self._handles:
            try:
                handle.close()
            except Exception as e:
                logger.debug(f"Error closing session to {handle.name}: {e}")
        self._handles.clear()

    def __enter__(self) -> "SessionPool":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close_all()
