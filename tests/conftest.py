"""Shared test fixtures."""

from unittest.mock import MagicMock

import pytest

from fleetwatch.directory import EffectiveConfig
from fleetwatch.session import ServerHandle, SessionPool


class FakeStream:
    """Stands in for the stdout file returned by ``exec_command``."""

    def __init__(self, data: str = "", exit_status: int = 0, error: Exception | None = None) -> None:
        self._data = data.encode()
        self._error = error
        self.channel = MagicMock()
        self.channel.recv_exit_status.return_value = exit_status
        self.read_count = 0

    def read(self) -> bytes:
        self.read_count += 1
        if self._error is not None:
            raise self._error
        return self._data


class FakeSSHClient:
    """In-memory replacement for ``paramiko.SSHClient``.

    ``outputs`` maps a command to its stdout, to ``(stdout, exit_status)``,
    or to an exception raised while reading the output. ``errors`` maps a
    command to its stderr.
    """

    def __init__(self, outputs: dict | None = None, unreachable: tuple = (), errors: dict | None = None) -> None:
        self.outputs = outputs if outputs is not None else {}
        self.errors = errors if errors is not None else {}
        self.unreachable = unreachable
        self.connect_kwargs: dict | None = None
        self.policy = None
        self.system_host_keys_loaded = False
        self.host_keys_file: str | None = None
        self.closed = False
        self.commands: list[tuple[str, float | None]] = []
        self.streams: list[FakeStream] = []
        self.stderr_streams: list[FakeStream] = []

    def set_missing_host_key_policy(self, policy) -> None:
        self.policy = policy

    def load_system_host_keys(self) -> None:
        self.system_host_keys_loaded = True

    def load_host_keys(self, filename: str) -> None:
        self.host_keys_file = filename

    def connect(self, **kwargs) -> None:
        self.connect_kwargs = kwargs
        if kwargs["hostname"] in self.unreachable:
            raise OSError(f"Unable to connect to {kwargs['hostname']}")

    def exec_command(self, command: str, timeout: float | None = None):
        self.commands.append((command, timeout))
        result = self.outputs.get(command, "")
        if isinstance(result, Exception):
            stream = FakeStream(error=result)
        elif isinstance(result, tuple):
            stream = FakeStream(*result)
        else:
            stream = FakeStream(result)
        self.streams.append(stream)
        stderr = FakeStream(self.errors.get(command, ""))
        self.stderr_streams.append(stderr)
        return None, stream, stderr

    def get_transport(self):
        transport = MagicMock()
        transport.is_active.return_value = not self.closed
        return transport

    def close(self) -> None:
        self.closed = True


class ClientFactory:
    """Records every fake client it creates."""

    def __init__(self, outputs: dict | None = None, unreachable: tuple = ()) -> None:
        self.outputs = outputs
        self.unreachable = unreachable
        self.created: list[FakeSSHClient] = []

    def __call__(self) -> FakeSSHClient:
        client = FakeSSHClient(outputs=self.outputs, unreachable=self.unreachable)
        self.created.append(client)
        return client


@pytest.fixture
def make_handle():
    def _make(name: str = "web-1", outputs: dict | None = None) -> ServerHandle:
        return ServerHandle(
            name=name,
            config=EffectiveConfig(host=name, port=22, user="ops", identity_file=""),
            client=FakeSSHClient(outputs=outputs),
        )
    return _make


@pytest.fixture
def pool():
    return SessionPool(client_factory=ClientFactory())
