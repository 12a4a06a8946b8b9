"""
Shared fixtures for unit tests.

MockConnection keeps remote files in memory and answers commands from a
script, so engine and module tests never touch a network or the disk.
"""

import hashlib
from typing import Dict, List, Optional, Set, Union

import pytest

from hostplay.connections.base import Connection, RunResult
from hostplay.engine.errors import (
    ConnectionError,
    RemoteFileNotFoundError,
    TransferError,
)
from hostplay.engine.inventory import ResolvedHost


CommandReply = Union[RunResult, BaseException]


class MockConnection(Connection):
    """In-memory connection for testing."""

    def __init__(
        self,
        host: ResolvedHost,
        files: Optional[Dict[str, bytes]] = None,
        commands: Optional[Dict[str, CommandReply]] = None,
        fail_connect: bool = False,
        readonly: Optional[Set[str]] = None,
    ):
        super().__init__(host)
        self.files: Dict[str, bytes] = dict(files or {})
        self.commands: Dict[str, CommandReply] = dict(commands or {})
        self.fail_connect = fail_connect
        self.readonly = set(readonly or ())

        self.connected = False
        self.closed = False
        self.commands_run: List[str] = []
        self.timeouts: List[Optional[float]] = []
        self.uploads: List[str] = []
        self.downloads: List[str] = []

    async def connect(self) -> None:
        if self.fail_connect:
            raise ConnectionError(self.host.name, "authentication failed", "mock")
        self.connected = True

    async def close(self) -> None:
        self.connected = False
        self.closed = True

    async def run(self, command: str, timeout: Optional[float] = None) -> RunResult:
        self.commands_run.append(command)
        self.timeouts.append(timeout)

        reply = self.commands.get(command)
        if reply is None:
            return RunResult(rc=0, stdout=f"{command}: ok\n", stderr="")
        if isinstance(reply, BaseException):
            raise reply
        return reply

    async def upload(self, content: bytes, remote_path: str) -> None:
        if remote_path in self.readonly:
            raise TransferError(self.host.name, remote_path, "permission denied")
        self.uploads.append(remote_path)
        self.files[remote_path] = content

    async def download(self, remote_path: str) -> bytes:
        self.downloads.append(remote_path)
        if remote_path not in self.files:
            raise RemoteFileNotFoundError(self.host.name, remote_path)
        return self.files[remote_path]

    async def checksum(self, remote_path: str, timeout: Optional[float] = None) -> Optional[str]:
        self.timeouts.append(timeout)
        if remote_path not in self.files:
            return None
        return hashlib.sha256(self.files[remote_path]).hexdigest()

    async def remote_copy(self, src: str, dest: str, timeout: Optional[float] = None) -> None:
        self.timeouts.append(timeout)
        self.commands_run.append(f"cp -- {src} {dest}")
        self.uploads.append(dest)
        self.files[dest] = self.files[src]


class MockConnectionFactory:
    """Connection factory handing out one MockConnection per host."""

    def __init__(self):
        self.files: Dict[str, Dict[str, bytes]] = {}
        self.commands: Dict[str, Dict[str, CommandReply]] = {}
        self.unreachable: Set[str] = set()
        self.created: Dict[str, MockConnection] = {}

    def __call__(self, host: ResolvedHost) -> MockConnection:
        connection = MockConnection(
            host,
            files=self.files.get(host.address),
            commands=self.commands.get(host.address),
            fail_connect=host.address in self.unreachable,
        )
        self.created[host.address] = connection
        return connection


@pytest.fixture
def host() -> ResolvedHost:
    return ResolvedHost(address="web1", user="deploy", key_path="/home/deploy/.ssh/id_ed25519")


@pytest.fixture
def connection(host) -> MockConnection:
    return MockConnection(host)


@pytest.fixture
def make_connection(host):
    """Build a MockConnection for the default host with given state."""
    def _make(**kwargs) -> MockConnection:
        return MockConnection(host, **kwargs)
    return _make


@pytest.fixture
def connection_factory() -> MockConnectionFactory:
    return MockConnectionFactory()
