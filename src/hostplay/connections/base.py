"""
Hostplay Connection Base Class

Abstract base class for remote sessions. One connection belongs to one
host run; it is opened when the run starts and closed on every exit path,
which ``async with connection:`` guarantees.
"""

import shlex
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

from hostplay.engine.errors import ExecutionError, TransferError
from hostplay.engine.inventory import ResolvedHost


@dataclass
class RunResult:
    """Result of running a command on a remote host."""

    rc: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.rc == 0


class Connection(ABC):
    """
    Abstract base class for connections.

    All connection types (SSH, local) must implement this interface.
    """

    def __init__(self, host: ResolvedHost):
        self.host = host

    async def __aenter__(self) -> 'Connection':
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @abstractmethod
    async def connect(self) -> None:
        """
        Establish the connection.

        Raises:
            ConnectionError: If the host is unreachable or rejects the login
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        pass

    @abstractmethod
    async def run(self, command: str, timeout: Optional[float] = None) -> RunResult:
        """
        Run a command through the remote shell.

        Args:
            command: Command line to execute
            timeout: Optional timeout in seconds

        Returns:
            RunResult with rc, stdout, stderr

        Raises:
            CommandTimeoutError: If the timeout elapses
            ExecutionError: If the command could not be started
        """
        pass

    @abstractmethod
    async def upload(self, content: bytes, remote_path: str) -> None:
        """
        Write bytes to a remote file, creating parent directories.

        Raises:
            TransferError: If the file cannot be written
        """
        pass

    @abstractmethod
    async def download(self, remote_path: str) -> bytes:
        """
        Read a remote file.

        Raises:
            RemoteFileNotFoundError: If the path does not exist
            TransferError: If the file cannot be read
        """
        pass

    async def remote_copy(self, src: str, dest: str, timeout: Optional[float] = None) -> None:
        """
        Copy a file to another path on the same host, server side.

        Raises:
            CommandTimeoutError: If the timeout elapses
            TransferError: If the copy command fails
        """
        result = await self.run(
            f"cp -- {shlex.quote(src)} {shlex.quote(dest)}",
            timeout=timeout,
        )
        if not result.success:
            raise TransferError(
                self.host.name,
                src,
                f"copy to {dest} failed (rc={result.rc}): {result.stderr.strip()}",
            )

    async def checksum(self, remote_path: str, timeout: Optional[float] = None) -> Optional[str]:
        """
        SHA-256 of a remote file, computed on the host.

        Returns:
            Hex digest, or None if the file does not exist

        Raises:
            CommandTimeoutError: If the timeout elapses
            ExecutionError: If the hash cannot be computed for another reason
        """
        quoted = shlex.quote(remote_path)
        result = await self.run(
            f"if [ -e {quoted} ]; then sha256sum -- {quoted}; else exit 3; fi",
            timeout=timeout,
        )
        if result.rc == 3:
            return None
        if not result.success or not result.stdout.strip():
            raise ExecutionError(
                self.host.name,
                f"cannot checksum {remote_path}: {result.stderr.strip()}",
            )
        return result.stdout.split()[0]

    @property
    def connection_type(self) -> str:
        """Return the connection type name."""
        return self.__class__.__name__.replace('Connection', '').lower()


ConnectionFactory = Callable[[ResolvedHost], Connection]


def create_connection(host: ResolvedHost) -> Connection:
    """Create the connection matching the host's connection type (unconnected)."""
    if host.connection == 'local':
        from hostplay.connections.local import LocalConnection
        return LocalConnection(host)

    if host.connection == 'ssh':
        from hostplay.connections.ssh_asyncssh import SSHConnection
        return SSHConnection(host)

    raise ValueError(f"Unknown connection type: {host.connection}")
