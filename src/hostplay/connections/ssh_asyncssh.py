"""
Hostplay SSH Connection (asyncssh)

SSH connection using asyncssh for async operations.
"""

import asyncio
import logging
import posixpath
from typing import Optional

import asyncssh

from hostplay.connections.base import Connection, RunResult
from hostplay.engine.errors import (
    CommandTimeoutError,
    ConnectionError,
    ExecutionError,
    RemoteFileNotFoundError,
    TransferError,
)
from hostplay.engine.inventory import ResolvedHost
from hostplay.logging import TRACE

logger = logging.getLogger(__name__)


class SSHConnection(Connection):
    """
    SSH connection using asyncssh.

    Authenticates with the SSH agent and, when configured, the host's
    private key file. File transfer goes through SFTP.
    """

    def __init__(self, host: ResolvedHost):
        super().__init__(host)
        self._conn: Optional[asyncssh.SSHClientConnection] = None
        self._sftp: Optional[asyncssh.SFTPClient] = None

    async def connect(self) -> None:
        """Establish SSH connection."""
        connect_kwargs = {
            'host': self.host.address,
            'port': self.host.port,
            'username': self.host.user,
            'connect_timeout': self.host.connect_timeout,
        }

        # Agent keys are always offered; the key file is added on top
        if self.host.key_path:
            connect_kwargs['client_keys'] = [self.host.key_path]

        if not self.host.host_key_checking:
            connect_kwargs['known_hosts'] = None

        logger.debug(f"Connecting to {self.host.user}@{self.host.address}:{self.host.port}")
        try:
            self._conn = await asyncssh.connect(**connect_kwargs)
        except (OSError, asyncssh.Error, asyncio.TimeoutError) as e:
            raise ConnectionError(
                host=self.host.name,
                message=str(e) or e.__class__.__name__,
                connection_type='ssh'
            )
        logger.info(f"Connected to {self.host.address}")

    async def close(self) -> None:
        """Close SSH connection."""
        if self._sftp:
            self._sftp.exit()
            self._sftp = None

        if self._conn:
            self._conn.close()
            await self._conn.wait_closed()
            self._conn = None
            logger.debug(f"Disconnected from {self.host.address}")

    def _require_conn(self) -> asyncssh.SSHClientConnection:
        if self._conn is None:
            raise ExecutionError(self.host.name, "not connected")
        return self._conn

    async def run(self, command: str, timeout: Optional[float] = None) -> RunResult:
        """
        Run a command over SSH.

        The command is handed to the remote user's login shell. On timeout
        the channel is closed, which terminates the remote process.
        """
        conn = self._require_conn()
        logger.log(TRACE, f"Running on {self.host.address}: {command[:100]}")

        try:
            process = await conn.create_process(command)
        except (OSError, asyncssh.Error) as e:
            raise ExecutionError(self.host.name, f"cannot open channel: {e}")

        try:
            result = await asyncio.wait_for(process.wait(check=False), timeout=timeout)
        except asyncio.TimeoutError:
            process.close()
            raise CommandTimeoutError(self.host.name, command, timeout)
        except (OSError, asyncssh.Error) as e:
            process.close()
            raise ExecutionError(self.host.name, f"channel failure: {e}")

        return RunResult(
            rc=result.exit_status if result.exit_status is not None else 255,
            stdout=_text(result.stdout),
            stderr=_text(result.stderr),
        )

    async def _get_sftp(self) -> asyncssh.SFTPClient:
        """Get or create SFTP client."""
        if self._sftp is None:
            conn = self._require_conn()
            try:
                self._sftp = await conn.start_sftp_client()
            except (OSError, asyncssh.Error) as e:
                raise ExecutionError(self.host.name, f"cannot start SFTP: {e}")
        return self._sftp

    async def upload(self, content: bytes, remote_path: str) -> None:
        """Write bytes to a remote file via SFTP."""
        sftp = await self._get_sftp()
        logger.debug(f"Writing {len(content)} bytes to {self.host.address}:{remote_path}")

        remote_dir = posixpath.dirname(remote_path)
        try:
            if remote_dir:
                await sftp.makedirs(remote_dir, exist_ok=True)
            async with sftp.open(remote_path, 'wb') as f:
                await f.write(content)
        except (OSError, asyncssh.SFTPError) as e:
            raise TransferError(self.host.name, remote_path, f"upload failed: {e}")

    async def download(self, remote_path: str) -> bytes:
        """Read a remote file via SFTP."""
        sftp = await self._get_sftp()
        try:
            async with sftp.open(remote_path, 'rb') as f:
                return await f.read()
        except asyncssh.SFTPNoSuchFile:
            raise RemoteFileNotFoundError(self.host.name, remote_path)
        except (OSError, asyncssh.SFTPError) as e:
            raise TransferError(self.host.name, remote_path, f"download failed: {e}")


def _text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode('utf-8', errors='replace')
    return value
