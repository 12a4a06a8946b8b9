"""
Hostplay Local Connection

Execute commands on the local machine (no remote connection).
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Optional

from hostplay.connections.base import Connection, RunResult
from hostplay.engine.errors import (
    CommandTimeoutError,
    ExecutionError,
    RemoteFileNotFoundError,
    TransferError,
)
from hostplay.engine.inventory import ResolvedHost
from hostplay.logging import TRACE

logger = logging.getLogger(__name__)


class LocalConnection(Connection):
    """
    Local connection - execute commands on the control node.

    Used for localhost execution without any network operations.
    """

    def __init__(self, host: ResolvedHost):
        super().__init__(host)
        self._connected = False

    async def connect(self) -> None:
        """Local connection is always available."""
        self._connected = True

    async def close(self) -> None:
        """Nothing to close for local connection."""
        self._connected = False

    async def run(self, command: str, timeout: Optional[float] = None) -> RunResult:
        """Run a command through the local shell."""
        logger.log(TRACE, f"Running locally: {command[:100]}")
        try:
            process = await asyncio.create_subprocess_shell(
                command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ExecutionError(self.host.name, f"cannot start shell: {e}")

        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                process.communicate(),
                timeout=timeout
            )
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise CommandTimeoutError(self.host.name, command, timeout)

        return RunResult(
            rc=process.returncode,
            stdout=stdout_bytes.decode('utf-8', errors='replace'),
            stderr=stderr_bytes.decode('utf-8', errors='replace'),
        )

    async def upload(self, content: bytes, remote_path: str) -> None:
        """Write bytes to a local file."""
        dest = Path(remote_path)
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_bytes(content)
        except OSError as e:
            raise TransferError(self.host.name, remote_path, f"upload failed: {e}")

    async def download(self, remote_path: str) -> bytes:
        """Read a local file."""
        try:
            return Path(remote_path).read_bytes()
        except FileNotFoundError:
            raise RemoteFileNotFoundError(self.host.name, remote_path)
        except OSError as e:
            raise TransferError(self.host.name, remote_path, f"download failed: {e}")

    async def checksum(self, remote_path: str, timeout: Optional[float] = None) -> Optional[str]:
        """Hash the file directly instead of shelling out to sha256sum."""
        import hashlib

        if not os.path.exists(remote_path):
            return None
        content = await self.download(remote_path)
        return hashlib.sha256(content).hexdigest()
