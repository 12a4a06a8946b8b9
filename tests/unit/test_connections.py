"""
Tests for the connection base class and the local connection.
"""

import hashlib
import sys
from typing import List, Optional

import pytest

from hostplay.connections import LocalConnection, create_connection
from hostplay.connections.base import Connection, RunResult
from hostplay.engine.errors import (
    CommandTimeoutError,
    ExecutionError,
    RemoteFileNotFoundError,
    TransferError,
)
from hostplay.engine.inventory import ResolvedHost


LOCALHOST = ResolvedHost(address="localhost", user="me", connection="local")

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell")


class ScriptedConnection(Connection):
    """Connection answering every command with the next scripted reply."""

    def __init__(self, replies: List[RunResult]):
        super().__init__(ResolvedHost(address="web1", user="deploy"))
        self.replies = list(replies)
        self.commands: List[str] = []

    async def connect(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def run(self, command: str, timeout: Optional[float] = None) -> RunResult:
        self.commands.append(command)
        return self.replies.pop(0)

    async def upload(self, content: bytes, remote_path: str) -> None:
        raise NotImplementedError

    async def download(self, remote_path: str) -> bytes:
        raise NotImplementedError


class TestConnectionBase:
    """Test the shell-backed helpers of the base class."""

    @pytest.mark.asyncio
    async def test_remote_copy_quotes_paths(self):
        conn = ScriptedConnection([RunResult(0, "", "")])
        await conn.remote_copy("/etc/my app.conf", "/tmp/x")
        assert conn.commands == ["cp -- '/etc/my app.conf' /tmp/x"]

    @pytest.mark.asyncio
    async def test_remote_copy_failure(self):
        conn = ScriptedConnection([RunResult(1, "", "cp: permission denied\n")])
        with pytest.raises(TransferError) as exc_info:
            await conn.remote_copy("/a", "/root/b")
        assert "permission denied" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_checksum(self):
        digest = "ab" * 32
        conn = ScriptedConnection([RunResult(0, f"{digest}  /etc/hosts\n", "")])
        assert await conn.checksum("/etc/hosts") == digest
        assert "sha256sum" in conn.commands[0]

    @pytest.mark.asyncio
    async def test_checksum_missing_file(self):
        conn = ScriptedConnection([RunResult(3, "", "")])
        assert await conn.checksum("/nope") is None

    @pytest.mark.asyncio
    async def test_checksum_failure(self):
        conn = ScriptedConnection([RunResult(127, "", "sha256sum: not found")])
        with pytest.raises(ExecutionError):
            await conn.checksum("/etc/hosts")

    def test_connection_type(self):
        assert ScriptedConnection([]).connection_type == "scripted"
        assert LocalConnection(LOCALHOST).connection_type == "local"


class TestCreateConnection:
    """Test connection selection."""

    def test_local(self):
        assert isinstance(create_connection(LOCALHOST), LocalConnection)

    def test_ssh(self):
        from hostplay.connections.ssh_asyncssh import SSHConnection

        host = ResolvedHost(address="10.0.0.5", user="deploy")
        assert isinstance(create_connection(host), SSHConnection)

    def test_unknown(self):
        host = ResolvedHost(address="a", user="u", connection="telnet")
        with pytest.raises(ValueError):
            create_connection(host)


@posix_only
class TestLocalConnection:
    """Test the local connection against the control node."""

    @pytest.mark.asyncio
    async def test_run(self):
        async with LocalConnection(LOCALHOST) as conn:
            result = await conn.run("echo hello; echo oops >&2; exit 3")
        assert result.rc == 3
        assert result.stdout == "hello\n"
        assert result.stderr == "oops\n"
        assert not result.success

    @pytest.mark.asyncio
    async def test_run_timeout(self):
        async with LocalConnection(LOCALHOST) as conn:
            with pytest.raises(CommandTimeoutError) as exc_info:
                await conn.run("sleep 5", timeout=0.2)
        assert exc_info.value.timeout == 0.2

    @pytest.mark.asyncio
    async def test_upload_download(self, tmp_path):
        dest = tmp_path / "sub" / "dir" / "file.txt"
        async with LocalConnection(LOCALHOST) as conn:
            await conn.upload(b"content\n", str(dest))
            assert await conn.download(str(dest)) == b"content\n"
            assert await conn.checksum(str(dest)) == hashlib.sha256(b"content\n").hexdigest()
            assert await conn.checksum(str(tmp_path / "missing")) is None

    @pytest.mark.asyncio
    async def test_download_missing(self, tmp_path):
        async with LocalConnection(LOCALHOST) as conn:
            with pytest.raises(RemoteFileNotFoundError):
                await conn.download(str(tmp_path / "missing"))

    @pytest.mark.asyncio
    async def test_upload_into_file_path_fails(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        async with LocalConnection(LOCALHOST) as conn:
            with pytest.raises(TransferError):
                await conn.upload(b"data", str(blocker / "child"))

    @pytest.mark.asyncio
    async def test_remote_copy_uses_cp(self, tmp_path):
        src = tmp_path / "a.txt"
        src.write_bytes(b"abc")
        async with LocalConnection(LOCALHOST) as conn:
            await conn.remote_copy(str(src), str(tmp_path / "b.txt"))
        assert (tmp_path / "b.txt").read_bytes() == b"abc"
