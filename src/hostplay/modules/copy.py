"""
Hostplay copy module

Copy files to remote hosts, from the control node or within the host.
"""

from hostplay.engine.errors import CommandTimeoutError
from hostplay.engine.playbook import CopyTask, TaskKind
from hostplay.modules.base import Module, ModuleResult, read_local, register_module


@register_module
class CopyModule(Module):
    """
    Copy a file to the target host.

    Supports:
    - Copying from the control node (``remote_src: false``)
    - Copying between two paths on the target (``remote_src: true``)
    - Idempotency via content comparison (byte equality locally,
      SHA-256 on the host for remote sources)
    """

    kind = TaskKind.COPY
    task: CopyTask

    async def run(self) -> ModuleResult:
        if self.task.remote_src:
            return await self._copy_remote(self.task.src, self.task.dest)
        return await self._copy_file(self.task.src, self.task.dest)

    async def _copy_file(self, src: str, dest: str) -> ModuleResult:
        """Copy a file from control node to target."""
        content = read_local(src)
        result = await self.deploy(content, dest)
        if result.changed:
            result.msg = f"Copied {src} to {dest}"
        return result

    async def _copy_remote(self, src: str, dest: str) -> ModuleResult:
        """Copy a file within the remote host."""
        try:
            return await self._copy_remote_checked(src, dest)
        except CommandTimeoutError as e:
            return ModuleResult(
                failed=True,
                msg=f"timeout: remote copy did not finish within {e.timeout:g}s",
            )

    async def _copy_remote_checked(self, src: str, dest: str) -> ModuleResult:
        timeout = self.command_timeout
        src_sum = await self.connection.checksum(src, timeout=timeout)
        if src_sum is None:
            return ModuleResult(
                failed=True,
                msg=f"Remote source not found: {src}",
            )

        dest_sum = await self.connection.checksum(dest, timeout=timeout)
        if dest_sum == src_sum:
            return ModuleResult(
                changed=False,
                msg=f"{dest} already matches {src}",
            )

        await self.connection.remote_copy(src, dest, timeout=timeout)
        return ModuleResult(
            changed=True,
            msg=f"Copied {src} to {dest} (remote)",
        )
