"""
Hostplay shell module

Run a command through the remote shell.
"""

from hostplay.engine.errors import CommandTimeoutError
from hostplay.engine.playbook import ShellTask, TaskKind
from hostplay.modules.base import Module, ModuleResult, register_module


@register_module
class ShellModule(Module):
    """
    Run a shell command on the target host.

    A command has no way to tell whether it changed anything, so every
    zero exit is reported as changed and any other exit as failed.
    """

    kind = TaskKind.SHELL
    task: ShellTask

    async def run(self) -> ModuleResult:
        command = self.task.command

        try:
            result = await self.connection.run(command, timeout=self.command_timeout)
        except CommandTimeoutError as e:
            return ModuleResult(
                failed=True,
                msg=f"timeout: command did not finish within {e.timeout:g}s",
            )

        if result.rc != 0:
            stderr = result.stderr.strip()
            msg = f"exit code {result.rc}"
            if stderr:
                msg += f": {stderr}"
            return ModuleResult(
                failed=True,
                rc=result.rc,
                output=result.stdout,
                msg=msg,
            )

        return ModuleResult(
            changed=True,
            rc=result.rc,
            output=result.stdout,
        )
