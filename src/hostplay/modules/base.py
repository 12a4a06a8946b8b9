"""
Hostplay Module Base

Base class and registry for task modules. There is exactly one module
per task kind; the registry is checked for completeness when the
executor is created.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Type

from hostplay.connections.base import Connection
from hostplay.engine.errors import RemoteFileNotFoundError, TaskFailedError, TransferError
from hostplay.engine.playbook import Task, TaskKind
from hostplay.engine.results import TaskResult, TaskStatus


@dataclass
class ModuleResult:
    """Result of module execution."""

    changed: bool = False
    failed: bool = False
    msg: str = ""
    output: Optional[str] = None
    rc: Optional[int] = None

    def to_task_result(self, host: str, task_name: str) -> TaskResult:
        """Convert to TaskResult."""
        if self.failed:
            status = TaskStatus.FAILED
        elif self.changed:
            status = TaskStatus.CHANGED
        else:
            status = TaskStatus.UNCHANGED

        return TaskResult(
            host=host,
            task_name=task_name,
            status=status,
            output=self.output,
            msg=self.msg,
            rc=self.rc,
        )


class Module(ABC):
    """
    Base class for all task modules.

    A module performs one task against one open connection. Its only
    remote effect is on the task's destination path.
    """

    # Task kind handled by this module (used for registration)
    kind: TaskKind

    def __init__(
        self,
        task: Task,
        connection: Connection,
        command_timeout: Optional[float] = None,
    ):
        self.task = task
        self.connection = connection
        self.command_timeout = command_timeout

    def validate(self) -> Optional[str]:
        """
        Check the task before any remote interaction.

        Returns:
            Error message if validation fails, None otherwise
        """
        return None

    @abstractmethod
    async def run(self) -> ModuleResult:
        """
        Execute the module.

        Returns:
            ModuleResult with execution outcome
        """
        pass

    async def deploy(self, content: bytes, dest: str) -> ModuleResult:
        """
        Upload ``content`` to ``dest`` unless it already holds exactly that.

        A destination that cannot be read counts as different.
        """
        try:
            current = await self.connection.download(dest)
        except RemoteFileNotFoundError:
            current = None
        except TransferError:
            # Unreadable; let the upload decide whether dest is writable
            current = None

        if current == content:
            return ModuleResult(changed=False, msg=f"{dest} already up to date")

        await self.connection.upload(content, dest)
        return ModuleResult(changed=True, msg=f"{dest} updated ({len(content)} bytes)")


def read_local(path: str) -> bytes:
    """
    Read a file from the control node.

    Raises:
        TaskFailedError: If the file is missing or unreadable
    """
    src = Path(path)
    if not src.exists():
        raise TaskFailedError(f"Source file not found: {path}")
    if src.is_dir():
        raise TaskFailedError(f"Source is a directory: {path}")
    try:
        return src.read_bytes()
    except OSError as e:
        raise TaskFailedError(f"Failed to read {path}: {e}")


# Module registry
_modules: Dict[TaskKind, Type[Module]] = {}
_modules_imported = False


def register_module(cls: Type[Module]) -> Type[Module]:
    """Decorator to register a module class."""
    _modules[cls.kind] = cls
    return cls


def get_module(kind: TaskKind) -> Optional[Type[Module]]:
    """Get a module class by task kind."""
    _ensure_modules_imported()
    return _modules.get(kind)


def missing_modules() -> List[TaskKind]:
    """Task kinds that have no registered module."""
    _ensure_modules_imported()
    return [kind for kind in TaskKind if kind not in _modules]


def _ensure_modules_imported() -> None:
    """Ensure all modules have been imported."""
    global _modules_imported
    if not _modules_imported:
        _import_builtin_modules()
        _modules_imported = True


def _import_builtin_modules() -> None:
    """Import all built-in modules to register them."""
    # These imports trigger the @register_module decorators
    from hostplay.modules import shell
    from hostplay.modules import copy
    from hostplay.modules import search_replace
    from hostplay.modules import template
