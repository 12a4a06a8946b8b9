"""
Hostplay Task Executor

Dispatches a task to the module registered for its kind and turns every
outcome, including errors, into a TaskResult.
"""

import logging
from typing import Optional

from hostplay.connections.base import Connection
from hostplay.engine.errors import HostplayError
from hostplay.engine.playbook import Task
from hostplay.engine.results import TaskResult, TaskStatus
from hostplay.modules.base import get_module, missing_modules

logger = logging.getLogger(__name__)


class TaskExecutor:
    """
    Single entry point for running one task on one host.

    Args:
        command_timeout: Per-command timeout in seconds handed to modules
            that run remote commands; None means unbounded
    """

    def __init__(self, command_timeout: Optional[float] = None):
        missing = missing_modules()
        if missing:
            raise RuntimeError(
                "no module registered for task kinds: "
                + ", ".join(k.value for k in missing)
            )
        self.command_timeout = command_timeout

    async def execute(self, connection: Connection, task: Task) -> TaskResult:
        """
        Run ``task`` over ``connection``.

        Never raises for task or remote failures; those come back as a
        ``failed`` TaskResult whose ``msg`` holds the reason.
        """
        host = connection.host.name
        module_class = get_module(task.kind)
        if module_class is None:
            return _failed(host, task, f"Unknown task kind: {task.kind}")

        module = module_class(task, connection, command_timeout=self.command_timeout)

        error = module.validate()
        if error:
            return _failed(host, task, error)

        try:
            result = await module.run()
        except HostplayError as e:
            logger.debug(f"{task.name} on {host}: {e}")
            return _failed(host, task, str(e))
        except Exception as e:
            logger.exception(f"Unexpected error in task '{task.name}' on {host}")
            return _failed(host, task, f"{e.__class__.__name__}: {e}")

        return result.to_task_result(host, task.name)


def _failed(host: str, task: Task, msg: str) -> TaskResult:
    return TaskResult(
        host=host,
        task_name=task.name,
        status=TaskStatus.FAILED,
        msg=msg,
    )
