"""
Hostplay Host Runner

Drives one host through a playbook: opens its session, filters tasks by
tag, evaluates ``when`` conditions against the host's registers, runs the
tasks in declaration order and stops at the first failure.

State machine::

    READY --connect--> RUNNING --tasks exhausted--> COMPLETED
      |                   |
      +---- error --------+--> ABORTED

The session is closed on the transition into either terminal state.
"""

import asyncio
import enum
import logging
from typing import Callable, Dict, FrozenSet, List, Optional

from hostplay.connections.base import Connection, ConnectionFactory, create_connection
from hostplay.engine.conditions import evaluate_condition, parse_condition
from hostplay.engine.errors import ConnectionError, HostplayError
from hostplay.engine.executor import TaskExecutor
from hostplay.engine.inventory import ResolvedHost
from hostplay.engine.playbook import Task
from hostplay.engine.results import HostReport, TaskResult, TaskStatus
from hostplay.logging import log_performance

logger = logging.getLogger(__name__)


ResultCallback = Callable[[Task, TaskResult], None]


class RunnerState(enum.Enum):
    READY = "ready"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


class RegisterStore:
    """
    Registered task results of one host.

    Created empty for each host run and only written by that host's
    runner, so a condition sees exactly the registers set earlier on the
    same host.
    """

    def __init__(self):
        self._results: Dict[str, TaskResult] = {}

    def set(self, name: str, result: TaskResult) -> None:
        self._results[name] = result

    def get(self, name: str) -> Optional[TaskResult]:
        return self._results.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._results

    def __len__(self) -> int:
        return len(self._results)

    def names(self) -> List[str]:
        return list(self._results)


class HostRunner:
    """
    Run a playbook's tasks against a single host.

    Args:
        host: Host with resolved credentials
        tasks: Tasks in declaration order
        tag_filter: Tags selecting tasks; empty runs all tasks
        executor: Task executor (carries the command timeout)
        connection_factory: Creates the (unconnected) session for the host
        cancel_event: When set, no further task is started
        on_result: Called with each recorded result as it happens
    """

    def __init__(
        self,
        host: ResolvedHost,
        tasks: List[Task],
        tag_filter: FrozenSet[str] = frozenset(),
        executor: Optional[TaskExecutor] = None,
        connection_factory: Optional[ConnectionFactory] = None,
        cancel_event: Optional[asyncio.Event] = None,
        on_result: Optional[ResultCallback] = None,
    ):
        self.host = host
        self.tasks = tasks
        self.tag_filter = frozenset(tag_filter)
        self.executor = executor or TaskExecutor()
        self.connection_factory = connection_factory or create_connection
        self.cancel_event = cancel_event
        self.on_result = on_result

        self.state = RunnerState.READY
        self.registers = RegisterStore()
        self.report = HostReport(host=host.name)

    async def run(self) -> HostReport:
        """Run the host to a terminal state and return its report."""
        if self.state is not RunnerState.READY:
            raise RuntimeError(f"HostRunner for {self.host} already ran")

        connection = self.connection_factory(self.host)
        try:
            try:
                await connection.connect()
            except ConnectionError as e:
                logger.warning(f"Failed to connect to {self.host}: {e}")
                self._abort(str(e))
                return self.report

            self.state = RunnerState.RUNNING
            await self._run_tasks(connection)
        finally:
            await self._close(connection)

        if self.state is RunnerState.RUNNING:
            self.state = RunnerState.COMPLETED
        return self.report

    async def _run_tasks(self, connection: Connection) -> None:
        for task in self.tasks:
            if not task.selected_by(self.tag_filter):
                logger.debug(f"{self.host}: '{task.name}' not selected by tags")
                continue

            if self.cancel_event is not None and self.cancel_event.is_set():
                self._abort("cancelled", task.name)
                return

            if task.when:
                try:
                    should_run = evaluate_condition(parse_condition(task.when), self.registers)
                except HostplayError as e:
                    self._abort(str(e), task.name)
                    return

                if not should_run:
                    self._record(TaskResult(
                        host=self.host.name,
                        task_name=task.name,
                        status=TaskStatus.SKIPPED,
                        msg=f"Condition false: {task.when}",
                    ), task)
                    continue

            with log_performance(logger, f"task '{task.name}'", host=self.host.name):
                result = await self.executor.execute(connection, task)
            self._record(result, task)

            if result.failed:
                self._abort(result.msg, task.name)
                return

            if task.register:
                self.registers.set(task.register, result)

    def _record(self, result: TaskResult, task: Task) -> None:
        self.report.add_result(result)
        if self.on_result is not None:
            self.on_result(task, result)

    def _abort(self, reason: str, task_name: Optional[str] = None) -> None:
        where = f" at '{task_name}'" if task_name else ""
        logger.info(f"{self.host}: aborted{where}: {reason}")
        self.state = RunnerState.ABORTED
        self.report.abort(reason, task_name)

    async def _close(self, connection: Connection) -> None:
        try:
            await connection.close()
        except Exception as e:
            # Close errors never change the host outcome
            logger.debug(f"Error closing connection to {self.host}: {e}")
