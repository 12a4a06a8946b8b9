"""
Hostplay Scheduler

Async fan-out of one HostRunner per target host using asyncio.
"""

import asyncio
import logging
from typing import FrozenSet, Iterable, List, Optional

from hostplay.connections.base import ConnectionFactory
from hostplay.engine.errors import ResolutionError
from hostplay.engine.executor import TaskExecutor
from hostplay.engine.host_runner import HostRunner, ResultCallback
from hostplay.engine.inventory import Inventory
from hostplay.engine.playbook import Playbook
from hostplay.engine.results import HostReport, RunReport

logger = logging.getLogger(__name__)


class Scheduler:
    """
    Async scheduler for playbook execution.

    Every target host runs as its own asyncio task with its own session
    and registers; hosts share nothing and one host's failure never stops
    another. Within a host, tasks run strictly in order.
    """

    def __init__(
        self,
        forks: Optional[int] = None,
        connection_factory: Optional[ConnectionFactory] = None,
        command_timeout: Optional[float] = None,
        on_result: Optional[ResultCallback] = None,
    ):
        """
        Initialize the scheduler.

        Args:
            forks: Maximum number of hosts run at once (None: no limit)
            connection_factory: Callable creating an unconnected session for a host
            command_timeout: Per-command timeout in seconds; overrides the
                playbook's and the host config's ``command_timeout``
            on_result: Called with (task, result) as each host records a result
        """
        self.forks = max(1, forks) if forks else None
        self.connection_factory = connection_factory
        self.command_timeout = command_timeout
        self.on_result = on_result

    async def run(
        self,
        playbook: Playbook,
        inventory: Inventory,
        tag_filter: Iterable[str] = (),
        cancel_event: Optional[asyncio.Event] = None,
    ) -> RunReport:
        """
        Run a playbook against its target hosts.

        Args:
            playbook: Parsed playbook
            inventory: Host specs and global defaults
            tag_filter: Tags selecting tasks; empty runs all tasks
            cancel_event: Setting it stops every host before its next task

        Returns:
            RunReport with one HostReport per target host, in target order
        """
        tags: FrozenSet[str] = frozenset(tag_filter)
        timeout = self.command_timeout
        if timeout is None and playbook.local_config is not None:
            timeout = playbook.local_config.command_timeout
        if timeout is None:
            timeout = inventory.global_config.command_timeout
        executor = TaskExecutor(command_timeout=timeout)

        semaphore = asyncio.Semaphore(self.forks) if self.forks else None

        async def run_host(runner: HostRunner) -> HostReport:
            if semaphore is None:
                return await runner.run()
            async with semaphore:
                return await runner.run()

        reports: List[Optional[HostReport]] = []
        pending = []
        for address in _unique(playbook.target_hosts):
            try:
                host = inventory.resolve(address, playbook.local_config)
            except ResolutionError as e:
                logger.warning(str(e))
                report = HostReport(host=address)
                report.abort(str(e))
                reports.append(report)
                continue

            runner = HostRunner(
                host=host,
                tasks=playbook.tasks,
                tag_filter=tags,
                executor=executor,
                connection_factory=self.connection_factory,
                cancel_event=cancel_event,
                on_result=self.on_result,
            )
            pending.append((len(reports), address, asyncio.ensure_future(run_host(runner))))
            reports.append(None)

        if pending:
            results = await asyncio.gather(
                *(future for _, _, future in pending),
                return_exceptions=True,
            )
            for (slot, address, _), result in zip(pending, results):
                if isinstance(result, BaseException):
                    if isinstance(result, asyncio.CancelledError):
                        raise result
                    # HostRunner converts every engine error; anything here is a bug
                    logger.error(f"Host run for {address} crashed", exc_info=result)
                    report = HostReport(host=address)
                    report.abort(f"internal error: {result}")
                    result = report
                reports[slot] = result

        run_report = RunReport(playbook=playbook.display_name)
        for report in reports:
            run_report.add_host_report(report)
        return run_report


def _unique(addresses: Iterable[str]) -> List[str]:
    seen = set()
    ordered = []
    for address in addresses:
        if address not in seen:
            seen.add(address)
            ordered.append(address)
    return ordered
