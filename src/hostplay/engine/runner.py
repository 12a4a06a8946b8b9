"""
Hostplay Playbook Runner

High-level runner that coordinates host config loading, playbook
parsing, the scheduler, and output.
"""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Iterable, List, Optional, Union

from hostplay.connections.base import ConnectionFactory
from hostplay.engine.errors import (
    ExitCode,
    HostplayError,
    ParseError,
    UnsupportedFeatureError,
)
from hostplay.engine.inventory import Inventory
from hostplay.engine.playbook import Playbook, Task, load_playbook_chain
from hostplay.engine.results import HostStats, RunReport, RunSummary, TaskResult, TaskStatus
from hostplay.engine.scheduler import Scheduler

logger = logging.getLogger(__name__)


class PlaybookRunner:
    """
    High-level playbook runner.

    Coordinates:
    - Playbook (and include) loading
    - One scheduler run per playbook in the chain
    - Streaming per-host output and the final recap
    - JSON output and exit codes
    """

    def __init__(
        self,
        inventory: Inventory,
        playbook_path: Union[str, Path],
        tags: Optional[Iterable[str]] = None,
        forks: Optional[int] = None,
        command_timeout: Optional[float] = None,
        verbosity: int = 0,
        json_output: bool = False,
        connection_factory: Optional[ConnectionFactory] = None,
    ):
        self.inventory = inventory
        self.playbook_path = Path(playbook_path)
        self.tags = frozenset(tags or ())
        self.verbosity = verbosity
        self.json_output = json_output

        self.scheduler = Scheduler(
            forks=forks,
            connection_factory=connection_factory,
            command_timeout=command_timeout,
            on_result=self._print_host_result,
        )

    def run(self) -> int:
        """
        Run the playbook synchronously.

        Returns:
            Exit code (0=success, 2=host aborted, 3=parse error, 4=unsupported)
        """
        try:
            summary = asyncio.run(self.run_async())
        except ParseError as e:
            return self._report_error("parse_error", f"Parse error: {e}", ExitCode.PARSE_ERROR)
        except UnsupportedFeatureError as e:
            return self._report_error("unsupported_feature", str(e), ExitCode.UNSUPPORTED_FEATURE)
        except HostplayError as e:
            return self._report_error("error", f"Error: {e}", ExitCode.GENERIC_ERROR)
        except KeyboardInterrupt:
            return self._report_error("interrupted", "Interrupted", ExitCode.KEYBOARD_INTERRUPT)

        if self.json_output:
            print(summary.to_json())

        return int(summary.exit_code)

    async def run_async(self, cancel_event: Optional[asyncio.Event] = None) -> RunSummary:
        """Run the playbook chain (includes first) asynchronously."""
        chain = load_playbook_chain(self.playbook_path)

        summary = RunSummary()
        for playbook in chain:
            report = await self._run_playbook(playbook, cancel_event)
            summary.add_report(report)

        self._print_recap(summary.get_final_stats(), summary)
        return summary

    async def _run_playbook(
        self,
        playbook: Playbook,
        cancel_event: Optional[asyncio.Event],
    ) -> RunReport:
        self._print_playbook(playbook)
        logger.info(f"Running {playbook!r}")

        report = await self.scheduler.run(
            playbook,
            self.inventory,
            tag_filter=self.tags,
            cancel_event=cancel_event,
        )

        for host_report in report.hosts:
            error = host_report.error()
            if error is not None:
                self._print_warning(str(error))
        return report

    def _report_error(self, error_type: str, message: str, exit_code: int) -> int:
        if self.json_output:
            error_obj = {
                "error": True,
                "error_type": error_type,
                "message": message,
                "exit_code": int(exit_code),
            }
            print(json.dumps(error_obj, indent=2))
        else:
            self._print_error(message)
        return int(exit_code)

    # Output methods (suppressed when json_output is True)
    def _print_playbook(self, playbook: Playbook) -> None:
        """Print playbook banner."""
        if not self.json_output:
            print(f"\nPLAYBOOK [{playbook.display_name}] " + "*" * 50)

    def _print_host_result(self, task: Task, result: TaskResult) -> None:
        """Print one host's result for a task as it arrives."""
        if self.json_output:
            return

        colors = {
            TaskStatus.UNCHANGED: '\033[32m',  # Green
            TaskStatus.CHANGED: '\033[33m',    # Yellow
            TaskStatus.FAILED: '\033[31m',     # Red
            TaskStatus.SKIPPED: '\033[36m',    # Cyan
        }
        reset = '\033[0m'
        color = colors.get(result.status, '')

        line = f"{color}{result.status.value}: [{result.host}] {task.name}{reset}"
        if result.msg and (result.failed or self.verbosity > 0):
            line += f" => {result.msg}"
        print(line)

        if self.verbosity >= 2 and result.output:
            print(f"  output: {result.output[:200]}")

    def _print_warning(self, msg: str) -> None:
        """Print a warning message."""
        if not self.json_output:
            print(f"\033[33m[WARNING]: {msg}\033[0m", file=sys.stderr)

    def _print_error(self, msg: str) -> None:
        print(f"\033[31m{msg}\033[0m", file=sys.stderr)

    def _print_recap(self, host_stats: dict, summary: RunSummary) -> None:
        """Print final recap."""
        if self.json_output:
            return

        print("\nRECAP " + "*" * 60)

        aborted = {
            r.host for report in summary.reports for r in report.hosts if r.aborted
        }
        for host, stats in sorted(host_stats.items()):
            print(f"{host:40} : {self._format_stats(stats, host in aborted)}")

    @staticmethod
    def _format_stats(stats: HostStats, aborted: bool) -> str:
        status_parts: List[str] = []

        if stats.changed:
            status_parts.append(f"\033[33mchanged={stats.changed}\033[0m")
        if stats.unchanged:
            status_parts.append(f"\033[32munchanged={stats.unchanged}\033[0m")
        if stats.failed:
            status_parts.append(f"\033[31mfailed={stats.failed}\033[0m")
        if stats.skipped:
            status_parts.append(f"\033[36mskipped={stats.skipped}\033[0m")
        if aborted:
            status_parts.append("\033[31maborted\033[0m")

        return "  ".join(status_parts) if status_parts else "changed=0"
