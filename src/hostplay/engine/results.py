"""
Hostplay Result Classes

Data structures for task, host, and run results.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum
import json

from hostplay.engine.errors import ExitCode, HostFailedError


class TaskStatus(Enum):
    """Status of a task execution."""
    CHANGED = "changed"
    UNCHANGED = "unchanged"
    FAILED = "failed"
    SKIPPED = "skipped"


class HostStatus(Enum):
    """Terminal status of a host run."""
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass(frozen=True)
class TaskResult:
    """Result of executing a single task on a single host."""

    host: str
    task_name: str
    status: TaskStatus
    output: Optional[str] = None
    msg: str = ""
    rc: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON output."""
        result: Dict[str, Any] = {
            "host": self.host,
            "task": self.task_name,
            "status": self.status.value,
        }
        if self.output is not None:
            result["output"] = self.output
        if self.msg:
            result["msg"] = self.msg
        if self.rc is not None:
            result["rc"] = self.rc
        return result

    @property
    def failed(self) -> bool:
        """Check if the task failed."""
        return self.status is TaskStatus.FAILED

    @property
    def ok(self) -> bool:
        """Check if the task succeeded (changed or unchanged)."""
        return self.status in (TaskStatus.CHANGED, TaskStatus.UNCHANGED)

    @property
    def changed(self) -> bool:
        return self.status is TaskStatus.CHANGED


@dataclass
class HostStats:
    """Statistics for a single host across all tasks."""

    host: str
    changed: int = 0
    unchanged: int = 0
    failed: int = 0
    skipped: int = 0

    def record(self, status: TaskStatus) -> None:
        """Record a task result status."""
        if status == TaskStatus.CHANGED:
            self.changed += 1
        elif status == TaskStatus.UNCHANGED:
            self.unchanged += 1
        elif status == TaskStatus.FAILED:
            self.failed += 1
        elif status == TaskStatus.SKIPPED:
            self.skipped += 1

    def merge(self, other: 'HostStats') -> None:
        """Merge another HostStats into this one."""
        self.changed += other.changed
        self.unchanged += other.unchanged
        self.failed += other.failed
        self.skipped += other.skipped

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "host": self.host,
            "changed": self.changed,
            "unchanged": self.unchanged,
            "failed": self.failed,
            "skipped": self.skipped,
        }


@dataclass
class HostReport:
    """
    Outcome of one host run: its task results in execution order plus
    the terminal status.

    ``failed_task`` is None when the host aborted before any task ran
    (resolution or connection error).
    """

    host: str
    results: List[TaskResult] = field(default_factory=list)
    status: HostStatus = HostStatus.COMPLETED
    failed_task: Optional[str] = None
    reason: Optional[str] = None

    def add_result(self, result: TaskResult) -> None:
        self.results.append(result)

    def abort(self, reason: str, task_name: Optional[str] = None) -> None:
        """Mark the host run as aborted."""
        self.status = HostStatus.ABORTED
        self.failed_task = task_name
        self.reason = reason

    @property
    def aborted(self) -> bool:
        return self.status is HostStatus.ABORTED

    @property
    def stats(self) -> HostStats:
        stats = HostStats(self.host)
        for result in self.results:
            stats.record(result.status)
        return stats

    def error(self) -> Optional[HostFailedError]:
        """Return the abort as an exception object, for display."""
        if not self.aborted:
            return None
        return HostFailedError(self.host, self.failed_task, self.reason or "")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON output."""
        result: Dict[str, Any] = {
            "host": self.host,
            "status": self.status.value,
            "tasks": [r.to_dict() for r in self.results],
        }
        if self.aborted:
            result["failed_task"] = self.failed_task
            result["reason"] = self.reason
        return result


@dataclass
class RunReport:
    """Result of running one playbook: one HostReport per target host."""

    playbook: str
    hosts: List[HostReport] = field(default_factory=list)

    def add_host_report(self, report: HostReport) -> None:
        self.hosts.append(report)

    def get(self, host: str) -> Optional[HostReport]:
        """Return the report for a host address, if it was targeted."""
        for report in self.hosts:
            if report.host == host:
                return report
        return None

    @property
    def host_stats(self) -> Dict[str, HostStats]:
        return {r.host: r.stats for r in self.hosts}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "playbook": self.playbook,
            "success": self.success,
            "hosts": [r.to_dict() for r in self.hosts],
            "stats": {h: s.to_dict() for h, s in self.host_stats.items()},
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @property
    def success(self) -> bool:
        """True when no host aborted."""
        return not any(r.aborted for r in self.hosts)

    @property
    def exit_code(self) -> int:
        """Get appropriate exit code."""
        return ExitCode.SUCCESS if self.success else ExitCode.HOST_FAILED


@dataclass
class RunSummary:
    """Result of running a playbook together with its includes."""

    reports: List[RunReport] = field(default_factory=list)

    def add_report(self, report: RunReport) -> None:
        self.reports.append(report)

    def get_final_stats(self) -> Dict[str, HostStats]:
        """Get aggregated stats for all hosts across all playbooks."""
        final_stats: Dict[str, HostStats] = {}

        for report in self.reports:
            for host, stats in report.host_stats.items():
                if host not in final_stats:
                    final_stats[host] = HostStats(host)
                final_stats[host].merge(stats)

        return final_stats

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "success": self.success,
            "playbooks": [r.to_dict() for r in self.reports],
            "stats": {h: s.to_dict() for h, s in self.get_final_stats().items()},
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @property
    def success(self) -> bool:
        return all(r.success for r in self.reports)

    @property
    def exit_code(self) -> int:
        return ExitCode.SUCCESS if self.success else ExitCode.HOST_FAILED
