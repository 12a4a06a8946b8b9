"""
Tests for result, report and summary classes.
"""

import json

from hostplay.engine.errors import ExitCode, HostFailedError
from hostplay.engine.results import (
    HostReport,
    HostStats,
    HostStatus,
    RunReport,
    RunSummary,
    TaskResult,
    TaskStatus,
)


def _result(host="web1", name="t", status=TaskStatus.CHANGED, **kwargs) -> TaskResult:
    return TaskResult(host=host, task_name=name, status=status, **kwargs)


class TestTaskResult:
    """Test TaskResult."""

    def test_status_properties(self):
        assert _result(status=TaskStatus.CHANGED).ok
        assert _result(status=TaskStatus.UNCHANGED).ok
        assert not _result(status=TaskStatus.UNCHANGED).changed
        assert _result(status=TaskStatus.FAILED).failed
        assert not _result(status=TaskStatus.SKIPPED).ok

    def test_to_dict_omits_empty_fields(self):
        assert _result().to_dict() == {"host": "web1", "task": "t", "status": "changed"}
        assert _result(status=TaskStatus.FAILED, msg="exit code 1", rc=1, output="").to_dict() == {
            "host": "web1",
            "task": "t",
            "status": "failed",
            "output": "",
            "msg": "exit code 1",
            "rc": 1,
        }


class TestHostReport:
    """Test HostReport."""

    def test_completed(self):
        report = HostReport(host="web1")
        report.add_result(_result())
        report.add_result(_result(status=TaskStatus.SKIPPED))

        assert report.status is HostStatus.COMPLETED
        assert report.error() is None
        assert report.stats == HostStats("web1", changed=1, skipped=1)

    def test_aborted(self):
        report = HostReport(host="web1")
        report.add_result(_result(status=TaskStatus.FAILED, msg="exit code 1"))
        report.abort("exit code 1", "t")

        error = report.error()
        assert isinstance(error, HostFailedError)
        assert str(error) == "Host web1 aborted at task 't': exit code 1"
        assert report.to_dict()["failed_task"] == "t"

    def test_aborted_before_any_task(self):
        report = HostReport(host="web1")
        report.abort("unreachable")
        assert str(report.error()) == "Host web1 aborted: unreachable"


class TestRunSummary:
    """Test aggregation across a playbook chain."""

    def _report(self, name, aborted=False) -> RunReport:
        host = HostReport(host="web1", results=[_result(status=TaskStatus.UNCHANGED)])
        if aborted:
            host.abort("boom")
        return RunReport(playbook=name, hosts=[host])

    def test_success(self):
        summary = RunSummary([self._report("base"), self._report("site")])

        assert summary.success
        assert summary.exit_code == ExitCode.SUCCESS
        assert summary.get_final_stats()["web1"].unchanged == 2

    def test_any_abort_fails(self):
        summary = RunSummary()
        summary.add_report(self._report("base"))
        summary.add_report(self._report("site", aborted=True))

        assert not summary.success
        assert summary.exit_code == ExitCode.HOST_FAILED

    def test_json(self):
        data = json.loads(RunSummary([self._report("site")]).to_json())
        assert data["success"] is True
        assert data["playbooks"][0]["playbook"] == "site"
        assert data["stats"]["web1"]["unchanged"] == 1
