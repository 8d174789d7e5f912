"""Tests for reporting module."""

import logging

from common import ActionResult
from reporting import RunReport, RunResult


class TestRunResult:
    """Tests for the per-stage accumulator."""

    def test_defaults(self):
        result = RunResult(stage='domains')
        assert result.failed is False
        assert result.status == 'passed'

    def test_warn_is_sticky(self):
        result = RunResult()
        result.warn('first')
        result.record(ActionResult(success=True, description='virsh undefine a'))
        assert result.failed is True
        assert result.status == 'warned'
        assert result.warnings == ['first']

    def test_warn_logs_plain_message(self, caplog):
        with caplog.at_level(logging.WARNING):
            RunResult().warn('failed to undefine domain: web')
        assert [r.getMessage() for r in caplog.records] == ['failed to undefine domain: web']

    def test_record_only_successful_actions(self):
        result = RunResult()
        assert result.record(ActionResult(success=True, description='ok')) is True
        assert result.record(ActionResult(success=False, description='bad', message='err')) is False
        assert result.actions == ['ok']
        # Recording a failed action is not itself a warning
        assert result.failed is False

    def test_merge(self):
        a = RunResult(actions=['x'])
        b = RunResult()
        b.warn('oops')
        a.merge(b)
        assert a.failed is True
        assert a.warnings == ['oops']
        assert a.actions == ['x']


class TestRunReport:
    """Tests for run-level aggregation."""

    def test_clean_run(self):
        report = RunReport()
        report.start()
        report.add(RunResult(stage='domains'))
        report.finish()
        assert report.exit_code == 0
        assert report.duration >= 0

    def test_any_warning_fails_run(self):
        report = RunReport()
        ok = RunResult(stage='domains')
        bad = RunResult(stage='prune')
        bad.warn('prune failed')
        report.add(bad)
        report.add(ok)
        assert report.exit_code == 1

    def test_to_dict(self):
        report = RunReport(mode='all', dry_run=True)
        report.start()
        report.add(RunResult(stage='domains', actions=['virsh undefine a']))
        report.skip('volumes')
        report.finish()

        data = report.to_dict()
        assert data['success'] is True
        assert data['mode'] == 'all'
        assert data['dry_run'] is True
        assert data['stages'][0]['actions'] == ['virsh undefine a']
        assert data['stages'][1]['status'] == 'skipped'
        assert data['warnings'] == []
