"""Run outcome accumulation and reporting."""

from reporting.report import RunReport, RunResult

__all__ = ['RunReport', 'RunResult']
