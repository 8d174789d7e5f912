"""Cleanup run outcome tracking."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from common import ActionResult

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Outcome of one stage.

    The failed flag only ever goes from False to True: any warning makes
    the whole run exit non-zero.
    """
    stage: str = ''
    failed: bool = False
    skipped: bool = False
    warnings: list[str] = field(default_factory=list)
    actions: list[str] = field(default_factory=list)
    duration: float = 0.0

    def warn(self, message: str) -> None:
        """Record a recoverable failure and keep going."""
        logger.warning(message)
        self.warnings.append(message)
        self.failed = True

    def record(self, action: ActionResult) -> bool:
        """Record a dispatched action. Returns action.success."""
        if action.success:
            self.actions.append(action.description)
        return action.success

    @property
    def status(self) -> str:
        if self.skipped:
            return 'skipped'
        return 'warned' if self.failed else 'passed'

    def merge(self, other: 'RunResult') -> None:
        """Fold another result into this one."""
        self.failed = self.failed or other.failed
        self.warnings.extend(other.warnings)
        self.actions.extend(other.actions)


@dataclass
class RunReport:
    """Aggregates stage results for a whole run."""
    mode: str = 'safe'
    dry_run: bool = False
    stages: list[RunResult] = field(default_factory=list)
    total: RunResult = field(default_factory=RunResult)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    def start(self):
        """Mark run start."""
        self.started_at = datetime.now()

    def add(self, result: RunResult):
        """Record a finished stage."""
        self.stages.append(result)
        self.total.merge(result)

    def skip(self, stage: str):
        """Record a stage that did not apply to this run."""
        self.stages.append(RunResult(stage=stage, skipped=True))

    def finish(self):
        """Mark run end."""
        self.finished_at = datetime.now()

    @property
    def failed(self) -> bool:
        return self.total.failed

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0

    @property
    def duration(self) -> float:
        if self.finished_at and self.started_at:
            return (self.finished_at - self.started_at).total_seconds()
        return 0.0

    def to_dict(self) -> dict:
        """Return report as dictionary for JSON output."""
        return {
            'success': not self.failed,
            'mode': self.mode,
            'dry_run': self.dry_run,
            'duration_seconds': round(self.duration, 1),
            'stages': [
                {
                    'name': s.stage,
                    'status': s.status,
                    'duration': round(s.duration, 1),
                    'actions': list(s.actions),
                    'warnings': list(s.warnings),
                }
                for s in self.stages
            ],
            'warnings': list(self.total.warnings),
        }
