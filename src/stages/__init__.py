"""Cleanup stage definitions and sequencing."""

import logging
import time
from typing import Optional, Protocol, runtime_checkable

from common import CommandRunner
from config import RunConfig
from reporting import RunReport, RunResult

logger = logging.getLogger(__name__)


@runtime_checkable
class Stage(Protocol):
    """Protocol for cleanup stages.

    Class attributes:
        name: Stage identifier (e.g., 'domains')
        description: Human-readable description
        order: Position in the run; lower runs first
    """
    name: str
    description: str
    order: int

    def applies(self, config: RunConfig) -> bool:
        """Return False to skip the stage for this configuration."""
        ...

    def run(self, config: RunConfig, commands: CommandRunner,
            result: Optional[RunResult] = None) -> RunResult:
        """Execute the stage, recording into result as it goes, and return it."""
        ...


class CleanupRunner:
    """Runs every stage in order and aggregates their results.

    A stage never prevents later stages from running: its warnings, and any
    unexpected exception it raises, are folded into the report and the run
    moves on.
    """

    def __init__(self, config: RunConfig, commands: Optional[CommandRunner] = None):
        self.config = config
        self.commands = commands or CommandRunner(
            dry_run=config.dry_run,
            timeout=config.command_timeout,
        )
        self.report = RunReport(mode=config.mode, dry_run=config.dry_run)

    def run(self) -> RunReport:
        """Run all stages. Returns the finished report."""
        self.report.start()

        for stage in get_stages():
            if not stage.applies(self.config):
                logger.debug(f"Skipping stage: {stage.name}")
                self.report.skip(stage.name)
                continue

            logger.debug(f"Running stage: {stage.name} - {stage.description}")
            start = time.time()
            # Owned here so work done before an exception is still reported
            result = RunResult(stage=stage.name)
            try:
                result = stage.run(self.config, self.commands, result)
            except Exception as e:
                logger.exception(f"Stage {stage.name} raised exception")
                result.warn(f"stage {stage.name} aborted: {e}")
            result.stage = result.stage or stage.name
            result.duration = time.time() - start
            self.report.add(result)

        self.report.finish()
        if self.report.failed:
            logger.warning("Cleanup finished with warnings/failures.")
        else:
            logger.info("Cleanup complete.")
        return self.report


# Registry of cleanup stages
_stages: dict[str, type] = {}


def register_stage(cls: type) -> type:
    """Decorator to register a stage class."""
    _stages[cls.name] = cls
    return cls


def get_stages() -> list[Stage]:
    """Return stage instances in execution order."""
    return [cls() for cls in sorted(_stages.values(), key=lambda c: c.order)]


def list_stages() -> list[str]:
    """List stage names in execution order."""
    return [stage.name for stage in get_stages()]


# Import stages to trigger registration
from stages import vagrant_destroy  # noqa: E402, F401
from stages import domains  # noqa: E402, F401
from stages import volumes  # noqa: E402, F401
from stages import prune  # noqa: E402, F401
