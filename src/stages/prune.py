"""Final Vagrant bookkeeping pass."""

import logging
from typing import Optional

from actions.vagrant import Vagrant
from common import CommandRunner
from config import RunConfig
from reporting import RunResult
from stages import register_stage

logger = logging.getLogger(__name__)


@register_stage
class PruneStage:
    """Ask Vagrant to forget machines whose state is gone."""

    name = 'prune'
    description = 'Prune stale Vagrant global-status entries'
    order = 40

    def applies(self, config: RunConfig) -> bool:
        return True

    def run(self, config: RunConfig, commands: CommandRunner,
            result: Optional[RunResult] = None) -> RunResult:
        result = result if result is not None else RunResult(stage=self.name)
        logger.info("Final Vagrant prune...")
        if not result.record(Vagrant(commands).prune()):
            result.warn("vagrant global-status --prune failed")
        return result
