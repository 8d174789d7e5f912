"""Sweep leftover Vagrant volumes from a storage pool."""

import logging
from typing import Optional

from actions.virsh import Virsh
from classifier import is_candidate_volume
from common import CommandRunner
from config import RunConfig
from reporting import RunResult
from stages import register_stage

logger = logging.getLogger(__name__)


@register_stage
class VolumeSweepStage:
    """Delete volumes that look like Vagrant leftovers.

    Safe mode only. A missing pool is common and is not a failure.
    """

    name = 'volumes'
    description = 'Sweep orphaned volumes from the storage pool'
    order = 30

    def applies(self, config: RunConfig) -> bool:
        return config.mode == 'safe'

    def run(self, config: RunConfig, commands: CommandRunner,
            result: Optional[RunResult] = None) -> RunResult:
        result = result if result is not None else RunResult(stage=self.name)
        virsh = Virsh(commands, uri=config.uri)
        pool = config.pool

        if not virsh.pool_exists(pool):
            logger.debug(f"Pool '{pool}' not found, skipping volume sweep")
            return result

        logger.info(f"Sweeping orphaned volumes in pool '{pool}' (safe heuristics)...")
        for volume in virsh.list_volumes(pool):
            if not is_candidate_volume(volume):
                continue
            if result.record(virsh.delete_volume(volume, pool)):
                logger.info(f"Removed volume {volume} (pool {pool})")
            else:
                result.warn(f"failed to delete volume: {volume} (pool {pool})")

        return result
