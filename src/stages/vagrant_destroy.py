"""Destroy machines Vagrant still tracks, from their own project directories."""

import logging
from typing import Optional

from actions.vagrant import Vagrant
from common import CommandRunner
from config import RunConfig
from reporting import RunResult
from stages import register_stage

logger = logging.getLogger(__name__)


@register_stage
class VagrantDestroyStage:
    """Run 'vagrant destroy' for every tracked libvirt machine.

    If global-status cannot be read at all the stage does nothing; a
    missing project directory is an expected end state, not a failure.
    """

    name = 'vagrant-destroy'
    description = 'Destroy Vagrant-managed libvirt machines'
    order = 10

    def applies(self, config: RunConfig) -> bool:
        return True

    def run(self, config: RunConfig, commands: CommandRunner,
            result: Optional[RunResult] = None) -> RunResult:
        result = result if result is not None else RunResult(stage=self.name)
        vagrant = Vagrant(commands)

        logger.info("Cleaning Vagrant-managed libvirt machines...")
        for machine in vagrant.tracked_machines():
            if not machine.home_exists:
                logger.info(f"Skipping {machine.id} (directory missing)")
                continue

            logger.info(f"Destroying {machine.id} in {machine.home_directory}")
            if result.record(vagrant.destroy(machine)):
                continue
            # Directory removed by someone else after the check
            if not machine.home_exists:
                logger.info(f"Skipping {machine.id} (directory missing)")
                continue
            result.warn(f"vagrant destroy failed for id={machine.id} dir={machine.home_directory}")

        return result
