"""Destroy and undefine libvirt domains directly."""

import logging
from typing import Optional

from actions.virsh import Virsh
from classifier import SAFE, classify_domain, matches_name
from common import CommandRunner
from config import RunConfig
from reporting import RunResult
from stages import register_stage

logger = logging.getLogger(__name__)


def is_safe_domain(virsh: Virsh, name: str) -> bool:
    """Classify a domain, fetching its XML only when the name alone is not enough."""
    if matches_name(name):
        return True
    return classify_domain(name, virsh.dumpxml(name)) == SAFE


def teardown_domain(virsh: Virsh, name: str, result: RunResult) -> bool:
    """Stop and undefine one domain.

    Steps:
    1. Re-check the domain; if it is gone there is nothing to do
    2. Force-stop it if running (failure is a warning, we still continue)
    3. Undefine with --remove-all-storage
    4. Fall back to a plain undefine, leaving storage for the volume sweep
    5. Warn if both undefine attempts fail

    Returns:
        True if the domain is gone or was undefined
    """
    domain = virsh.get_domain(name)
    if domain is None:
        logger.debug(f"Domain {name} already gone")
        return True

    if domain.running:
        if not result.record(virsh.destroy(name)):
            result.warn(f"failed to destroy running domain: {name}")

    if result.record(virsh.undefine(name, remove_storage=True)):
        logger.info(f"Removed domain {name}")
        return True

    if result.record(virsh.undefine(name)):
        logger.info(f"Removed domain {name} (storage may remain)")
        return True

    result.warn(f"failed to undefine domain: {name}")
    return False


@register_stage
class DomainTeardownStage:
    """Remove libvirt domains regardless of Vagrant's bookkeeping.

    In safe mode only domains that look Vagrant-owned are touched; in all
    mode every domain on the connection is removed.
    """

    name = 'domains'
    description = 'Destroy and undefine libvirt domains'
    order = 20

    def applies(self, config: RunConfig) -> bool:
        return True

    def run(self, config: RunConfig, commands: CommandRunner,
            result: Optional[RunResult] = None) -> RunResult:
        result = result if result is not None else RunResult(stage=self.name)
        virsh = Virsh(commands, uri=config.uri)

        logger.info(f"Cleaning libvirt domains (mode: {config.mode})...")
        for name in virsh.list_domains():
            if config.mode == 'safe' and not is_safe_domain(virsh, name):
                logger.debug(f"Leaving domain {name} (not Vagrant-managed)")
                continue

            logger.info(f"Processing domain: {name}")
            teardown_domain(virsh, name, result)

        return result
