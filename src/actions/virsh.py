"""virsh CLI client for libvirt domains and storage pools.

Every read is a fresh query; callers re-check state right before mutating
because domains and volumes can change or vanish at any time.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from common import ActionResult, CommandRunner

logger = logging.getLogger(__name__)

RUNNING = 'running'
SHUTOFF = 'shutoff'
OTHER = 'other'


def parse_state(text: str) -> str:
    """Normalize 'virsh domstate' output to running, shutoff or other."""
    lowered = text.strip().casefold()
    if RUNNING in lowered:
        return RUNNING
    if lowered.startswith('shut off') or lowered == SHUTOFF:
        return SHUTOFF
    return OTHER


def _names(output: str) -> list[str]:
    """Split --name listings into non-empty names, preserving order."""
    return [line.strip() for line in output.splitlines() if line.strip()]


@dataclass
class HypervisorDomain:
    """A libvirt domain as seen at one point in time."""
    name: str
    state: str = OTHER

    @property
    def running(self) -> bool:
        return self.state == RUNNING


class Virsh:
    """Thin wrapper over the virsh CLI.

    Args:
        commands: Dispatch boundary for queries and mutations
        uri: libvirt connection URI, passed as 'virsh -c URI' when set
    """

    def __init__(self, commands: CommandRunner, uri: Optional[str] = None):
        self.commands = commands
        self.uri = uri

    def _cmd(self, *args: str) -> list[str]:
        cmd = ['virsh']
        if self.uri:
            cmd += ['-c', self.uri]
        return cmd + list(args)

    def _prefix(self) -> str:
        return f"virsh -c {self.uri}" if self.uri else 'virsh'

    # Queries

    def list_domains(self) -> list[str]:
        """Return all domain names (running and inactive); empty on failure."""
        rc, out, err = self.commands.query(self._cmd('list', '--all', '--name'))
        if rc != 0:
            logger.debug(f"virsh list failed (rc={rc}): {err.strip()}")
            return []
        return _names(out)

    def domain_exists(self, name: str) -> bool:
        rc, _, _ = self.commands.query(self._cmd('dominfo', name))
        return rc == 0

    def get_domain(self, name: str) -> Optional[HypervisorDomain]:
        """Return the domain with its current state, or None if it is gone."""
        if not self.domain_exists(name):
            return None
        rc, out, _ = self.commands.query(self._cmd('domstate', name))
        state = parse_state(out) if rc == 0 else OTHER
        return HypervisorDomain(name=name, state=state)

    def dumpxml(self, name: str) -> Optional[str]:
        """Return the domain XML, or None if it cannot be retrieved."""
        rc, out, _ = self.commands.query(self._cmd('dumpxml', name))
        if rc != 0:
            return None
        return out

    def pool_exists(self, pool: str) -> bool:
        rc, _, _ = self.commands.query(self._cmd('pool-info', pool))
        return rc == 0

    def list_volumes(self, pool: str) -> list[str]:
        """Return volume names in a pool; empty on failure."""
        rc, out, err = self.commands.query(self._cmd('vol-list', pool, '--name'))
        if rc != 0:
            logger.debug(f"virsh vol-list {pool} failed (rc={rc}): {err.strip()}")
            return []
        return _names(out)

    # Mutations

    def destroy(self, name: str) -> ActionResult:
        """Force-stop a running domain."""
        return self.commands.mutate(f"{self._prefix()} destroy {name}", self._cmd('destroy', name))

    def undefine(self, name: str, remove_storage: bool = False) -> ActionResult:
        """Remove a domain definition, optionally with all of its storage."""
        args = ['undefine', name]
        if remove_storage:
            args.append('--remove-all-storage')
        return self.commands.mutate(f"{self._prefix()} {' '.join(args)}", self._cmd(*args))

    def delete_volume(self, volume: str, pool: str) -> ActionResult:
        return self.commands.mutate(
            f"{self._prefix()} vol-delete {volume} (pool {pool})",
            self._cmd('vol-delete', volume, '--pool', pool),
        )
