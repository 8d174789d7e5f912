"""Vagrant CLI client and machine-readable status parsing."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from common import ActionResult, CommandRunner

logger = logging.getLogger(__name__)

LIBVIRT_PROVIDER = 'libvirt'

PROVIDER_FIELD = 'provider-name'
HOME_FIELD = 'machine-home'
MACHINE_ID_FIELD = 'machine-id'

# Vagrant escapes commas inside machine-readable values
_COMMA_ESCAPE = '%!(VAGRANT_COMMA)'


@dataclass(frozen=True)
class StatusRecord:
    """One machine-readable line: timestamp,target,type,data."""
    timestamp: str
    target: str
    type: str
    data: str


@dataclass(frozen=True)
class TrackedMachine:
    """A machine Vagrant still has bookkeeping for."""
    id: str
    provider: str
    home_directory: Path

    @property
    def home_exists(self) -> bool:
        # Unreadable or overlong paths count as missing
        try:
            return self.home_directory.is_dir()
        except OSError:
            return False


def parse_record(line: str) -> Optional[StatusRecord]:
    """Parse one machine-readable line.

    Only the first three commas separate fields; the data field is
    everything after the third comma and may contain further commas.
    Returns None for lines with fewer than three commas or an empty type.
    """
    line = line.rstrip('\r\n')
    parts = line.split(',', 3)
    if len(parts) < 4:
        return None
    timestamp, target, field_type, data = parts
    if not field_type:
        return None
    return StatusRecord(
        timestamp=timestamp,
        target=target,
        type=field_type,
        data=data.replace(_COMMA_ESCAPE, ','),
    )


def parse_global_status(lines: Iterable[str]) -> list[TrackedMachine]:
    """Build TrackedMachines from a global-status --machine-readable stream.

    Provider and home directory are collected per target; a later record
    for the same target overwrites an earlier one. Records with an empty
    target belong to the most recent machine-id record, which is how newer
    Vagrant releases lay out global-status. Only libvirt machines with a
    known home directory are returned, in first-seen order.
    """
    providers: dict[str, str] = {}
    homes: dict[str, str] = {}
    current_id = ''

    for line in lines:
        record = parse_record(line)
        if record is None:
            continue

        target = record.target
        if not target:
            if record.type == MACHINE_ID_FIELD:
                current_id = record.data.strip()
                continue
            target = current_id
        if not target:
            continue

        if record.type == PROVIDER_FIELD:
            providers[target] = record.data
        elif record.type == HOME_FIELD:
            homes[target] = record.data

    machines = []
    for machine_id, provider in providers.items():
        home = homes.get(machine_id, '')
        if provider != LIBVIRT_PROVIDER or not home:
            continue
        machines.append(TrackedMachine(id=machine_id, provider=provider, home_directory=Path(home)))
    return machines


class Vagrant:
    """Thin wrapper over the vagrant CLI."""

    def __init__(self, commands: CommandRunner):
        self.commands = commands

    def global_status(self) -> Optional[str]:
        """Return machine-readable global status, or None if unavailable.

        Stale entries are pruned during the query, except under dry-run.
        """
        cmd = ['vagrant', 'global-status']
        if not self.commands.dry_run:
            cmd.append('--prune')
        cmd.append('--machine-readable')
        rc, out, err = self.commands.query(cmd)
        if rc != 0:
            logger.debug(f"vagrant global-status unavailable (rc={rc}): {err.strip()}")
            return None
        return out

    def tracked_machines(self) -> list[TrackedMachine]:
        """Return libvirt machines Vagrant knows about (empty if status unavailable)."""
        status = self.global_status()
        if status is None:
            return []
        return parse_global_status(status.splitlines())

    def destroy(self, machine: TrackedMachine) -> ActionResult:
        """Run 'vagrant destroy -f <id>' inside the machine's home directory."""
        return self.commands.mutate(
            f"vagrant destroy -f {machine.id} (in {machine.home_directory})",
            ['vagrant', 'destroy', '-f', machine.id],
            cwd=machine.home_directory,
        )

    def prune(self) -> ActionResult:
        """Ask Vagrant to forget machines whose state is gone."""
        return self.commands.mutate(
            'vagrant global-status --prune',
            ['vagrant', 'global-status', '--prune'],
        )
