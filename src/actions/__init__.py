"""Clients for the external tools a cleanup run drives."""

from actions.vagrant import TrackedMachine, Vagrant, parse_global_status, parse_record
from actions.virsh import HypervisorDomain, Virsh, parse_state

__all__ = [
    'TrackedMachine',
    'Vagrant',
    'parse_global_status',
    'parse_record',
    'HypervisorDomain',
    'Virsh',
    'parse_state',
]
