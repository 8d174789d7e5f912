"""Ownership heuristics for libvirt domains and storage volumes.

These are conservative guesses, not an ownership check: skipping a real
leftover is acceptable, deleting an unrelated VM is not.
"""

import re
from typing import Optional

SAFE = 'safe'
UNSAFE = 'unsafe'

MARKER = 'vagrant'

# vagrant-libvirt naming: vagrant_x, x_vagrant, x-vagrant-y, _vagrant_x
_NAME_PATTERN = re.compile(r'^vagrant($|[-_])|[-_]vagrant($|[-_])|^_?vagrant_')

DISK_IMAGE_SUFFIXES = ('.qcow2', '.img')


def matches_name(name: str) -> bool:
    """Return True if a domain name follows a vagrant-libvirt convention."""
    return bool(_NAME_PATTERN.search(name))


def classify_domain(name: str, descriptor: Optional[str]) -> str:
    """Classify a domain as SAFE or UNSAFE to delete in safe mode.

    Args:
        name: Domain name
        descriptor: Full domain XML, or None if it could not be fetched

    Returns:
        SAFE if the name matches or the case-folded XML mentions the marker,
        UNSAFE otherwise.
    """
    if matches_name(name):
        return SAFE
    if descriptor is None:
        return UNSAFE
    return SAFE if MARKER in descriptor.casefold() else UNSAFE


def is_candidate_volume(name: str) -> bool:
    """Return True if a pool volume looks like a Vagrant leftover."""
    lowered = name.casefold()
    return MARKER in lowered or lowered.endswith(DISK_IMAGE_SUFFIXES)
