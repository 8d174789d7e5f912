"""Shared pytest fixtures for vmlab-cleanup tests."""

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
from unittest.mock import patch

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

MUTATING_VIRSH = {'destroy', 'undefine', 'vol-delete'}


@dataclass
class FakeDomain:
    """Simulated libvirt domain."""
    state: str = 'shut off'
    xml: str = '<domain type="kvm"><name>x</name></domain>'
    destroy_fails: bool = False
    undefine_storage_fails: bool = False
    undefine_fails: bool = False
    xml_fails: bool = False


@dataclass
class FakeLab:
    """In-memory vagrant + virsh backend standing in for run_command.

    Mutating commands change the simulated state so a second run sees the
    result of the first. Every call is recorded in `calls` as
    (argv, cwd); `mutations` holds only the resource-mutating ones.
    """
    domains: dict[str, FakeDomain] = field(default_factory=dict)
    pools: dict[str, list[str]] = field(default_factory=dict)
    machines: dict[str, tuple[str, str]] = field(default_factory=dict)  # id -> (provider, home)
    status_fails: bool = False
    destroy_fails: set = field(default_factory=set)
    prune_fails: bool = False
    vol_delete_fails: set = field(default_factory=set)
    calls: list = field(default_factory=list)
    mutations: list = field(default_factory=list)

    def add_domain(self, name: str, **kwargs) -> FakeDomain:
        self.domains[name] = FakeDomain(**kwargs)
        return self.domains[name]

    def status_output(self) -> str:
        lines = []
        for machine_id, (provider, home) in self.machines.items():
            lines.append(f"1700000000,{machine_id},provider-name,{provider}")
            lines.append(f"1700000000,{machine_id},machine-home,{home}")
        return '\n'.join(lines) + '\n'

    def __call__(self, cmd, cwd=None, timeout=None):
        self.calls.append((list(cmd), cwd))
        if cmd[0] == 'vagrant':
            return self._vagrant(cmd[1:], cwd)
        if cmd[0] == 'virsh':
            args = cmd[1:]
            if args[:1] == ['-c']:
                args = args[2:]
            return self._virsh(args, cmd)
        return 127, '', f'{cmd[0]}: not found'

    def _vagrant(self, args, cwd):
        if args[0] == 'global-status' and '--machine-readable' in args:
            if self.status_fails:
                return 1, '', 'vagrant exploded'
            return 0, self.status_output(), ''
        if args[0] == 'global-status':
            self.mutations.append(['vagrant'] + args)
            return (1, '', 'prune failed') if self.prune_fails else (0, '', '')
        if args[0] == 'destroy':
            machine_id = args[-1]
            self.mutations.append(['vagrant'] + args)
            if machine_id in self.destroy_fails:
                return 1, '', 'destroy failed'
            self.machines.pop(machine_id, None)
            return 0, '', ''
        return 1, '', f'unknown vagrant command {args}'

    def _virsh(self, args, cmd):
        sub = args[0]
        if sub in MUTATING_VIRSH:
            self.mutations.append(list(cmd))

        if sub == 'list':
            return 0, ''.join(f"{name}\n" for name in self.domains) + '\n', ''
        if sub in ('dominfo', 'domstate', 'dumpxml', 'destroy', 'undefine'):
            domain: Optional[FakeDomain] = self.domains.get(args[1])
            if domain is None:
                return 1, '', f"error: failed to get domain '{args[1]}'"
            if sub == 'dominfo':
                return 0, f"Name: {args[1]}\n", ''
            if sub == 'domstate':
                return 0, f"{domain.state}\n\n", ''
            if sub == 'dumpxml':
                return (1, '', 'dumpxml failed') if domain.xml_fails else (0, domain.xml, '')
            if sub == 'destroy':
                if domain.destroy_fails:
                    return 1, '', 'destroy failed'
                domain.state = 'shut off'
                return 0, '', ''
            if '--remove-all-storage' in args:
                if domain.undefine_storage_fails:
                    return 1, '', 'volume in use'
            elif domain.undefine_fails:
                return 1, '', 'undefine failed'
            del self.domains[args[1]]
            return 0, '', ''
        if sub == 'pool-info':
            return (0, 'Name: x\n', '') if args[1] in self.pools else (1, '', 'pool not found')
        if sub == 'vol-list':
            if args[1] not in self.pools:
                return 1, '', 'pool not found'
            return 0, ''.join(f"{v}\n" for v in self.pools[args[1]]), ''
        if sub == 'vol-delete':
            vol, pool = args[1], args[3]
            if vol in self.vol_delete_fails or vol not in self.pools.get(pool, []):
                return 1, '', 'vol-delete failed'
            self.pools[pool].remove(vol)
            return 0, '', ''
        return 1, '', f'unknown virsh command {args}'


@pytest.fixture
def lab():
    """FakeLab wired in place of common.run_command."""
    fake = FakeLab()
    with patch('common.run_command', side_effect=fake):
        yield fake


@pytest.fixture
def lock_dir(tmp_path, monkeypatch):
    """Isolated lock base directory."""
    path = tmp_path / 'locks'
    path.mkdir()
    monkeypatch.setenv('VMLAB_CLEANUP_LOCK_DIR', str(path))
    return path


@pytest.fixture(autouse=True)
def no_user_config(tmp_path, monkeypatch):
    """Keep the real ~/.config defaults file out of tests."""
    monkeypatch.delenv('VMLAB_CLEANUP_CONFIG', raising=False)
    monkeypatch.delenv('VMLAB_CLEANUP_LOCK_DIR', raising=False)
    monkeypatch.setattr('config.default_config_file', lambda: tmp_path / 'no-such-config.yaml')
