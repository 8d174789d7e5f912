#!/usr/bin/env python3
"""CLI entry point for vmlab-cleanup.

Idempotent teardown of Vagrant + libvirt lab leftovers:
1. vagrant destroy for every tracked libvirt machine
2. virsh destroy/undefine for leftover domains
3. Volume sweep of the storage pool (safe mode only)
4. vagrant global-status --prune

Examples:
    vmlab-cleanup
    vmlab-cleanup --dry-run
    vmlab-cleanup --mode all --uri qemu:///system
    vmlab-cleanup --pool images --quiet
"""

import argparse
import json
import logging
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Optional

from common import MissingCommandError, require_commands
from config import (
    DEFAULT_POOL,
    MODES,
    ConfigError,
    build_run_config,
    find_config_file,
    load_defaults,
)
from lock import LockError, RunLock
from stages import CleanupRunner

REQUIRED_COMMANDS = ('vagrant', 'virsh')

EPILOG = """\
Exit codes:
  0  success (including "nothing to do")
  1  partial failure (some actions failed) or usage/precondition error
"""

logger = logging.getLogger(__name__)


class CleanupArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that reports usage errors with exit code 1."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def get_version() -> str:
    """Get installed package version ('dev' when running from a checkout)."""
    try:
        return version('vmlab-cleanup')
    except PackageNotFoundError:
        return 'dev'


def build_parser() -> argparse.ArgumentParser:
    parser = CleanupArgumentParser(
        prog='vmlab-cleanup',
        description='Idempotent cleanup for Vagrant + libvirt labs',
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'vmlab-cleanup {get_version()}'
    )
    parser.add_argument(
        '--mode',
        choices=MODES,
        help='safe = only Vagrant-tagged/likely Vagrant domains (default); '
             'all = remove all libvirt domains (dangerous)'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Show actions without changing anything'
    )
    parser.add_argument(
        '--quiet',
        action='store_true',
        help='Suppress normal output (warnings and errors still go to stderr)'
    )
    parser.add_argument(
        '--uri',
        help='libvirt connection URI (e.g. qemu:///system)'
    )
    parser.add_argument(
        '--pool',
        help=f'Storage pool name for the orphan volume sweep (default: {DEFAULT_POOL})'
    )
    parser.add_argument(
        '--timeout',
        type=int,
        help='Timeout in seconds for each external command (default: none)'
    )
    parser.add_argument(
        '--config',
        type=Path,
        help='YAML file with defaults for mode, uri, pool, timeout and lock_dir'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )
    parser.add_argument(
        '--json-output',
        action='store_true',
        help='Output the run report as JSON to stdout (logs go to stderr)'
    )
    return parser


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Configure root logging; --quiet wins over --verbose."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        stream=sys.stderr,
    )
    if quiet:
        logging.getLogger().setLevel(logging.WARNING)
    elif verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    else:
        logging.getLogger().setLevel(logging.INFO)


def main(argv: Optional[list[str]] = None) -> int:
    """CLI entry point. Returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=args.verbose, quiet=args.quiet)

    try:
        config_file = find_config_file(args.config)
        defaults = load_defaults(config_file) if config_file else {}
        config = build_run_config(args, defaults)
        require_commands(REQUIRED_COMMANDS)
    except (ConfigError, MissingCommandError) as e:
        logger.error(str(e))
        return 1

    if config.dry_run:
        logger.info("Dry-run mode: no changes will be made")

    runner = CleanupRunner(config)
    try:
        with RunLock(config.lock_dir):
            report = runner.run()
    except LockError as e:
        logger.error(str(e))
        return 1

    if config.json_output:
        print(json.dumps(report.to_dict(), indent=2))

    return report.exit_code


if __name__ == '__main__':
    sys.exit(main())
