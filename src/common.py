"""Common utilities and types for lab cleanup."""

import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

logger = logging.getLogger(__name__)


class MissingCommandError(Exception):
    """A required external command is not installed."""


@dataclass
class ActionResult:
    """Result of a single resource-mutating command."""
    success: bool
    description: str
    message: str = ''
    dry_run: bool = False


def run_command(
    cmd: list[str],
    cwd: Optional[Path] = None,
    timeout: Optional[int] = None
) -> tuple[int, str, str]:
    """Run a command and return (returncode, stdout, stderr)."""
    logger.debug(f"Running: {' '.join(cmd)}")
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False  # We handle return codes explicitly
        )
        return result.returncode, result.stdout, result.stderr
    except subprocess.TimeoutExpired:
        return -1, '', f'Command timed out after {timeout}s'
    except Exception as e:
        return -1, '', str(e)


def require_commands(names: Iterable[str]) -> None:
    """Raise MissingCommandError unless every command is on PATH."""
    missing = [name for name in names if shutil.which(name) is None]
    if missing:
        names_str = ', '.join(f"'{name}'" for name in missing)
        raise MissingCommandError(f"required command not found: {names_str}")


class CommandRunner:
    """Dispatch boundary for every external tool invocation.

    Read-only queries always run. Mutations go through mutate(), which in
    dry-run mode logs the intended action and reports success without
    invoking anything.
    """

    def __init__(self, dry_run: bool = False, timeout: Optional[int] = None):
        self.dry_run = dry_run
        self.timeout = timeout

    def query(self, cmd: list[str], cwd: Optional[Path] = None) -> tuple[int, str, str]:
        """Run a read-only command."""
        return run_command(cmd, cwd=cwd, timeout=self.timeout)

    def mutate(self, description: str, cmd: list[str], cwd: Optional[Path] = None) -> ActionResult:
        """Run a resource-mutating command, or pretend to under dry-run."""
        if self.dry_run:
            logger.info(f"DRY-RUN: {description}")
            return ActionResult(success=True, description=description, dry_run=True)

        rc, _, err = run_command(cmd, cwd=cwd, timeout=self.timeout)
        if rc != 0:
            logger.debug(f"{description} failed (rc={rc}): {err.strip()}")
            return ActionResult(success=False, description=description,
                                message=err.strip() or f'exit code {rc}')
        return ActionResult(success=True, description=description)
