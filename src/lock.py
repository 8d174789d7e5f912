"""Single-instance guard for cleanup runs.

The lock is a directory created with mkdir, which is atomic and fails when
the directory already exists. The owning PID is written inside for
diagnostics. The marker is removed on normal exit, on exceptions and on
SIGINT/SIGTERM.
"""

import logging
import os
import signal
import tempfile
import threading
from pathlib import Path
from typing import Optional

from config import LOCK_DIR_ENV

logger = logging.getLogger(__name__)

LOCK_NAME = 'vmlab-cleanup.lockdir'
PID_FILE = 'pid'

_HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class LockError(Exception):
    """The lock marker could not be created."""


class LockHeldError(LockError):
    """Another cleanup run holds the lock."""


def default_lock_base() -> Path:
    """Return the lock base directory ($VMLAB_CLEANUP_LOCK_DIR or system temp)."""
    env_dir = os.environ.get(LOCK_DIR_ENV)
    if env_dir:
        return Path(env_dir)
    return Path(tempfile.gettempdir())


def _read_pid(pid_file: Path) -> Optional[int]:
    """Read PID from file. Returns None if file doesn't exist or is invalid."""
    try:
        return int(pid_file.read_text().strip())
    except (FileNotFoundError, NotADirectoryError, ValueError):
        return None


class RunLock:
    """Process-wide mutex backed by an atomically created directory.

    Usage:
        with RunLock(base_dir):
            ...  # at most one holder per lock path
    """

    def __init__(self, base_dir: Optional[Path] = None, name: str = LOCK_NAME):
        self.path = Path(base_dir or default_lock_base()) / name
        self._held = False
        self._previous_handlers: dict = {}

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self) -> None:
        """Create the lock marker or raise LockHeldError."""
        try:
            os.mkdir(self.path)
        except FileExistsError as e:
            owner = _read_pid(self.path / PID_FILE)
            owner_msg = f", pid {owner}" if owner else ""
            raise LockHeldError(
                f"another instance is running (lockdir: {self.path}{owner_msg})"
            ) from e
        except OSError as e:
            raise LockError(f"cannot create lockdir {self.path}: {e}") from e

        self._held = True
        try:
            (self.path / PID_FILE).write_text(f"{os.getpid()}\n")
        except OSError as e:
            logger.debug(f"Could not write pid file in {self.path}: {e}")
        self._install_signal_handlers()
        logger.debug(f"Acquired lock {self.path}")

    def release(self) -> None:
        """Remove the lock marker. Safe to call more than once."""
        if not self._held:
            return
        self._restore_signal_handlers()
        try:
            (self.path / PID_FILE).unlink()
        except FileNotFoundError:
            pass
        try:
            os.rmdir(self.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove lock {self.path}: {e}")
        self._held = False
        logger.debug(f"Released lock {self.path}")

    def _handle_signal(self, signum, frame):
        """Turn SIGINT/SIGTERM into SystemExit so the lock is released."""
        logger.warning(f"Received signal {signum}, aborting cleanup")
        raise SystemExit(1)

    def _install_signal_handlers(self) -> None:
        # signal.signal only works in the main thread
        if threading.current_thread() is not threading.main_thread():
            return
        for signum in _HANDLED_SIGNALS:
            self._previous_handlers[signum] = signal.signal(signum, self._handle_signal)

    def _restore_signal_handlers(self) -> None:
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers = {}

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False
