"""Tests for lock.py - single-instance guard."""

import os
import signal

import pytest

from lock import LOCK_NAME, LockError, LockHeldError, RunLock, default_lock_base


class TestRunLock:
    """Tests for RunLock."""

    def test_acquire_creates_marker(self, tmp_path):
        lock = RunLock(tmp_path)
        lock.acquire()
        try:
            assert lock.path == tmp_path / LOCK_NAME
            assert lock.path.is_dir()
            assert (lock.path / 'pid').read_text().strip() == str(os.getpid())
        finally:
            lock.release()
        assert not lock.path.exists()

    def test_second_acquire_fails(self, tmp_path):
        with RunLock(tmp_path):
            with pytest.raises(LockHeldError, match='another instance is running'):
                RunLock(tmp_path).acquire()

    def test_held_error_names_owner_pid(self, tmp_path):
        with RunLock(tmp_path):
            with pytest.raises(LockHeldError, match=f'pid {os.getpid()}'):
                RunLock(tmp_path).acquire()

    def test_foreign_marker_blocks(self, tmp_path):
        (tmp_path / LOCK_NAME).mkdir()
        with pytest.raises(LockHeldError):
            RunLock(tmp_path).acquire()
        # A failed acquire must not remove someone else's marker
        assert (tmp_path / LOCK_NAME).is_dir()

    def test_released_on_exception(self, tmp_path):
        with pytest.raises(RuntimeError):
            with RunLock(tmp_path):
                raise RuntimeError('boom')
        assert not (tmp_path / LOCK_NAME).exists()

    def test_release_is_idempotent(self, tmp_path):
        lock = RunLock(tmp_path)
        lock.acquire()
        lock.release()
        lock.release()
        assert not lock.held

    def test_release_tolerates_vanished_marker(self, tmp_path):
        lock = RunLock(tmp_path)
        lock.acquire()
        (lock.path / 'pid').unlink()
        os.rmdir(lock.path)
        lock.release()
        assert not lock.held

    def test_missing_base_dir_is_lock_error(self, tmp_path):
        with pytest.raises(LockError) as exc:
            RunLock(tmp_path / 'nope').acquire()
        assert not isinstance(exc.value, LockHeldError)

    def test_sigterm_handler_installed_and_restored(self, tmp_path):
        before = signal.getsignal(signal.SIGTERM)
        with RunLock(tmp_path) as lock:
            assert signal.getsignal(signal.SIGTERM) == lock._handle_signal
        assert signal.getsignal(signal.SIGTERM) == before

    def test_signal_becomes_system_exit(self, tmp_path):
        with pytest.raises(SystemExit):
            with RunLock(tmp_path) as lock:
                lock._handle_signal(signal.SIGTERM, None)
        assert not (tmp_path / LOCK_NAME).exists()


class TestDefaultLockBase:
    """Tests for lock base resolution."""

    def test_env_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv('VMLAB_CLEANUP_LOCK_DIR', str(tmp_path))
        assert default_lock_base() == tmp_path

    def test_falls_back_to_tempdir(self, tmp_path, monkeypatch):
        monkeypatch.setattr('lock.tempfile.gettempdir', lambda: str(tmp_path))
        assert default_lock_base() == tmp_path

    def test_env_used_when_no_base_given(self, tmp_path, monkeypatch):
        monkeypatch.setenv('VMLAB_CLEANUP_LOCK_DIR', str(tmp_path))
        assert RunLock().path == tmp_path / LOCK_NAME
