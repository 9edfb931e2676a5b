"""
Single-instance run lock.

The lock is a directory: os.mkdir either creates it or fails, which makes it
an atomic compare-and-set. The owning PID is written inside for diagnostics
only; it is never used to break or expire the lock. A crashed run leaves the
lock behind and it must be removed by hand.
"""

import os
import shutil
import signal
import logging
import threading

from .exceptions import LockContention


logger = logging.getLogger(__name__)

PID_RECORD = 'pid'

# Signals turned into SystemExit while the lock is held
_CLEANUP_SIGNALS = tuple(
    getattr(signal, name) for name in ('SIGTERM', 'SIGHUP') if hasattr(signal, name)
)


def _exit_on_signal(signum, frame):
    raise SystemExit(128 + signum)


class LockManager:
    """
    Directory-based exclusive lock for one rotation run.

    Use as a context manager so release happens on every exit path:

        with LockManager('/var/run/backup-rotator.lock'):
            ...
    """

    def __init__(self, path: str):
        self.path = path
        self.held = False
        self._previous_handlers = {}

    @property
    def pid_path(self) -> str:
        return os.path.join(self.path, PID_RECORD)

    def acquire(self) -> bool:
        """
        Try to take the lock.

        Returns:
            True if acquired, False if another run already holds it
        """
        try:
            os.mkdir(self.path)
        except FileExistsError:
            return False

        self.held = True
        try:
            with open(self.pid_path, 'w') as f:
                f.write(f"{os.getpid()}\n")
        except OSError as e:
            logger.warning(f"Could not record PID in {self.pid_path}: {e}")

        logger.debug(f"Acquired lock {self.path} (pid {os.getpid()})")
        return True

    def release(self):
        """Remove the lock directory if this instance holds it."""
        if not self.held:
            return
        shutil.rmtree(self.path, ignore_errors=True)
        self.held = False
        logger.debug(f"Released lock {self.path}")

    def owner(self) -> str:
        """Return the PID recorded by the current holder, or 'none'."""
        try:
            with open(self.pid_path) as f:
                pid = f.read().strip()
        except OSError:
            return 'none'
        return pid or 'none'

    def contention_message(self) -> str:
        return (
            f"Lock {self.path} is held by pid {self.owner()}. "
            "If that run is confirmed dead, remove the lock directory manually."
        )

    def _install_signal_handlers(self):
        if threading.current_thread() is not threading.main_thread():
            return
        for signum in _CLEANUP_SIGNALS:
            self._previous_handlers[signum] = signal.signal(signum, _exit_on_signal)

    def _restore_signal_handlers(self):
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers = {}

    def __enter__(self):
        if not self.acquire():
            raise LockContention(self.contention_message(), details={'owner': self.owner()})
        self._install_signal_handlers()
        return self

    def __exit__(self, exc_type, exc, tb):
        self._restore_signal_handlers()
        self.release()
        return False
