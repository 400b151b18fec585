"""
Administrative lock for dataset init/wipe.

A PID file marks the running invocation. A second invocation aborts while the
recorded process is alive and is a draftdex process; a stale PID file is
cleaned up.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Iterator, Optional

import psutil

from .cache.io import ensure_dir
from .errors import LockHeldError

logger = logging.getLogger(__name__)


def is_draftdex_process(pid: int) -> bool:
    """Check if a PID is a live draftdex process other than this one."""
    if pid == os.getpid():
        return False
    try:
        proc = psutil.Process(pid)
        cmdline = " ".join(proc.cmdline()).lower()
        return "draftdex" in cmdline
    except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
        return False


def read_lock_pid(path: str) -> Optional[int]:
    try:
        with open(path) as f:
            return int(f.read().strip())
    except (ValueError, OSError):
        return None


def _create_lock_file(path: str) -> bool:
    """Create ``path`` holding this PID; False when it already exists."""
    try:
        fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
    except FileExistsError:
        return False
    with os.fdopen(fd, "w") as f:
        f.write(str(os.getpid()))
    return True


def acquire_lock(path: str) -> None:
    """Acquire the lock at ``path`` or raise ``LockHeldError``."""
    ensure_dir(os.path.dirname(path))
    if not _create_lock_file(path):
        old_pid = read_lock_pid(path)
        if old_pid is not None and is_draftdex_process(old_pid):
            raise LockHeldError(path, old_pid)
        logger.warning("removing stale lock file %s (pid %s)", path, old_pid)
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        if not _create_lock_file(path):
            # Another invocation took the lock after the stale file was removed.
            raise LockHeldError(path, read_lock_pid(path))
    logger.debug("acquired lock %s (pid %s)", path, os.getpid())


def release_lock(path: str) -> None:
    """Remove the lock file if this process owns it."""
    if read_lock_pid(path) == os.getpid():
        try:
            os.remove(path)
        except FileNotFoundError:
            return
        logger.debug("released lock %s", path)


@contextmanager
def admin_lock(path: str) -> Iterator[None]:
    acquire_lock(path)
    try:
        yield
    finally:
        release_lock(path)
