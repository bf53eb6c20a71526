"""
Host-local process lock enforcing a single running health check.

ProcessLock uses an advisory flock(2) on a lock file. Acquisition never
waits: if another health check holds the lock, AlreadyRunningError is
raised at once, because an overlapping check means the cluster is
already being assessed.

The lock file holds the holder's PID and exists only while a check runs.
A holder that dies without cleaning up leaves a stale file but no flock,
so the next run acquires it normally.

Example:
    lock = ProcessLock(Path("/tmp/cassandra-healthcheck.lock"))
    with lock.acquire():
        run_check()
"""

import fcntl
import logging
import os
from pathlib import Path

from cassandra_healthcheck.exceptions import AlreadyRunningError, LockFileError

logger = logging.getLogger(__name__)

# Attempts to win a lock file that is unlinked between our open and flock.
_MAX_STALE_ATTEMPTS = 3


class LockHandle:
    """
    Scoped ownership of an acquired ProcessLock.

    release() is idempotent and also runs when the handle is used as a
    context manager, on every exit path.
    """

    def __init__(self, path: Path, fd: int) -> None:
        self.path = path
        self._fd: int | None = fd

    @property
    def released(self) -> bool:
        return self._fd is None

    def release(self) -> None:
        """Remove the lock file and drop the flock."""
        if self._fd is None:
            return

        fd, self._fd = self._fd, None
        try:
            # Unlink before unlocking so a waiter that already opened this
            # inode sees it detached and retries on a fresh file.
            if _same_file(self.path, fd):
                self.path.unlink()
        except FileNotFoundError:
            pass
        finally:
            try:
                fcntl.flock(fd, fcntl.LOCK_UN)
            finally:
                os.close(fd)
        logger.debug("Released process lock %s", self.path)

    def __enter__(self) -> "LockHandle":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class ProcessLock:
    """
    File-lock based guard allowing one health check per host.

    Attributes:
        path: Location of the lock file. Its parent directory is created
            on first acquisition.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def acquire(self) -> LockHandle:
        """
        Acquire the lock without waiting.

        Returns:
            LockHandle that releases the lock when closed.

        Raises:
            AlreadyRunningError: If another process holds the lock.
            LockFileError: If the lock file cannot be opened.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)

        for _ in range(_MAX_STALE_ATTEMPTS):
            try:
                fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)
            except PermissionError as exc:
                raise LockFileError(self.path, exc.strerror or "permission denied") from exc
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            except BlockingIOError as exc:
                holder_pid = _read_pid(fd)
                os.close(fd)
                raise AlreadyRunningError(self.path, holder_pid) from exc

            if not _same_file(self.path, fd):
                # The previous holder removed the file after we opened it
                fcntl.flock(fd, fcntl.LOCK_UN)
                os.close(fd)
                continue

            os.ftruncate(fd, 0)
            os.write(fd, str(os.getpid()).encode("utf-8"))
            os.fsync(fd)
            logger.debug("Acquired process lock %s", self.path)
            return LockHandle(self.path, fd)

        raise AlreadyRunningError(self.path)

    def is_held(self) -> bool:
        """Return True if some process currently holds the lock."""
        try:
            fd = os.open(self.path, os.O_RDONLY)
        except FileNotFoundError:
            return False
        try:
            fcntl.flock(fd, fcntl.LOCK_SH | fcntl.LOCK_NB)
        except BlockingIOError:
            return True
        else:
            fcntl.flock(fd, fcntl.LOCK_UN)
            return False
        finally:
            os.close(fd)


def _same_file(path: Path, fd: int) -> bool:
    """Check that path still names the file open on fd."""
    try:
        on_disk = os.stat(path)
    except FileNotFoundError:
        return False
    held = os.fstat(fd)
    return (on_disk.st_dev, on_disk.st_ino) == (held.st_dev, held.st_ino)


def _read_pid(fd: int) -> int | None:
    """Read the holder PID from an open lock file, if it is well formed."""
    try:
        os.lseek(fd, 0, os.SEEK_SET)
        data = os.read(fd, 32).decode("utf-8").strip()
    except OSError:
        return None
    return int(data) if data.isdigit() else None
