"""
Exception classes for the health check.

- AlreadyRunningError: another health check holds the process lock
- DataStoreError: communication with the cluster failed
- NoHostAvailableError: no node could even be asked to serve a request
- LockFileError: the lock file exists but cannot be opened

Data-store errors are raised only by the driver integration and mapped to
an unreachable verdict by the health check. Everything else propagates.
"""

from pathlib import Path


class AlreadyRunningError(Exception):
    """
    Raised when the process lock is held by another health check.

    This is a startup failure, not a health signal about the cluster.

    Attributes:
        lock_path: Path of the contended lock file
        holder_pid: PID recorded by the current holder, if readable
    """

    def __init__(self, lock_path: Path, holder_pid: int | None = None) -> None:
        self.lock_path = lock_path
        self.holder_pid = holder_pid
        holder = f" by PID {holder_pid}" if holder_pid else ""
        super().__init__(
            f"There appears to be another health check running "
            f"(lock {lock_path} held{holder})"
        )


class DataStoreError(Exception):
    """Raised when a request to the cluster fails in transit or times out."""


class NoHostAvailableError(DataStoreError):
    """
    Raised when no node could be reached to attempt a request.

    Attributes:
        errors: Per-host error descriptions reported by the driver
    """

    def __init__(self, message: str, errors: dict[str, str] | None = None) -> None:
        self.errors = errors or {}
        detail = "; ".join(f"{host}: {err}" for host, err in self.errors.items())
        super().__init__(f"{message} ({detail})" if detail else message)


class LockFileError(Exception):
    """
    Raised when the lock file cannot be opened, e.g. it belongs to another user.

    Attributes:
        lock_path: Path of the unusable lock file
    """

    def __init__(self, lock_path: Path, reason: str) -> None:
        self.lock_path = lock_path
        self.reason = reason
        super().__init__(
            f"Cannot use lock file {lock_path}: {reason}. "
            f"Remove it or choose another path with --lock-file."
        )
