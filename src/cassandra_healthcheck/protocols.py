"""
Collaborator interfaces for the health check.

DataStoreProtocol is the boundary to the data-store client: topology,
schema introspection, schema statements and the traced probe read.
LockProtocol is the scoped-acquisition interface of the process lock.

Both are runtime-checkable so test doubles can be verified with
isinstance(), the same way subjects are checked elsewhere.
"""

from contextlib import AbstractContextManager
from typing import Any, Protocol, runtime_checkable

from cassandra_healthcheck.retry import DecisionRecorder
from cassandra_healthcheck.types import NodeAddress, ProbeQuery, ProbeResult


@runtime_checkable
class DataStoreProtocol(Protocol):
    """
    Protocol for the data-store session used by one run.

    Implementations talk to exactly one coordinator. Communication
    failures must be raised as DataStoreError (or NoHostAvailableError
    when no node could be asked at all).
    """

    def all_hosts(self) -> frozenset[NodeAddress]:
        """Return the addresses of every node the coordinator knows about."""
        ...

    def keyspace_replication(self, keyspace: str) -> dict[str, str] | None:
        """
        Return the raw replication options of a keyspace.

        Returns:
            The replication map (e.g. {"class": "...SimpleStrategy",
            "replication_factor": "3"}), or None if the keyspace
            does not exist.
        """
        ...

    def execute(self, cql: str, parameters: tuple[Any, ...] | None = None) -> None:
        """Execute a schema or seed statement at the default consistency."""
        ...

    def read(self, query: ProbeQuery, recorder: DecisionRecorder) -> ProbeResult:
        """
        Execute the probe read.

        Retry decisions made while executing the read are written to
        recorder. The returned trace is None when the server-side trace
        could not be fetched.
        """
        ...


@runtime_checkable
class LockProtocol(Protocol):
    """
    Protocol for host-local single-instance locks.

    acquire() fails immediately with AlreadyRunningError when another
    holder exists, otherwise returns a context manager that releases the
    lock on exit.
    """

    def acquire(self) -> AbstractContextManager[Any]:
        ...
