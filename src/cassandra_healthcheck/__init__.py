"""
Cassandra health check.

Verifies that every node of a Cassandra cluster can be reached at
consistency ALL through a single coordinator, and reports a tri-state
verdict suitable for monitoring:

- HEALTHY (0): every replica answered the strict read
- DEGRADED (1): the read only succeeded after a consistency downgrade
- UNREACHABLE (2): the read could not be served at all

Components:
- ProcessLock: one health check per host
- SchemaReconciler: keeps the health-check keyspace replicated to every node
- ConsistencyProbe: the traced consistency ALL read
- decide / DecisionRecorder: the single-downgrade retry decision
- find_missing_nodes: nodes that left no trace event
- classify: the final verdict
"""

from cassandra_healthcheck.check import HealthCheck, run_health_check
from cassandra_healthcheck.classifier import classify
from cassandra_healthcheck.config import Settings
from cassandra_healthcheck.exceptions import (
    AlreadyRunningError,
    DataStoreError,
    LockFileError,
    NoHostAvailableError,
)
from cassandra_healthcheck.lock import LockHandle, ProcessLock
from cassandra_healthcheck.probe import ConsistencyProbe
from cassandra_healthcheck.protocols import DataStoreProtocol, LockProtocol
from cassandra_healthcheck.retry import DecisionRecorder, RecordingRetryPolicy, decide
from cassandra_healthcheck.schema import KeyspaceReplication, SchemaReconciler
from cassandra_healthcheck.topology import normalize_address, take_snapshot
from cassandra_healthcheck.trace import find_missing_nodes
from cassandra_healthcheck.types import (
    FailureKind,
    HealthReport,
    HealthStatus,
    NodeAddress,
    ProbeOutcome,
    ProbeQuery,
    ProbeResult,
    RetryDecision,
    SchemaDescriptor,
    TopologySnapshot,
    TraceEvent,
)

__all__ = [
    # Orchestration
    "HealthCheck",
    "run_health_check",
    "classify",
    "Settings",
    # Components
    "ProcessLock",
    "LockHandle",
    "SchemaReconciler",
    "KeyspaceReplication",
    "ConsistencyProbe",
    "DecisionRecorder",
    "RecordingRetryPolicy",
    "decide",
    "find_missing_nodes",
    "normalize_address",
    "take_snapshot",
    # Protocols
    "DataStoreProtocol",
    "LockProtocol",
    # Exceptions
    "AlreadyRunningError",
    "DataStoreError",
    "LockFileError",
    "NoHostAvailableError",
    # Types
    "FailureKind",
    "HealthReport",
    "HealthStatus",
    "NodeAddress",
    "ProbeOutcome",
    "ProbeQuery",
    "ProbeResult",
    "RetryDecision",
    "SchemaDescriptor",
    "TopologySnapshot",
    "TraceEvent",
]
