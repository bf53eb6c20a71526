"""
Core data types for the Cassandra health check.

These types describe one health-check run: the cluster topology observed at
the start, the schema state of the health-check keyspace, the single probe
read and its server-side trace, and the final verdict.

All run-scoped types are frozen dataclasses. They are created once and
never mutated afterwards, which keeps the topology a stable denominator
for both the replication factor and the trace completeness check.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any


NodeAddress = str
"""Network address (IP) of one cluster member, in normalised string form."""


class HealthStatus(IntEnum):
    """
    Final verdict of a health-check run.

    The integer value is the process exit code.
    """

    HEALTHY = 0
    DEGRADED = 1
    UNREACHABLE = 2


class FailureKind(Enum):
    """Class of server-reported failure handed to the retry decision."""

    READ_TIMEOUT = "read_timeout"
    WRITE_TIMEOUT = "write_timeout"
    UNAVAILABLE = "unavailable"
    REQUEST_ERROR = "request_error"


@dataclass(frozen=True)
class TopologySnapshot:
    """
    Set of nodes the coordinator knows about, captured once per run.

    Attributes:
        nodes: Addresses of every known node.
    """

    nodes: frozenset[NodeAddress]

    def __post_init__(self) -> None:
        if not self.nodes:
            raise ValueError("Topology snapshot must contain at least one node")

    @property
    def size(self) -> int:
        return len(self.nodes)

    def __contains__(self, address: object) -> bool:
        return address in self.nodes


@dataclass(frozen=True)
class SchemaDescriptor:
    """
    Observed state of the health-check keyspace.

    Attributes:
        exists: Whether the keyspace is present in cluster metadata.
        replication_factor: The keyspace's replication factor, or None
            when the keyspace does not exist.
    """

    exists: bool
    replication_factor: int | None = None


@dataclass(frozen=True)
class RetryDecision:
    """
    Record of a consistency downgrade made while executing the probe.

    Attributes:
        kind: The failure that triggered the downgrade.
        requested: Consistency level the query was issued with.
        consistency: Weaker level the retry was issued with.
        responses: Replicas that answered (or were alive) when it failed.
        required: Replicas the requested level needed.
    """

    kind: FailureKind
    requested: int
    consistency: int
    responses: int
    required: int


@dataclass(frozen=True)
class TraceEvent:
    """
    One server-side trace event of the probe query.

    Attributes:
        source: Address of the node that emitted the event.
        timestamp: Wall-clock time of the event.
        elapsed_micros: Microseconds since the node started working on the
            request, if the server reported it.
        description: Server-provided activity text.
    """

    source: NodeAddress
    timestamp: datetime | None = None
    elapsed_micros: int | None = None
    description: str = ""


@dataclass(frozen=True)
class ProbeQuery:
    """
    The single read a probe issues.

    Attributes:
        cql: Parameterised select statement.
        parameters: Bound values for the statement.
        consistency: Consistency level the read is issued with.
        tracing: Whether server-side tracing is requested.
    """

    cql: str
    parameters: tuple[Any, ...]
    consistency: int
    tracing: bool = True


@dataclass(frozen=True)
class ProbeResult:
    """
    Data returned by the data store for a probe read.

    Attributes:
        rows: Rows returned by the read.
        trace: Trace events, or None when the trace could not be read.
    """

    rows: list[Any]
    trace: list[TraceEvent] | None = None


@dataclass(frozen=True)
class ProbeOutcome:
    """
    Everything the classifier needs to know about one probe.

    Attributes:
        result: The read result, or None when the read failed.
        decision: The recorded downgrade, or None if none occurred.
        failure: The data-store error that ended the probe, if any.
        latency_ms: Wall time spent in the read.
    """

    result: ProbeResult | None
    decision: RetryDecision | None = None
    failure: Exception | None = None
    latency_ms: float = 0.0


@dataclass(frozen=True)
class HealthReport:
    """
    Result of one health-check run.

    Attributes:
        status: Final verdict; its value is the exit code.
        snapshot: Topology observed at the start, if it could be taken.
        decision: Downgrade recorded during the probe, if any.
        missing_nodes: Nodes without trace events. None means no
            diagnostic detail was available, not that nothing is missing.
        error: Description of the failure for unreachable runs.
        latency_ms: Probe latency.
        checked_at: When the run finished.
    """

    status: HealthStatus
    snapshot: TopologySnapshot | None = None
    decision: RetryDecision | None = None
    missing_nodes: frozenset[NodeAddress] | None = None
    error: str | None = None
    latency_ms: float = 0.0
    checked_at: datetime = field(default_factory=datetime.now)

    @property
    def exit_code(self) -> int:
        return int(self.status)
