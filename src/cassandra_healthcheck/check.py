"""
Health-check orchestration.

One run, one verdict:

1. Acquire the process lock (AlreadyRunningError if held)
2. Connect to the coordinator
3. Take the topology snapshot
4. Reconcile the health-check keyspace to the node count
5. Probe at consistency ALL with tracing
6. On a downgrade, diff the trace against the topology
7. Classify, release the lock

Data-store failures at any step after locking produce an UNREACHABLE
report. Nothing is retried here; the only retry is the single downgrade
made by the probe's retry policy.
"""

import logging
from collections.abc import Callable
from contextlib import AbstractContextManager
from dataclasses import dataclass

from cassandra import ConsistencyLevel

from cassandra_healthcheck.classifier import classify
from cassandra_healthcheck.config import Settings
from cassandra_healthcheck.exceptions import DataStoreError, NoHostAvailableError
from cassandra_healthcheck.probe import ConsistencyProbe
from cassandra_healthcheck.protocols import DataStoreProtocol, LockProtocol
from cassandra_healthcheck.schema import DEFAULT_KEYSPACE, DEFAULT_TABLE, SchemaReconciler
from cassandra_healthcheck.topology import take_snapshot
from cassandra_healthcheck.trace import find_missing_nodes
from cassandra_healthcheck.types import HealthReport, HealthStatus, TopologySnapshot

logger = logging.getLogger(__name__)

StoreFactory = Callable[[Settings], AbstractContextManager[DataStoreProtocol]]


@dataclass
class HealthCheck:
    """
    Runs the health check against a connected data store.

    Attributes:
        store: Session connected to the coordinator.
        keyspace: Health-check keyspace.
        table: Table holding the seed row.
    """

    store: DataStoreProtocol
    keyspace: str = DEFAULT_KEYSPACE
    table: str = DEFAULT_TABLE

    def run(self) -> HealthReport:
        snapshot: TopologySnapshot | None = None
        try:
            snapshot = take_snapshot(self.store)
            SchemaReconciler(self.store, self.keyspace, self.table).reconcile(snapshot)
        except DataStoreError as e:
            return unreachable(e, snapshot)

        outcome = ConsistencyProbe(self.store, self.keyspace, self.table).run()
        status = classify(outcome)

        if status is HealthStatus.UNREACHABLE:
            return unreachable(outcome.failure, snapshot, outcome.latency_ms)

        if status is HealthStatus.HEALTHY:
            logger.info("All %d hosts answered at ALL in %.1fms", snapshot.size, outcome.latency_ms)
            return HealthReport(status=status, snapshot=snapshot, latency_ms=outcome.latency_ms)

        decision = outcome.decision
        logger.warning(
            "Could not query all hosts; consistency downgraded to %s",
            ConsistencyLevel.value_to_name.get(decision.consistency, decision.consistency),
        )
        missing = find_missing_nodes(outcome.result.trace, snapshot)
        if missing is None:
            logger.warning("No query trace available, missing hosts unknown")
        elif missing:
            logger.error("Missing log entries from these hosts: %s", sorted(missing))

        return HealthReport(
            status=status,
            snapshot=snapshot,
            decision=decision,
            missing_nodes=missing,
            latency_ms=outcome.latency_ms,
        )


def unreachable(
    error: Exception,
    snapshot: TopologySnapshot | None = None,
    latency_ms: float = 0.0,
) -> HealthReport:
    """Build an UNREACHABLE report and log the cause."""
    if isinstance(error, NoHostAvailableError):
        logger.error("No hosts available: %s", error)
    else:
        logger.error("Cluster unreachable: %s", error)
    return HealthReport(
        status=HealthStatus.UNREACHABLE,
        snapshot=snapshot,
        error=str(error),
        latency_ms=latency_ms,
    )


def run_health_check(
    settings: Settings,
    lock: LockProtocol,
    store_factory: StoreFactory,
) -> HealthReport:
    """
    Run one complete health check under the process lock.

    Args:
        settings: Connection and schema configuration.
        lock: Host-local single-instance lock.
        store_factory: Creates a context-managed session that connects
            on entry and disconnects on exit.

    Returns:
        HealthReport with the verdict.

    Raises:
        AlreadyRunningError: If another health check holds the lock.
    """
    with lock.acquire():
        try:
            with store_factory(settings) as store:
                return HealthCheck(store, settings.keyspace, settings.table).run()
        except DataStoreError as e:
            return unreachable(e)
