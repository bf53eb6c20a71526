"""
cassandra-driver implementation of DataStoreProtocol.

CassandraClient connects to exactly one coordinator. A whitelist
load-balancing policy stops the driver from routing requests through
any other node, since failing over would hide the coordinator's own
view of the cluster.

This is the only module that knows driver exceptions. Transport and
coordinator failures become DataStoreError / NoHostAvailableError.
Validation and authorisation errors are configuration defects and
propagate unchanged.

Example:
    with CassandraClient(Settings(host="10.0.0.1")) as client:
        hosts = client.all_hosts()
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import timedelta
from typing import Any

from cassandra import OperationTimedOut, RequestExecutionException
from cassandra.auth import PlainTextAuthProvider
from cassandra.cluster import EXEC_PROFILE_DEFAULT, Cluster, ExecutionProfile, NoHostAvailable, Session
from cassandra.connection import ConnectionException
from cassandra.policies import WhiteListRoundRobinPolicy
from cassandra.query import SimpleStatement, TraceUnavailable

from cassandra_healthcheck.config import Settings
from cassandra_healthcheck.exceptions import DataStoreError, NoHostAvailableError
from cassandra_healthcheck.retry import DecisionRecorder, RecordingRetryPolicy
from cassandra_healthcheck.topology import normalize_address
from cassandra_healthcheck.types import NodeAddress, ProbeQuery, ProbeResult, TraceEvent

logger = logging.getLogger(__name__)

KEYSPACE_REPLICATION_CQL = (
    "SELECT replication FROM system_schema.keyspaces WHERE keyspace_name = %s"
)


@contextmanager
def translate_errors() -> Iterator[None]:
    """Re-raise driver transport failures as DataStoreError."""
    try:
        yield
    except NoHostAvailable as e:
        errors = {str(host): str(err) for host, err in (e.errors or {}).items()}
        raise NoHostAvailableError("No hosts available", errors) from e
    except (OperationTimedOut, RequestExecutionException, ConnectionException) as e:
        raise DataStoreError(f"{type(e).__name__}: {e}") from e


def micros(elapsed: timedelta | None) -> int | None:
    if elapsed is None:
        return None
    return int(elapsed.total_seconds() * 1_000_000)


class CassandraClient:
    """
    Session to a single Cassandra coordinator.

    Attributes:
        settings: Connection and timeout configuration.
        cluster: Driver cluster object, set by connect().
        session: Driver session, set by connect().
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.cluster: Cluster | None = None
        self.session: Session | None = None

    def build_cluster(self) -> Cluster:
        """Create the driver cluster restricted to the coordinator."""
        settings = self.settings
        profile = ExecutionProfile(
            load_balancing_policy=WhiteListRoundRobinPolicy([settings.host]),
            request_timeout=settings.request_timeout,
        )
        auth_provider = None
        if settings.username:
            auth_provider = PlainTextAuthProvider(
                username=settings.username,
                password=settings.password.get_secret_value() if settings.password else "",
            )
        return Cluster(
            contact_points=[settings.host],
            port=settings.port,
            auth_provider=auth_provider,
            execution_profiles={EXEC_PROFILE_DEFAULT: profile},
            connect_timeout=settings.connect_timeout,
        )

    def connect(self) -> None:
        """
        Connect to the coordinator.

        Raises:
            NoHostAvailableError: If the coordinator cannot be reached.
        """
        self.cluster = self.build_cluster()
        logger.debug("Connecting to %s:%d", self.settings.host, self.settings.port)
        with translate_errors():
            self.session = self.cluster.connect()

    def close(self) -> None:
        if self.session is not None:
            self.session.shutdown()
            self.session = None
        if self.cluster is not None:
            self.cluster.shutdown()
            self.cluster = None

    def __enter__(self) -> "CassandraClient":
        try:
            self.connect()
        except BaseException:
            self.close()
            raise
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _require_session(self) -> Session:
        if self.session is None:
            raise RuntimeError("CassandraClient is not connected")
        return self.session

    # -------------------------------------------------------------------------
    # DataStoreProtocol
    # -------------------------------------------------------------------------

    def all_hosts(self) -> frozenset[NodeAddress]:
        self._require_session()
        return frozenset(normalize_address(host.address) for host in self.cluster.metadata.all_hosts())

    def keyspace_replication(self, keyspace: str) -> dict[str, str] | None:
        session = self._require_session()
        with translate_errors():
            row = session.execute(KEYSPACE_REPLICATION_CQL, (keyspace,)).one()
        if row is None:
            return None
        return dict(row.replication)

    def execute(self, cql: str, parameters: tuple[Any, ...] | None = None) -> None:
        session = self._require_session()
        logger.debug("Executing %s", cql)
        with translate_errors():
            session.execute(cql, parameters)

    def read(self, query: ProbeQuery, recorder: DecisionRecorder) -> ProbeResult:
        session = self._require_session()
        statement = SimpleStatement(
            query.cql,
            consistency_level=query.consistency,
            retry_policy=RecordingRetryPolicy(recorder),
        )
        with translate_errors():
            result = session.execute(statement, query.parameters, trace=query.tracing)
            rows = list(result)

        trace = self._trace_events(result) if query.tracing else None
        return ProbeResult(rows=rows, trace=trace)

    def _trace_events(self, result) -> list[TraceEvent] | None:
        """Fetch the server-side trace; None if it cannot be read in time."""
        try:
            trace = result.get_query_trace(max_wait_sec=self.settings.trace_wait)
        except TraceUnavailable as e:
            logger.debug("Query trace unavailable: %s", e)
            return None
        except (OperationTimedOut, RequestExecutionException, NoHostAvailable) as e:
            logger.debug("Could not fetch query trace: %s", e)
            return None
        if trace is None:
            return None

        return [
            TraceEvent(
                source=normalize_address(event.source),
                timestamp=event.datetime,
                elapsed_micros=micros(event.source_elapsed),
                description=event.description or "",
            )
            for event in trace.events
        ]
