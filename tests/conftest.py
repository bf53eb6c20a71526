"""Shared fakes and fixtures for health check tests."""

import logging
import re
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any

import pytest
from cassandra.policies import RetryPolicy

from cassandra_healthcheck.exceptions import AlreadyRunningError, DataStoreError
from cassandra_healthcheck.retry import DecisionRecorder, RecordingRetryPolicy
from cassandra_healthcheck.types import ProbeQuery, ProbeResult, TraceEvent

CREATE_KEYSPACE = re.compile(r"CREATE KEYSPACE (\w+) .*'replication_factor': (\d+)")
DROP_KEYSPACE = re.compile(r"DROP KEYSPACE (\w+)")
INSERT_SEED = re.compile(r"INSERT INTO (\w+)\.\w+")


class FakeDataStore:
    """
    In-memory data store implementing DataStoreProtocol.

    Schema statements update a keyspace map the way Cassandra would.
    The probe read goes through the real RecordingRetryPolicy when
    timeout_responses is set, simulating a consistency ALL read that
    timed out with that many replica responses.
    """

    def __init__(
        self,
        hosts: list[str],
        replication_factor: int | None = None,
        keyspace: str = "healthcheck",
        trace_sources: list[str] | None = None,
        timeout_responses: int | None = None,
        read_error: Exception | None = None,
        trace_available: bool = True,
    ):
        self.hosts = list(hosts)
        self.keyspaces: dict[str, dict[str, str]] = {}
        self.rows: dict[str, list[dict[str, str]]] = {}
        if replication_factor is not None:
            self.keyspaces[keyspace] = {
                "class": "org.apache.cassandra.locator.SimpleStrategy",
                "replication_factor": str(replication_factor),
            }
            self.rows[keyspace] = [{"healthkey": "healthy"}]
        self.trace_sources = self.hosts if trace_sources is None else trace_sources
        self.timeout_responses = timeout_responses
        self.read_error = read_error
        self.trace_available = trace_available
        self.statements: list[str] = []
        self.reads: list[ProbeQuery] = []

    def all_hosts(self) -> frozenset[str]:
        return frozenset(self.hosts)

    def keyspace_replication(self, keyspace: str) -> dict[str, str] | None:
        return self.keyspaces.get(keyspace)

    def execute(self, cql: str, parameters: tuple[Any, ...] | None = None) -> None:
        self.statements.append(cql)
        if match := CREATE_KEYSPACE.search(cql):
            self.keyspaces[match.group(1)] = {
                "class": "SimpleStrategy",
                "replication_factor": match.group(2),
            }
            self.rows[match.group(1)] = []
        elif match := DROP_KEYSPACE.search(cql):
            self.keyspaces.pop(match.group(1))
            self.rows.pop(match.group(1), None)
        elif match := INSERT_SEED.search(cql):
            self.rows[match.group(1)].append({"healthkey": parameters[0]})

    def read(self, query: ProbeQuery, recorder: DecisionRecorder) -> ProbeResult:
        self.reads.append(query)
        if self.read_error is not None:
            raise self.read_error

        if self.timeout_responses is not None:
            policy = RecordingRetryPolicy(recorder)
            decision, _ = policy.on_read_timeout(
                None,
                query.consistency,
                required_responses=len(self.hosts),
                received_responses=self.timeout_responses,
                data_retrieved=False,
                retry_num=0,
            )
            if decision == RetryPolicy.RETHROW:
                raise DataStoreError("ReadTimeout: coordinator timed out")

        keyspace = query.cql.split("FROM ")[1].split(".")[0]
        trace = None
        if self.trace_available:
            start = datetime(2024, 1, 1, 12, 0, 0)
            trace = [
                TraceEvent(
                    source=source,
                    timestamp=start + timedelta(milliseconds=i),
                    elapsed_micros=100 * (i + 1),
                    description="Read 1 live rows",
                )
                for i, source in enumerate(self.trace_sources)
            ]
        return ProbeResult(rows=list(self.rows.get(keyspace, [])), trace=trace)

    @contextmanager
    def session(self, settings):
        yield self


class FakeLock:
    """Lock double implementing LockProtocol."""

    def __init__(self, held: bool = False):
        self.held = held
        self.acquired = 0
        self.released = 0

    @contextmanager
    def acquire(self):
        if self.held:
            raise AlreadyRunningError("/tmp/fake.lock", holder_pid=4242)
        self.acquired += 1
        self.held = True
        try:
            yield self
        finally:
            self.held = False
            self.released += 1


@pytest.fixture
def three_hosts():
    return ["10.0.0.1", "10.0.0.2", "10.0.0.3"]


@pytest.fixture(autouse=True)
def reset_package_loggers():
    """Undo configure_logging() so caplog sees package records in every test."""
    yield
    for name in ("cassandra_healthcheck", "cassandra"):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)
        logger.propagate = True
