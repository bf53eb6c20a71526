"""
Tests for the cassandra-driver integration.

No cluster is needed: the driver Cluster and Session are replaced with
MagicMock objects, and driver exceptions are raised directly.
"""

from datetime import datetime, timedelta
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from cassandra import ConsistencyLevel, OperationTimedOut, ReadTimeout
from cassandra.auth import PlainTextAuthProvider
from cassandra.cluster import NoHostAvailable
from cassandra.policies import WhiteListRoundRobinPolicy
from cassandra.query import SimpleStatement, TraceUnavailable

from cassandra_healthcheck.cassandra_client import (
    CassandraClient,
    micros,
    translate_errors,
)
from cassandra_healthcheck.config import Settings
from cassandra_healthcheck.exceptions import DataStoreError, NoHostAvailableError
from cassandra_healthcheck.protocols import DataStoreProtocol
from cassandra_healthcheck.retry import DecisionRecorder, RecordingRetryPolicy
from cassandra_healthcheck.types import ProbeQuery, TraceEvent


@pytest.fixture
def settings(tmp_path):
    return Settings(host="10.0.0.1", port=9142, lock_file=tmp_path / "hc.lock")


@pytest.fixture
def client(settings):
    """Client with a mocked, already-connected session."""
    client = CassandraClient(settings)
    client.cluster = MagicMock()
    client.session = MagicMock()
    return client


def probe_query():
    return ProbeQuery(
        cql="SELECT * FROM healthcheck.healthcheck WHERE healthkey = %s",
        parameters=("healthy",),
        consistency=ConsistencyLevel.ALL,
    )


class TestTranslateErrors:
    """Tests for driver exception mapping."""

    def test_no_host_available(self):
        with pytest.raises(NoHostAvailableError) as exc_info:
            with translate_errors():
                raise NoHostAvailable(
                    "Unable to connect", {"10.0.0.1:9042": ConnectionRefusedError("refused")}
                )
        assert exc_info.value.errors == {"10.0.0.1:9042": "refused"}
        assert "10.0.0.1:9042: refused" in str(exc_info.value)

    def test_operation_timed_out(self):
        with pytest.raises(DataStoreError, match="OperationTimedOut"):
            with translate_errors():
                raise OperationTimedOut("timed out")

    def test_read_timeout(self):
        with pytest.raises(DataStoreError, match="ReadTimeout"):
            with translate_errors():
                raise ReadTimeout("Operation timed out", consistency=ConsistencyLevel.TWO,
                                  required_responses=2, received_responses=1, data_retrieved=False)

    def test_other_errors_propagate(self):
        with pytest.raises(ValueError):
            with translate_errors():
                raise ValueError("bad statement")


class TestBuildCluster:
    """Tests for CassandraClient.build_cluster()."""

    def test_whitelists_coordinator(self, settings):
        with patch("cassandra_healthcheck.cassandra_client.Cluster") as cluster_cls:
            CassandraClient(settings).build_cluster()

        kwargs = cluster_cls.call_args.kwargs
        assert kwargs["contact_points"] == ["10.0.0.1"]
        assert kwargs["port"] == 9142
        assert kwargs["connect_timeout"] == 2.0
        assert kwargs["auth_provider"] is None
        profile = next(iter(kwargs["execution_profiles"].values()))
        assert isinstance(profile.load_balancing_policy, WhiteListRoundRobinPolicy)
        assert profile.request_timeout == 12.0

    def test_credentials(self, tmp_path):
        settings = Settings(username="monitor", password="s3cret", lock_file=tmp_path / "l")
        with patch("cassandra_healthcheck.cassandra_client.Cluster") as cluster_cls:
            CassandraClient(settings).build_cluster()

        auth = cluster_cls.call_args.kwargs["auth_provider"]
        assert isinstance(auth, PlainTextAuthProvider)
        assert auth.username == "monitor"
        assert auth.password == "s3cret"


class TestConnect:
    """Tests for connecting and closing."""

    def test_context_manager_connects_and_closes(self, settings):
        with patch("cassandra_healthcheck.cassandra_client.Cluster") as cluster_cls:
            cluster = cluster_cls.return_value
            session = cluster.connect.return_value
            with CassandraClient(settings) as client:
                assert client.session is session

        session.shutdown.assert_called_once()
        cluster.shutdown.assert_called_once()

    def test_connect_failure_is_translated_and_cleaned_up(self, settings):
        with patch("cassandra_healthcheck.cassandra_client.Cluster") as cluster_cls:
            cluster = cluster_cls.return_value
            cluster.connect.side_effect = NoHostAvailable("Unable to connect", {})
            with pytest.raises(NoHostAvailableError):
                with CassandraClient(settings):
                    pass

        cluster.shutdown.assert_called_once()

    def test_requires_connection(self, settings):
        with pytest.raises(RuntimeError):
            CassandraClient(settings).execute("DROP KEYSPACE healthcheck")


class TestDataStoreMethods:
    """Tests for the DataStoreProtocol methods."""

    def test_satisfies_protocol(self, client):
        assert isinstance(client, DataStoreProtocol)

    def test_all_hosts(self, client):
        client.cluster.metadata.all_hosts.return_value = [
            SimpleNamespace(address="10.0.0.1"),
            SimpleNamespace(address="10.0.0.2"),
        ]
        assert client.all_hosts() == {"10.0.0.1", "10.0.0.2"}

    def test_keyspace_replication(self, client):
        row = SimpleNamespace(replication={"class": "SimpleStrategy", "replication_factor": "3"})
        client.session.execute.return_value.one.return_value = row

        assert client.keyspace_replication("healthcheck") == {
            "class": "SimpleStrategy",
            "replication_factor": "3",
        }
        assert client.session.execute.call_args.args[1] == ("healthcheck",)

    def test_keyspace_replication_missing(self, client):
        client.session.execute.return_value.one.return_value = None
        assert client.keyspace_replication("healthcheck") is None

    def test_execute_translates_errors(self, client):
        client.session.execute.side_effect = OperationTimedOut("timed out")
        with pytest.raises(DataStoreError):
            client.execute("DROP KEYSPACE healthcheck")


class TestRead:
    """Tests for CassandraClient.read()."""

    def test_statement_carries_consistency_and_policy(self, client):
        result = MagicMock()
        result.__iter__.return_value = iter([{"healthkey": "healthy"}])
        result.get_query_trace.return_value = SimpleNamespace(events=[])
        client.session.execute.return_value = result
        recorder = DecisionRecorder()

        probe = client.read(probe_query(), recorder)

        statement, parameters = client.session.execute.call_args.args
        assert isinstance(statement, SimpleStatement)
        assert statement.consistency_level == ConsistencyLevel.ALL
        assert isinstance(statement.retry_policy, RecordingRetryPolicy)
        assert statement.retry_policy.recorder is recorder
        assert parameters == ("healthy",)
        assert client.session.execute.call_args.kwargs == {"trace": True}
        assert probe.rows == [{"healthkey": "healthy"}]
        assert probe.trace == []

    def test_trace_events_are_mapped(self, client):
        event = SimpleNamespace(
            source="10.0.0.2",
            datetime=datetime(2024, 1, 1, 12, 0, 0),
            source_elapsed=timedelta(microseconds=1500),
            description="Read 1 live rows",
        )
        result = MagicMock()
        result.__iter__.return_value = iter([])
        result.get_query_trace.return_value = SimpleNamespace(events=[event])
        client.session.execute.return_value = result

        probe = client.read(probe_query(), DecisionRecorder())

        assert probe.trace == [
            TraceEvent(
                source="10.0.0.2",
                timestamp=datetime(2024, 1, 1, 12, 0, 0),
                elapsed_micros=1500,
                description="Read 1 live rows",
            )
        ]
        result.get_query_trace.assert_called_once_with(max_wait_sec=2.0)

    def test_unavailable_trace_is_none(self, client):
        result = MagicMock()
        result.__iter__.return_value = iter([])
        result.get_query_trace.side_effect = TraceUnavailable("not yet")
        client.session.execute.return_value = result

        assert client.read(probe_query(), DecisionRecorder()).trace is None

    def test_no_host_available(self, client):
        client.session.execute.side_effect = NoHostAvailable("Unable to complete", {})
        with pytest.raises(NoHostAvailableError):
            client.read(probe_query(), DecisionRecorder())


def test_micros():
    assert micros(timedelta(milliseconds=2)) == 2000
    assert micros(None) is None
