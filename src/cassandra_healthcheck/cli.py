"""
Command-line entry point.

Exit codes follow the usual monitoring-plugin convention:
    0  healthy
    1  degraded: reachable only under relaxed consistency
    2  unreachable, or a usage error
    3  another health check is already running, or the lock file is unusable
"""

import logging
import signal
from pathlib import Path

import typer
from cassandra import ConsistencyLevel
from pydantic import ValidationError

from cassandra_healthcheck.cassandra_client import CassandraClient
from cassandra_healthcheck.check import run_health_check
from cassandra_healthcheck.config import Settings
from cassandra_healthcheck.exceptions import AlreadyRunningError, LockFileError
from cassandra_healthcheck.lock import ProcessLock
from cassandra_healthcheck.logging_config import configure_logging
from cassandra_healthcheck.types import HealthReport, HealthStatus

logger = logging.getLogger(__name__)

ALREADY_RUNNING_EXIT_CODE = 3

app = typer.Typer(
    name="cassandra-healthcheck",
    help="Verify every Cassandra node answers a consistency ALL read through one coordinator",
    add_completion=False,
)


def summarize(report: HealthReport) -> str:
    """One-line status for monitoring output."""
    if report.status is HealthStatus.HEALTHY:
        nodes = report.snapshot.size if report.snapshot else 0
        return f"HEALTHY ({nodes} nodes answered at ALL in {report.latency_ms:.0f}ms)"

    if report.status is HealthStatus.DEGRADED:
        level = ConsistencyLevel.value_to_name.get(
            report.decision.consistency, report.decision.consistency
        )
        if report.missing_nodes is None:
            missing = "unknown"
        else:
            missing = ", ".join(sorted(report.missing_nodes)) or "none"
        return f"DEGRADED (consistency downgraded to {level}; missing: {missing})"

    return f"UNREACHABLE ({report.error})"


def _terminate(signum, frame) -> None:
    raise SystemExit(128 + signum)


@app.command()
def check(
    host: str = typer.Option(None, "--host", help="Cassandra host name of the coordinator"),
    port: int = typer.Option(None, "--port", "-p", help="Native protocol port"),
    username: str = typer.Option(None, "--username", "-u", help="Username"),
    password: str = typer.Option(None, "--password", help="Password"),
    keyspace: str = typer.Option(
        None, "--keyspace", help="Health-check keyspace (dropped and recreated when its replication factor drifts)"
    ),
    lock_file: Path = typer.Option(None, "--lock-file", help="Path of the single-instance lock file"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
) -> None:
    """
    Run one health check and exit with its verdict.

    Connects only to HOST, reconciles the health-check keyspace so its
    replication factor equals the node count, then reads the seed row
    at consistency ALL with tracing. A read that only succeeds after a
    consistency downgrade is reported as degraded, with the hosts that
    left no trace events.

    Environment variables (CASSANDRA_HEALTHCHECK_ prefix):
        HOST, PORT, USERNAME, PASSWORD, KEYSPACE, LOCK_FILE, DEBUG,
        CONNECT_TIMEOUT, REQUEST_TIMEOUT, TRACE_WAIT
    """
    overrides = {
        "host": host,
        "port": port,
        "username": username,
        "password": password,
        "keyspace": keyspace,
        "lock_file": lock_file,
        "debug": debug or None,
    }
    try:
        settings = Settings(**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as e:
        raise typer.BadParameter(str(e)) from e

    configure_logging(settings.debug)
    previous = signal.signal(signal.SIGTERM, _terminate)

    try:
        report = run_health_check(settings, ProcessLock(settings.lock_file), CassandraClient)
    except (AlreadyRunningError, LockFileError) as e:
        logger.error("%s", e)
        raise typer.Exit(ALREADY_RUNNING_EXIT_CODE)
    finally:
        signal.signal(signal.SIGTERM, previous)

    typer.echo(summarize(report))
    raise typer.Exit(report.exit_code)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
