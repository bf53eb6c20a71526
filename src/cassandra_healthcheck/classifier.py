"""Result classification for a completed probe."""

from cassandra_healthcheck.types import HealthStatus, ProbeOutcome


def classify(outcome: ProbeOutcome) -> HealthStatus:
    """
    Map a probe outcome to the final verdict.

    Evaluated in order:
    1. The read failed: UNREACHABLE
    2. A consistency downgrade was recorded: DEGRADED
    3. Otherwise: HEALTHY
    """
    if outcome.failure is not None:
        return HealthStatus.UNREACHABLE
    if outcome.decision is not None:
        return HealthStatus.DEGRADED
    return HealthStatus.HEALTHY
