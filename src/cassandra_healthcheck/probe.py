"""
Consistency probe: one traced read of the seed row at consistency ALL.

The probe owns its DecisionRecorder and resets it at the start of every
run, so a downgrade made by the retry policy is attributed to this query
only. Data-store failures are captured in the outcome instead of
propagating; the classifier turns them into an unreachable verdict.
"""

import logging
import time
from dataclasses import dataclass, field

from cassandra import ConsistencyLevel

from cassandra_healthcheck.exceptions import DataStoreError
from cassandra_healthcheck.protocols import DataStoreProtocol
from cassandra_healthcheck.retry import DecisionRecorder
from cassandra_healthcheck.schema import DEFAULT_KEYSPACE, DEFAULT_TABLE, KEY_COLUMN, SEED_KEY
from cassandra_healthcheck.types import ProbeOutcome, ProbeQuery

logger = logging.getLogger(__name__)


@dataclass
class ConsistencyProbe:
    """
    Issues the strict-consistency health read.

    Attributes:
        store: Data-store session connected to the coordinator.
        keyspace: Health-check keyspace holding the seed row.
        table: Table holding the seed row.
        recorder: Downgrade recorder, reset at the start of every run.
    """

    store: DataStoreProtocol
    keyspace: str = DEFAULT_KEYSPACE
    table: str = DEFAULT_TABLE
    recorder: DecisionRecorder = field(default_factory=DecisionRecorder)

    def query(self) -> ProbeQuery:
        return ProbeQuery(
            cql=f"SELECT * FROM {self.keyspace}.{self.table} WHERE {KEY_COLUMN} = %s",
            parameters=(SEED_KEY,),
            consistency=ConsistencyLevel.ALL,
            tracing=True,
        )

    def run(self) -> ProbeOutcome:
        """
        Execute the probe read.

        Returns:
            ProbeOutcome with the result, the recorded downgrade (if any)
            and the failure (if the read could not be served).
        """
        self.recorder.reset()
        started = time.monotonic()

        try:
            result = self.store.read(self.query(), self.recorder)
        except DataStoreError as e:
            latency_ms = (time.monotonic() - started) * 1000
            return ProbeOutcome(
                result=None,
                decision=self.recorder.last_decision(),
                failure=e,
                latency_ms=latency_ms,
            )

        latency_ms = (time.monotonic() - started) * 1000
        logger.debug("Probe read completed in %.1fms", latency_ms)
        if not result.rows:
            logger.warning(
                "Probe read returned no seed row from %s.%s", self.keyspace, self.table
            )

        return ProbeOutcome(
            result=result,
            decision=self.recorder.last_decision(),
            latency_ms=latency_ms,
        )
