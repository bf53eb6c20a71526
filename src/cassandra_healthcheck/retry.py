"""
Retry decisions for the probe read.

The decision itself is a pure function, decide(), mapping a failure to
either one retry at a given consistency level or a rethrow. The outcome
is captured by a DecisionRecorder owned by the probe, so the probe can
tell afterwards whether strict consistency had to be relaxed.

RecordingRetryPolicy adapts both to the cassandra-driver RetryPolicy
interface. It is attached to the probe statement only, never to the
cluster, so schema statements keep the driver defaults.

Downgrade levels follow the driver's downgrading policy: retry at the
strongest level the replicas that did answer can still satisfy.
"""

import logging
from dataclasses import dataclass

from cassandra import ConsistencyLevel
from cassandra.policies import RetryPolicy

from cassandra_healthcheck.types import FailureKind, RetryDecision

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Verdict:
    """
    Outcome of decide().

    Attributes:
        retry: True to retry once, False to surface the failure.
        consistency: Level for the retry; None when not retrying.
    """

    retry: bool
    consistency: int | None = None


RETHROW = Verdict(retry=False)


def downgraded_level(responses: int) -> int | None:
    """Return the strongest level satisfiable by this many replicas."""
    if responses >= 3:
        return ConsistencyLevel.THREE
    if responses == 2:
        return ConsistencyLevel.TWO
    if responses == 1:
        return ConsistencyLevel.ONE
    return None


def decide(
    kind: FailureKind,
    attempt: int,
    consistency: int,
    responses: int,
    required: int,
    data_retrieved: bool = False,
) -> Verdict:
    """
    Decide how to handle a failed attempt of the probe read.

    Args:
        kind: Class of the failure reported by the coordinator.
        attempt: Retries already made for this query (0 on first failure).
        consistency: Level the failed attempt was issued with.
        responses: Replicas that answered (timeouts) or are alive
            (unavailable).
        required: Replicas the level needed.
        data_retrieved: For read timeouts, whether the replica asked for
            the data answered.

    Returns:
        Verdict to retry at a level, or RETHROW.
    """
    if attempt > 0:
        return RETHROW

    if kind not in (FailureKind.READ_TIMEOUT, FailureKind.UNAVAILABLE):
        return RETHROW

    if kind is FailureKind.READ_TIMEOUT and responses >= required:
        if data_retrieved:
            return RETHROW
        # Enough replicas answered but the data read itself timed out
        return Verdict(retry=True, consistency=consistency)

    level = downgraded_level(responses)
    if level is None:
        return RETHROW
    return Verdict(retry=True, consistency=level)


class DecisionRecorder:
    """
    Holds the downgrade decision of one probe query.

    Only the first downgrade is kept; the driver contract allows at most
    one retry per query, so a second one indicates a misbehaving policy.
    """

    def __init__(self) -> None:
        self._decision: RetryDecision | None = None

    def reset(self) -> None:
        self._decision = None

    def record(self, decision: RetryDecision) -> None:
        if self._decision is not None:
            logger.warning(
                "Ignoring additional retry decision %s; already recorded %s",
                decision,
                self._decision,
            )
            return
        self._decision = decision

    def last_decision(self) -> RetryDecision | None:
        return self._decision


class RecordingRetryPolicy(RetryPolicy):
    """
    cassandra-driver retry policy delegating to decide().

    Every decision is logged; downgrades are written to the recorder.
    """

    def __init__(self, recorder: DecisionRecorder) -> None:
        self.recorder = recorder

    def on_read_timeout(
        self,
        query,
        consistency,
        required_responses,
        received_responses,
        data_retrieved,
        retry_num,
    ):
        return self._apply(
            FailureKind.READ_TIMEOUT,
            retry_num,
            consistency,
            received_responses,
            required_responses,
            data_retrieved,
        )

    def on_write_timeout(
        self,
        query,
        consistency,
        write_type,
        required_responses,
        received_responses,
        retry_num,
    ):
        return self._apply(
            FailureKind.WRITE_TIMEOUT,
            retry_num,
            consistency,
            received_responses,
            required_responses,
        )

    def on_unavailable(
        self,
        query,
        consistency,
        required_replicas,
        alive_replicas,
        retry_num,
    ):
        return self._apply(
            FailureKind.UNAVAILABLE,
            retry_num,
            consistency,
            alive_replicas,
            required_replicas,
        )

    def on_request_error(self, query, consistency, error, retry_num):
        return self._apply(FailureKind.REQUEST_ERROR, retry_num, consistency, 0, 0)

    def _apply(
        self,
        kind: FailureKind,
        attempt: int,
        consistency: int,
        responses: int,
        required: int,
        data_retrieved: bool = False,
    ) -> tuple[int, int | None]:
        verdict = decide(kind, attempt, consistency, responses, required, data_retrieved)
        level_name = ConsistencyLevel.value_to_name.get(consistency, consistency)

        if not verdict.retry:
            logger.info(
                "Rethrowing %s at %s (responses=%d, required=%d, attempt=%d)",
                kind.value,
                level_name,
                responses,
                required,
                attempt,
            )
            return self.RETHROW, None

        new_level = ConsistencyLevel.value_to_name.get(verdict.consistency, verdict.consistency)
        logger.info(
            "Retrying on %s at %s instead of %s (responses=%d, required=%d, attempt=%d)",
            kind.value,
            new_level,
            level_name,
            responses,
            required,
            attempt,
        )
        if verdict.consistency != consistency:
            self.recorder.record(
                RetryDecision(
                    kind=kind,
                    requested=consistency,
                    consistency=verdict.consistency,
                    responses=responses,
                    required=required,
                )
            )
        return self.RETRY, verdict.consistency
