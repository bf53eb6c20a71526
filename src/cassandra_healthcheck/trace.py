"""
Trace diff analysis: which nodes left no trace event for the probe.

Every replica that works on a traced read writes at least one event.
Nodes in the topology with no event did not take part. The result is
diagnostic only; it never changes the verdict.

A missing trace (not yet flushed, or tracing disabled) yields None,
meaning "no detail available". It is never reported as every node
missing.
"""

import logging
from collections.abc import Sequence
from datetime import datetime

from cassandra_healthcheck.topology import normalize_address
from cassandra_healthcheck.types import NodeAddress, TopologySnapshot, TraceEvent

logger = logging.getLogger(__name__)


def format_timestamp(timestamp: datetime | None) -> str:
    """Format an event time as HH:MM:SS.ffff."""
    if timestamp is None:
        return "-"
    return timestamp.strftime("%H:%M:%S.%f")[:-2]


def find_missing_nodes(
    trace: Sequence[TraceEvent] | None,
    snapshot: TopologySnapshot,
) -> frozenset[NodeAddress] | None:
    """
    Compute the nodes of snapshot that emitted no trace event.

    Args:
        trace: Trace events of the probe, or None if unavailable.
        snapshot: Topology captured at the start of the run.

    Returns:
        Addresses without events, or None when there is no trace to
        compare against.
    """
    if trace is None:
        return None

    sources: set[NodeAddress] = set()
    for event in trace:
        source = normalize_address(event.source)
        sources.add(source)
        logger.debug(
            "description=%s elapsed=%s source=%s micros=%s",
            event.description,
            format_timestamp(event.timestamp),
            source,
            event.elapsed_micros,
        )

    return snapshot.nodes - sources
