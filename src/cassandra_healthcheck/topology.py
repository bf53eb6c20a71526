"""Topology snapshot capture and address normalisation."""

import ipaddress
import logging

from cassandra_healthcheck.protocols import DataStoreProtocol
from cassandra_healthcheck.types import NodeAddress, TopologySnapshot

logger = logging.getLogger(__name__)


def normalize_address(value: object) -> NodeAddress:
    """
    Return a canonical string form of a node address.

    Host metadata and trace events may report the same node as a string,
    an ipaddress object, or an IPv6 address in a different notation.
    Values that are not IP addresses are returned as plain strings.
    """
    text = str(value).strip()
    try:
        return str(ipaddress.ip_address(text))
    except ValueError:
        return text


def take_snapshot(store: DataStoreProtocol) -> TopologySnapshot:
    """Capture the set of nodes the coordinator knows about."""
    nodes = frozenset(normalize_address(host) for host in store.all_hosts())
    snapshot = TopologySnapshot(nodes=nodes)
    logger.debug("Topology snapshot: %d nodes %s", snapshot.size, sorted(snapshot.nodes))
    return snapshot
