"""
Reconciliation of the health-check keyspace.

The probe reads at consistency ALL, which only proves that every node
answered if every node holds a replica. SchemaReconciler therefore keeps
the health-check keyspace's replication factor equal to the current
node count:

- Missing keyspace: create it, its table and the seed row
- Replication factor differs from the node count: drop and recreate
- Otherwise: nothing to do

Dropping the keyspace is destructive but safe: the table holds only the
seed row, which is recreated.

Replication options are validated with pydantic. Malformed metadata
(e.g. a NetworkTopologyStrategy keyspace with no replication_factor)
raises ValidationError, since it points to a broken environment
rather than an unhealthy cluster.
"""

import logging
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field

from cassandra_healthcheck.protocols import DataStoreProtocol
from cassandra_healthcheck.types import SchemaDescriptor, TopologySnapshot

logger = logging.getLogger(__name__)

DEFAULT_KEYSPACE = "healthcheck"
DEFAULT_TABLE = "healthcheck"
KEY_COLUMN = "healthkey"
SEED_KEY = "healthy"


class KeyspaceReplication(BaseModel):
    """
    Replication options of a keyspace as stored in system_schema.

    Example:
        {"class": "org.apache.cassandra.locator.SimpleStrategy",
         "replication_factor": "3"}

    Note: values arrive as strings; pydantic converts replication_factor.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    strategy: str = Field(alias="class")
    replication_factor: int = Field(ge=1)


@dataclass
class SchemaReconciler:
    """
    Keeps the health-check keyspace replicated to every node.

    Attributes:
        store: Data-store session used for introspection and DDL.
        keyspace: Name of the health-check keyspace.
        table: Name of the table holding the seed row.
    """

    store: DataStoreProtocol
    keyspace: str = DEFAULT_KEYSPACE
    table: str = DEFAULT_TABLE

    def __post_init__(self) -> None:
        # Unquoted identifiers are stored lower-cased in system_schema
        self.keyspace = self.keyspace.lower()
        self.table = self.table.lower()

    def describe(self) -> SchemaDescriptor:
        """Read the keyspace's current state from cluster metadata."""
        raw = self.store.keyspace_replication(self.keyspace)
        if raw is None:
            return SchemaDescriptor(exists=False)
        replication = KeyspaceReplication.model_validate(raw)
        return SchemaDescriptor(
            exists=True,
            replication_factor=replication.replication_factor,
        )

    def reconcile(self, snapshot: TopologySnapshot) -> SchemaDescriptor:
        """
        Make the keyspace's replication factor equal the node count.

        Args:
            snapshot: Topology captured at the start of the run.

        Returns:
            SchemaDescriptor after reconciliation.
        """
        target = snapshot.size
        current = self.describe()

        if not current.exists:
            logger.info("Creating keyspace %s with replication factor %d", self.keyspace, target)
            self.create(target)
        elif current.replication_factor != target:
            logger.warning(
                "Keyspace %s has replication factor %d but cluster has %d nodes, recreating",
                self.keyspace,
                current.replication_factor,
                target,
            )
            self.drop()
            self.create(target)
        else:
            logger.debug("Keyspace %s already has replication factor %d", self.keyspace, target)
            return current

        return SchemaDescriptor(exists=True, replication_factor=target)

    def create(self, replication_factor: int) -> None:
        """
        Create the keyspace, its table and the seed row.

        Args:
            replication_factor: Copies of each row, one per node.
        """
        self.store.execute(
            f"CREATE KEYSPACE {self.keyspace} WITH REPLICATION = "
            f"{{ 'class': 'SimpleStrategy', 'replication_factor': {int(replication_factor)} }}"
        )
        self.store.execute(
            f"CREATE TABLE {self.keyspace}.{self.table} ( {KEY_COLUMN} varchar PRIMARY KEY )"
        )
        self.store.execute(
            f"INSERT INTO {self.keyspace}.{self.table} ({KEY_COLUMN}) VALUES (%s)",
            (SEED_KEY,),
        )

    def drop(self) -> None:
        """Drop the keyspace together with its table."""
        self.store.execute(f"DROP KEYSPACE {self.keyspace}")
