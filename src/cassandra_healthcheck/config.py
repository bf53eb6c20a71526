"""Environment-based configuration for the health check."""

import os
import tempfile
from pathlib import Path

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Plain unquoted CQL identifier; keyspace and table names are interpolated
# into schema statements. Cassandra folds unquoted names to lower case, and
# system_schema lookups must use the folded name.
CQL_IDENTIFIER = r"^[a-z][a-z0-9_]{0,47}$"

DEFAULT_LOCK_FILE = Path(tempfile.gettempdir()) / f"cassandra-healthcheck-{os.getuid()}.lock"


class Settings(BaseSettings):
    """Health check configuration.

    All settings can be overridden via environment variables with
    CASSANDRA_HEALTHCHECK_ prefix. For example:
        CASSANDRA_HEALTHCHECK_HOST=cassandra-1
        CASSANDRA_HEALTHCHECK_PASSWORD=secret
    Command-line flags take precedence over the environment.
    """

    # Coordinator connection
    host: str = "localhost"
    port: int = Field(default=9042, ge=1, le=65535)
    username: str | None = None
    password: SecretStr | None = None

    # Timeouts (seconds): short connect, long read to wait for every replica
    connect_timeout: float = Field(default=2.0, gt=0)
    request_timeout: float = Field(default=12.0, gt=0)
    trace_wait: float = Field(default=2.0, ge=0)

    # Health-check schema
    keyspace: str = Field(default="healthcheck", pattern=CQL_IDENTIFIER)
    table: str = Field(default="healthcheck", pattern=CQL_IDENTIFIER)

    lock_file: Path = DEFAULT_LOCK_FILE
    debug: bool = False

    model_config = SettingsConfigDict(env_prefix="CASSANDRA_HEALTHCHECK_")

    @field_validator("keyspace", "table", mode="before")
    @classmethod
    def _fold_identifier(cls, value: object) -> object:
        if isinstance(value, str):
            return value.lower()
        return value

    @model_validator(mode="after")
    def _credentials_complete(self) -> "Settings":
        if self.username and self.password is None:
            raise ValueError("password is required when username is set")
        return self
