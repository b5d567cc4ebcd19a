"""Graph storage backend configuration models."""

from pydantic import BaseModel, Field, SecretStr


class GraphStoreConfig(BaseModel):
    """Connection settings for the Neo4j graph store.

    Note: the password should come from CHRONICLE_STORAGE__GRAPH__PASSWORD,
    NOT from config files.
    """

    uri: str = Field(
        default="bolt://localhost:7687",
        description="Bolt/neo4j URI of the graph store",
    )
    user: str = Field(default="neo4j", description="Database user")
    password: SecretStr | None = Field(
        default=None,
        description="Database password (from env var)",
    )
    database: str | None = Field(
        default=None,
        description="Database name (None = server default)",
    )
    max_connection_pool_size: int = Field(
        default=50,
        gt=0,
        description="Maximum connections kept by the driver",
    )
    connection_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Connection acquisition timeout in seconds",
    )
    bootstrap_schema: bool = Field(
        default=True,
        description="Create constraints and indexes on connect",
    )


class StorageConfig(BaseModel):
    """Configuration for storage backends."""

    backend: str = Field(
        default="neo4j",
        pattern="^(neo4j|inmemory)$",
        description="Episode store backend: neo4j or inmemory",
    )
    graph: GraphStoreConfig = Field(
        default_factory=GraphStoreConfig,
        description="Neo4j connection settings",
    )
