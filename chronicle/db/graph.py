"""Neo4j driver lifecycle and statement execution.

Provides the single connection point for all graph-backed stores. A failed
connect leaves the store disabled rather than raising, so the host process
keeps serving requests and memory features degrade.
"""

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from neo4j import AsyncDriver, AsyncGraphDatabase, AsyncTransaction
from neo4j.exceptions import DriverError, Neo4jError, ServiceUnavailable, SessionExpired

from chronicle.config.models.storage import GraphStoreConfig
from chronicle.db.errors import GraphUnavailableError, QueryError
from chronicle.db.schema import CONSTRAINTS, INDEXES
from chronicle.observability.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class GraphStore:
    """Manages the async Neo4j driver.

    Usage:
        graph = GraphStore(config)
        await graph.connect()
        if graph.is_connected():
            rows = await graph.run_query("MATCH (e:Episode) RETURN count(e) AS n")
        await graph.close()
    """

    def __init__(self, config: GraphStoreConfig | None = None) -> None:
        self._config = config or GraphStoreConfig()
        self._driver: AsyncDriver | None = None
        self._connected = False

    async def connect(self) -> bool:
        """Create the driver, verify connectivity and bootstrap the schema.

        Returns:
            True when connected. Failures are logged and leave the store
            disabled; they are never raised.
        """
        if self._connected:
            return True

        if self._config.password is None:
            logger.warning(
                "graph_store_disabled",
                reason="no password configured",
                uri=self._config.uri,
            )
            return False

        try:
            self._driver = AsyncGraphDatabase.driver(
                self._config.uri,
                auth=(self._config.user, self._config.password.get_secret_value()),
                max_connection_pool_size=self._config.max_connection_pool_size,
                connection_acquisition_timeout=self._config.connection_timeout,
            )
            await self._driver.verify_connectivity()
            self._connected = True
            logger.info("graph_store_connected", uri=self._config.uri)
        except Exception as e:
            logger.warning("graph_store_connection_failed", uri=self._config.uri, error=str(e))
            await self._discard_driver()
            return False

        if self._config.bootstrap_schema:
            await self.bootstrap_schema()
        return True

    async def close(self) -> None:
        """Close the driver gracefully."""
        if self._driver is not None:
            await self._driver.close()
            logger.info("graph_store_closed")
        self._driver = None
        self._connected = False

    def is_connected(self) -> bool:
        """Check whether the driver is connected and usable."""
        return self._connected and self._driver is not None

    async def bootstrap_schema(self) -> int:
        """Create uniqueness constraints and indexes (idempotent).

        Returns:
            Number of statements that succeeded. Failures are logged only.
        """
        applied = 0
        for statement in (*CONSTRAINTS, *INDEXES):
            try:
                await self.run_query(statement)
                applied += 1
            except Exception as e:
                logger.warning("graph_schema_statement_failed", statement=statement, error=str(e))
        logger.info("graph_schema_bootstrapped", applied=applied, total=len(CONSTRAINTS) + len(INDEXES))
        return applied

    async def run_query(
        self,
        query: str,
        params: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Execute one statement in its own session.

        Returns:
            Records as dictionaries (nodes become property maps)

        Raises:
            GraphUnavailableError: Store unreachable or driver not connected
            QueryError: Statement rejected by the store
        """
        driver = self._require_driver()
        session = driver.session(database=self._config.database)
        try:
            result = await session.run(query, params)
            return await result.data()
        except (ServiceUnavailable, SessionExpired) as e:
            raise GraphUnavailableError(f"Graph store unavailable: {e}", cause=e) from e
        except Neo4jError as e:
            raise QueryError(f"Graph query failed: {e}", cause=e) from e
        except DriverError as e:
            raise GraphUnavailableError(f"Graph driver error: {e}", cause=e) from e
        finally:
            await session.close()

    async def run_in_transaction(
        self,
        work: Callable[[AsyncTransaction], Awaitable[T]],
    ) -> T:
        """Run `work` in an explicit transaction.

        Commits on success, rolls back on any exception, always closes the
        session.
        """
        driver = self._require_driver()
        session = driver.session(database=self._config.database)
        try:
            tx = await session.begin_transaction()
            try:
                result = await work(tx)
                await tx.commit()
                return result
            except Exception:
                await tx.rollback()
                raise
        except (ServiceUnavailable, SessionExpired) as e:
            raise GraphUnavailableError(f"Graph store unavailable: {e}", cause=e) from e
        except Neo4jError as e:
            raise QueryError(f"Graph transaction failed: {e}", cause=e) from e
        except DriverError as e:
            raise GraphUnavailableError(f"Graph driver error: {e}", cause=e) from e
        finally:
            await session.close()

    async def verify_connectivity(self) -> bool:
        """Round-trip to the server. Never raises."""
        if self._driver is None:
            return False
        try:
            await self._driver.verify_connectivity()
            return True
        except Exception as e:
            logger.warning("graph_connectivity_check_failed", error=str(e))
            return False

    async def server_version(self) -> str | None:
        """Server agent version (e.g. "5.15.0"), or None when unavailable."""
        if not self.is_connected():
            return None
        try:
            info = await self._driver.get_server_info()  # type: ignore[union-attr]
        except Exception as e:
            logger.warning("graph_server_info_failed", error=str(e))
            return None
        agent = info.agent or ""
        return agent.split("/", 1)[1] if "/" in agent else agent or None

    def _require_driver(self) -> AsyncDriver:
        if not self._connected or self._driver is None:
            raise GraphUnavailableError("Graph store is not connected")
        return self._driver

    async def _discard_driver(self) -> None:
        if self._driver is not None:
            try:
                await self._driver.close()
            except Exception as e:
                logger.debug("graph_driver_close_failed", error=str(e))
        self._driver = None
        self._connected = False
