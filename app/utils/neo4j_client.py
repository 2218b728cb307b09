"""
Neo4j client with connection pooling and helper functions.

Provides:
- Connection pool management
- Read/write helpers returning plain dicts
"""

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from loguru import logger
from neo4j import GraphDatabase, Session

from app.utils.helpers import redact_uri


class Neo4jClient:
    """Neo4j database client with connection pooling."""

    def __init__(self, uri: str, user: str, password: str):
        """Initialize Neo4j client."""
        self.uri = uri
        self.user = user
        self.password = password

        self._driver = None

    def connect(self):
        """Establish connection to Neo4j."""
        if self._driver is None:
            logger.info(f"Connecting to Neo4j at {redact_uri(self.uri)}...")
            self._driver = GraphDatabase.driver(
                self.uri,
                auth=(self.user, self.password),
                max_connection_lifetime=3600,
                max_connection_pool_size=50,
                connection_acquisition_timeout=120
            )
            self._driver.verify_connectivity()
            logger.success("Connected to Neo4j successfully")

    def close(self):
        """Close Neo4j connection."""
        if self._driver:
            logger.info("Closing Neo4j connection...")
            self._driver.close()
            self._driver = None

    @property
    def driver(self):
        """Get driver, connecting if necessary."""
        if self._driver is None:
            self.connect()
        return self._driver

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Context manager for Neo4j session."""
        session = self.driver.session()
        try:
            yield session
        finally:
            session.close()

    def execute_write(self, query: str, parameters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Execute write query in a managed transaction and return records as dicts."""
        def _work(tx):
            return [dict(record) for record in tx.run(query, parameters or {})]

        with self.session() as session:
            return session.execute_write(_work)

    def execute_read(self, query: str, parameters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Execute read query and return results as list of dicts."""
        def _work(tx):
            return [dict(record) for record in tx.run(query, parameters or {})]

        with self.session() as session:
            return session.execute_read(_work)
