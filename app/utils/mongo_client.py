"""
MongoDB client wrapper.

Mirrors the Neo4j client: lazy connection, connectivity check on connect,
explicit close.
"""

from typing import Optional

from loguru import logger
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from app.utils.helpers import redact_uri


class MongoDBClient:
    """MongoDB client bound to one database."""

    def __init__(self, uri: str, database: str):
        """Initialize MongoDB client."""
        self.uri = uri
        self.database_name = database

        self._client: Optional[MongoClient] = None

    def connect(self):
        """Establish connection to MongoDB."""
        if self._client is None:
            logger.info(f"Connecting to MongoDB at {redact_uri(self.uri)}...")
            self._client = MongoClient(
                self.uri,
                serverSelectionTimeoutMS=5000,
                connectTimeoutMS=5000,
                socketTimeoutMS=30000,
                maxPoolSize=10,
                retryWrites=True
            )
            self._client.admin.command("ping")
            logger.success(f"Connected to MongoDB database: {self.database_name}")

    def close(self):
        """Close MongoDB connection."""
        if self._client:
            logger.info("Closing MongoDB connection...")
            self._client.close()
            self._client = None

    @property
    def client(self) -> MongoClient:
        """Get client, connecting if necessary."""
        if self._client is None:
            self.connect()
        return self._client

    @property
    def database(self) -> Database:
        return self.client[self.database_name]

    def collection(self, name: str) -> Collection:
        """Get a collection of the bound database."""
        return self.database[name]

    def ping(self) -> bool:
        """Round-trip to the server."""
        self.client.admin.command("ping")
        return True
