"""
Persistent metadata stores for the accept-once filter.

A metadata store is a namespaced key/value map kept in an external database.
The file source uses it to remember which files were already emitted, so the
record survives restarts and is shared by every instance pointing at the same
database.

Backends:
- MongoMetadataStore: one document per key in a fixed collection
- Neo4jMetadataStore: one SeenFile node per key
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator, Optional
from uuid import uuid4

from loguru import logger
from neo4j.exceptions import DriverError, Neo4jError
from pymongo import ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError, PyMongoError

from app.utils.config import Settings
from app.utils.helpers import now_iso
from app.utils.mongo_client import MongoDBClient
from app.utils.neo4j_client import Neo4jClient
from domains.file_source.errors import MetadataStoreError


class MetadataStore(ABC):
    """Key/value store contract used by the persistent accept-once filter."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the value stored under ``key`` or None."""

    @abstractmethod
    def put(self, key: str, value: str):
        """Store ``value`` under ``key``, overwriting any previous value."""

    @abstractmethod
    def put_if_absent(self, key: str, value: str) -> Optional[str]:
        """
        Atomically store ``value`` unless ``key`` already exists.

        Returns:
            The previous value, or None if ``value`` was stored
        """

    @abstractmethod
    def replace(self, key: str, old_value: str, new_value: str) -> bool:
        """Atomically swap ``old_value`` for ``new_value``; False if the value changed meanwhile."""

    @abstractmethod
    def remove(self, key: str) -> Optional[str]:
        """Delete ``key`` and return the value it held."""

    @abstractmethod
    def count(self) -> int:
        """Number of keys in this store's namespace."""

    @abstractmethod
    def ping(self) -> bool:
        """Check the backing database is reachable."""

    def contains(self, key: str) -> bool:
        return self.get(key) is not None

    def close(self):
        pass


@contextmanager
def _mongo_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except PyMongoError as e:
        raise MetadataStoreError(f"MongoDB {operation} failed: {e}") from e


@contextmanager
def _neo4j_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except (Neo4jError, DriverError) as e:
        raise MetadataStoreError(f"Neo4j {operation} failed: {e}") from e


class MongoMetadataStore(MetadataStore):
    """Metadata store keeping ``{_id: key, value: value}`` documents in one collection."""

    def __init__(self, client: MongoDBClient, collection_name: str = "integrationMetadataStore"):
        self.client = client
        self.collection_name = collection_name

    @property
    def collection(self) -> Collection:
        return self.client.collection(self.collection_name)

    def get(self, key: str) -> Optional[str]:
        with _mongo_errors("get"):
            doc = self.collection.find_one({"_id": key})
        return doc["value"] if doc else None

    def put(self, key: str, value: str):
        with _mongo_errors("put"):
            self.collection.update_one(
                {"_id": key},
                {"$set": {"value": value, "updated_at": now_iso()}},
                upsert=True,
            )

    def put_if_absent(self, key: str, value: str) -> Optional[str]:
        with _mongo_errors("put_if_absent"):
            try:
                previous = self.collection.find_one_and_update(
                    {"_id": key},
                    {"$setOnInsert": {"value": value, "created_at": now_iso()}},
                    upsert=True,
                    return_document=ReturnDocument.BEFORE,
                )
            except DuplicateKeyError:
                # Lost an upsert race with another instance
                previous = self.collection.find_one({"_id": key})
        return previous["value"] if previous else None

    def replace(self, key: str, old_value: str, new_value: str) -> bool:
        with _mongo_errors("replace"):
            result = self.collection.update_one(
                {"_id": key, "value": old_value},
                {"$set": {"value": new_value, "updated_at": now_iso()}},
            )
        return result.matched_count == 1

    def remove(self, key: str) -> Optional[str]:
        with _mongo_errors("remove"):
            doc = self.collection.find_one_and_delete({"_id": key})
        return doc["value"] if doc else None

    def count(self) -> int:
        with _mongo_errors("count"):
            return self.collection.count_documents({})

    def ping(self) -> bool:
        try:
            return self.client.ping()
        except PyMongoError as e:
            logger.warning(f"MongoDB ping failed: {e}")
            return False

    def close(self):
        self.client.close()


class Neo4jMetadataStore(MetadataStore):
    """Metadata store keeping one ``SeenFile`` node per key, grouped by namespace."""

    def __init__(self, client: Neo4jClient, namespace: str = "integrationMetadataStore"):
        self.client = client
        self.namespace = namespace

    def get(self, key: str) -> Optional[str]:
        query = """
        MATCH (s:SeenFile {namespace: $namespace, key: $key})
        RETURN s.value AS value
        """
        with _neo4j_errors("get"):
            records = self.client.execute_read(query, {"namespace": self.namespace, "key": key})
        return records[0]["value"] if records else None

    def put(self, key: str, value: str):
        query = """
        MERGE (s:SeenFile {namespace: $namespace, key: $key})
        SET s.value = $value, s.updated_at = datetime($ts)
        """
        with _neo4j_errors("put"):
            self.client.execute_write(
                query,
                {"namespace": self.namespace, "key": key, "value": value, "ts": now_iso()},
            )

    def put_if_absent(self, key: str, value: str) -> Optional[str]:
        # The token tells us whether this MERGE created the node
        token = str(uuid4())
        query = """
        MERGE (s:SeenFile {namespace: $namespace, key: $key})
        ON CREATE SET
            s.value = $value,
            s.created_at = datetime($ts),
            s.created_by = $token
        RETURN s.value AS value, s.created_by = $token AS created
        """
        with _neo4j_errors("put_if_absent"):
            records = self.client.execute_write(
                query,
                {
                    "namespace": self.namespace,
                    "key": key,
                    "value": value,
                    "ts": now_iso(),
                    "token": token,
                },
            )
        record = records[0]
        return None if record["created"] else record["value"]

    def replace(self, key: str, old_value: str, new_value: str) -> bool:
        query = """
        MATCH (s:SeenFile {namespace: $namespace, key: $key})
        WHERE s.value = $old_value
        SET s.value = $new_value, s.updated_at = datetime($ts)
        RETURN count(s) AS updated
        """
        with _neo4j_errors("replace"):
            records = self.client.execute_write(
                query,
                {
                    "namespace": self.namespace,
                    "key": key,
                    "old_value": old_value,
                    "new_value": new_value,
                    "ts": now_iso(),
                },
            )
        return bool(records) and records[0]["updated"] == 1

    def remove(self, key: str) -> Optional[str]:
        query = """
        MATCH (s:SeenFile {namespace: $namespace, key: $key})
        WITH s, s.value AS value
        DELETE s
        RETURN value
        """
        with _neo4j_errors("remove"):
            records = self.client.execute_write(query, {"namespace": self.namespace, "key": key})
        return records[0]["value"] if records else None

    def count(self) -> int:
        query = """
        MATCH (s:SeenFile {namespace: $namespace})
        RETURN count(s) AS total
        """
        with _neo4j_errors("count"):
            records = self.client.execute_read(query, {"namespace": self.namespace})
        return records[0]["total"] if records else 0

    def ping(self) -> bool:
        try:
            result = self.client.execute_read("RETURN 1 AS test")
            return len(result) > 0
        except (Neo4jError, DriverError) as e:
            logger.warning(f"Neo4j ping failed: {e}")
            return False

    def close(self):
        self.client.close()


def create_metadata_store(settings: Settings) -> MetadataStore:
    """
    Build the metadata store selected by ``settings.metadata_store``.

    The connection is opened lazily. An unreachable database only fails
    the polls that need it, so the service recovers once it comes back.
    """
    if settings.metadata_store == "neo4j":
        client = Neo4jClient(settings.neo4j_uri, settings.neo4j_user, settings.neo4j_password)
        store = Neo4jMetadataStore(client, settings.metadata_collection)
    else:
        client = MongoDBClient(settings.mongodb_uri, settings.mongodb_database)
        store = MongoMetadataStore(client, settings.metadata_collection)

    logger.info(f"Using {settings.metadata_store} metadata store '{settings.metadata_collection}'")
    return store
