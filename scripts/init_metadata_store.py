#!/usr/bin/env python3
"""
Initialize the metadata store backing the persistent accept-once filter.

MongoDB keys documents by ``_id``, which is unique already, so only a
``created_at`` index is added. Neo4j needs a uniqueness constraint on
``(namespace, key)`` for MERGE to be an atomic check-and-set.

Usage:
    python scripts/init_metadata_store.py
"""

import sys
from pathlib import Path

from loguru import logger

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.utils.config import Settings, get_settings
from app.utils.helpers import configure_logging
from app.utils.mongo_client import MongoDBClient
from app.utils.neo4j_client import Neo4jClient


NEO4J_STATEMENTS = [
    """
    CREATE CONSTRAINT seen_file_key IF NOT EXISTS
    FOR (s:SeenFile) REQUIRE (s.namespace, s.key) IS UNIQUE
    """,
    """
    CREATE INDEX seen_file_namespace IF NOT EXISTS
    FOR (s:SeenFile) ON (s.namespace)
    """,
]


def init_neo4j(settings: Settings) -> int:
    """Create the SeenFile constraint and index. Returns the number of failures."""
    client = Neo4jClient(settings.neo4j_uri, settings.neo4j_user, settings.neo4j_password)
    failed_count = 0

    try:
        client.connect()
        with client.session() as session:
            for i, statement in enumerate(NEO4J_STATEMENTS, 1):
                try:
                    logger.info(f"Executing statement {i}/{len(NEO4J_STATEMENTS)}...")
                    session.run(statement).consume()
                    logger.success(f"Statement {i} executed successfully")
                except Exception as e:
                    # Some statements may fail if already exist - that's okay
                    if "already exists" in str(e) or "equivalent" in str(e):
                        logger.warning(f"Statement {i} already applied: {e}")
                    else:
                        logger.error(f"Statement {i} failed: {e}")
                        failed_count += 1
    finally:
        client.close()

    return failed_count


def init_mongodb(settings: Settings) -> int:
    """Create the collection index. Returns the number of failures."""
    client = MongoDBClient(settings.mongodb_uri, settings.mongodb_database)

    try:
        collection = client.collection(settings.metadata_collection)
        name = collection.create_index("created_at")
        logger.success(f"Index ready on {settings.metadata_collection}: {name}")
        return 0
    except Exception as e:
        logger.error(f"Index creation failed: {e}")
        return 1
    finally:
        client.close()


def main():
    """Main initialization function."""
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info(f"Initializing {settings.metadata_store} metadata store...")

    try:
        if settings.metadata_store == "neo4j":
            failed = init_neo4j(settings)
        else:
            failed = init_mongodb(settings)
    except Exception as e:
        logger.error(f"Metadata store initialization failed: {e}")
        return 1

    if failed == 0:
        logger.success("Metadata store initialization completed successfully")
        return 0

    logger.warning(f"Metadata store initialization completed with {failed} failures")
    return 1


if __name__ == "__main__":
    sys.exit(main())
