"""Build the process-wide store handle from settings."""

import logging

from ..config import AtlasSettings
from ..schema import StoreSchema
from .base import GraphStore
from .memory import InMemoryGraphStore
from .postgres import PostgresGraphStore

logger = logging.getLogger(__name__)


def open_store(settings: AtlasSettings) -> GraphStore:
    """
    CSV-backed in-memory store when ``csv_dir`` is set, PostgreSQL otherwise.

    Raises:
        SchemaValidationError: If ``schema_path`` points at an invalid mapping
        StoreUnavailableError: If PostgreSQL cannot be reached
    """
    schema = StoreSchema.from_yaml(settings.schema_path) if settings.schema_path else StoreSchema()

    if settings.csv_dir:
        store = InMemoryGraphStore.from_csv(settings.csv_dir, schema=schema)
        logger.info(
            "Loaded in-memory store from %s (%d nodes, %d edges)",
            settings.csv_dir,
            len(store.nodes),
            len(store.edges),
        )
        return store

    logger.info("Connecting to PostgreSQL store (%s.%s)", schema.nodes_table, schema.edges_table)
    return PostgresGraphStore(
        settings.database_dsn,
        schema=schema,
        statement_timeout_ms=settings.statement_timeout_ms,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
    )
