"""
Graph Store Adapter implementations.

- base: the adapter contract and the EdgeQuery filter struct
- postgres: psycopg2-backed store over the nodes/edges tables
- memory: in-process store (CSV exports, tests)
- factory: settings -> store handle
"""

from .base import (
    MAX_RESULTS,
    QUERY_TIMEOUT_SEC,
    EdgeQuery,
    GraphStore,
)
from .factory import open_store
from .memory import InMemoryGraphStore
from .postgres import PostgresGraphStore

__all__ = [
    # Constants
    "MAX_RESULTS",
    "QUERY_TIMEOUT_SEC",
    # Contract
    "EdgeQuery",
    "GraphStore",
    # Backends
    "InMemoryGraphStore",
    "PostgresGraphStore",
    "open_store",
]
