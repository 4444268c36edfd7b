"""
Retrieval over a Graph Store Adapter.

- engine: bounded network slices (priority classes, dedup, truncation)
- subgraph: one-hop expansion around query ids with backfill
- stats: aggregate counts with scan fallback
"""

from .engine import (
    DEFAULT_PAGE_SIZE,
    ClassFetch,
    EdgeCollector,
    SliceRetrievalEngine,
    collect_by_priority,
)
from .stats import SCAN_BATCH_MIN, SCAN_BATCH_SIZE, StatsCollector
from .subgraph import SubgraphExpander

__all__ = [
    # Constants
    "DEFAULT_PAGE_SIZE",
    "SCAN_BATCH_MIN",
    "SCAN_BATCH_SIZE",
    # Engines
    "SliceRetrievalEngine",
    "StatsCollector",
    "SubgraphExpander",
    # Building blocks
    "ClassFetch",
    "EdgeCollector",
    "collect_by_priority",
]
