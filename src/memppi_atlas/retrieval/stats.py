"""
Aggregate statistics over the whole store.

Counts come from count-only queries. When the enriched or predicted edge
count fails (typically a statement timeout on a large table) the count
is rebuilt by scanning the edges table in batches, halving the batch on
each timeout down to a floor.
"""

import logging
from collections import Counter
from collections.abc import Callable

from ..exceptions import StoreError, StoreTimeoutError
from ..models import EdgeRow, NetworkStats
from ..store.base import EdgeQuery, GraphStore

logger = logging.getLogger(__name__)

SCAN_BATCH_SIZE = 50_000
SCAN_BATCH_MIN = 5_000


def is_enriched(edge: EdgeRow) -> bool:
    tissue = edge.get("enriched_tissue")
    return bool(tissue) and tissue != "NA"


class StatsCollector:
    """
    Usage:
        StatsCollector(store).collect()["predictedEdgeCount"]
    """

    def __init__(
        self,
        store: GraphStore,
        batch_size: int = SCAN_BATCH_SIZE,
        batch_min: int = SCAN_BATCH_MIN,
    ):
        self.store = store
        self.batch_size = max(1, int(batch_size))
        self.batch_min = max(1, min(int(batch_min), self.batch_size))

    def scan_count(self, predicate: Callable[[EdgeRow], bool], label: str) -> int:
        """
        Count edges satisfying ``predicate`` by paging over the whole table.

        Raises:
            StoreError: On any non-timeout failure, or a timeout at the
                minimum batch size
        """
        query = EdgeQuery(order_by="edge")
        offset = 0
        batch = self.batch_size
        total = 0

        while True:
            try:
                rows = self.store.select_edges_page(query, offset, batch)
            except StoreTimeoutError:
                if batch <= self.batch_min:
                    raise
                batch = max(self.batch_min, batch // 2)
                logger.warning(
                    "Edge scan for %s timed out at offset %d; retrying with batch size %d",
                    label,
                    offset,
                    batch,
                )
                continue

            if not rows:
                break
            total += sum(1 for row in rows if predicate(row))
            offset += len(rows)
            if len(rows) < batch:
                break

        return total

    def _count_or_scan(self, query: EdgeQuery, predicate: Callable[[EdgeRow], bool], label: str) -> int:
        try:
            return self.store.count_edges(query)
        except StoreError as exc:
            logger.warning("Falling back to batch scan for %s edge count: %s", label, exc)
        try:
            return self.scan_count(predicate, label)
        except StoreError as exc:
            logger.error("Store error during stats (%s scan): %s", label, exc)
            raise

    def collect(self) -> NetworkStats:
        try:
            total_nodes = self.store.count_nodes()
            total_edges = self.store.count_edges()
            families = self.store.select_nodes(columns=["protein", "family"])
        except StoreError as exc:
            logger.error("Store error during stats (%s): %s", exc.phase, exc)
            raise

        family_counts = Counter(
            row["family"] for row in families if row.get("family") and row["family"].strip()
        )

        schema = self.store.schema
        enriched = self._count_or_scan(EdgeQuery(enriched_only=True), is_enriched, "enriched")
        predicted = self._count_or_scan(
            EdgeQuery(source_class="prediction"),
            lambda row: schema.class_of(row.get("positive_type")) == "prediction",
            "predicted",
        )

        return {
            "totalNodes": total_nodes,
            "totalEdges": total_edges,
            "familyCounts": dict(family_counts),
            "enrichedEdgeCount": enriched,
            "predictedEdgeCount": predicted,
        }
