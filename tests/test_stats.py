"""
Network statistics tests, including the batch-scan fallback.
"""

import pytest

from memppi_atlas.exceptions import StoreError, StoreTimeoutError
from memppi_atlas.retrieval import StatsCollector
from memppi_atlas.store import InMemoryGraphStore

from conftest import PagedNodeStore, edge, node


class SlowCountStore(InMemoryGraphStore):
    """Filtered counts time out; pages time out above ``page_limit`` rows."""

    def __init__(self, *args, page_limit=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.page_limit = page_limit
        self.page_sizes: list[int] = []

    def count_edges(self, query=None):
        if query is not None:
            raise StoreTimeoutError("canceling statement due to statement timeout", phase="count")
        return super().count_edges(query)

    def select_edges_page(self, query, offset, limit):
        self.page_sizes.append(limit)
        if self.page_limit is not None and limit > self.page_limit:
            raise StoreTimeoutError("canceling statement due to statement timeout", phase="scan")
        return super().select_edges_page(query, offset, limit)


def stats_rows():
    nodes = [
        node("P1", family="TM"),
        node("P2", family="TM"),
        node("P3", family="TF"),
        node("P4", family=None),
        node("P5", family="  "),
    ]
    edges = [
        edge("P1", "P2", "experimental"),
        edge("P1", "P3", "prediction", prob=0.9, enriched_tissue="brain"),
        edge("P2", "P3", "prediction", prob=0.4),
        edge("P3", "P4", "prediction", prob=0.85, enriched_tissue="liver"),
        edge("P4", "P5", "experiment", enriched_tissue="NA"),
    ]
    return nodes, edges


class TestCounts:
    """Count-query path."""

    def test_stats(self):
        """Totals, families, enriched and predicted counts."""
        nodes, edges = stats_rows()
        stats = StatsCollector(InMemoryGraphStore(nodes, edges)).collect()
        assert stats == {
            "totalNodes": 5,
            "totalEdges": 5,
            "familyCounts": {"TM": 2, "TF": 1},
            "enrichedEdgeCount": 2,
            "predictedEdgeCount": 3,
        }

    def test_mixed_store(self, mixed_store):
        """Ring fixture: four TF proteins, ten predictions."""
        stats = StatsCollector(mixed_store).collect()
        assert stats["familyCounts"] == {"TF": 4, "TM": 8}
        assert stats["predictedEdgeCount"] == 10
        assert stats["enrichedEdgeCount"] == 0

    def test_families_counted_across_pages(self):
        """Family counts cover node tables larger than one page."""
        nodes = [node(f"P{i:03d}", family=("TF" if i < 150 else "TM")) for i in range(250)]
        store = PagedNodeStore(nodes)
        stats = StatsCollector(store).collect()
        assert stats["familyCounts"] == {"TF": 150, "TM": 100}
        assert len(store.node_pages) == 3


class TestScanFallback:
    """Counts rebuilt by paging when count queries fail."""

    def test_scan_matches_counts(self):
        """Scan fallback produces the same numbers as count queries."""
        nodes, edges = stats_rows()
        expected = StatsCollector(InMemoryGraphStore(nodes, edges)).collect()
        scanned = StatsCollector(SlowCountStore(nodes, edges), batch_size=2, batch_min=1).collect()
        assert scanned == expected

    def test_batch_halved_on_timeout(self):
        """Timeouts halve the batch until it succeeds."""
        nodes, edges = stats_rows()
        store = SlowCountStore(nodes, edges, page_limit=2)
        collector = StatsCollector(store, batch_size=8, batch_min=1)
        assert collector.scan_count(lambda row: True, "all") == 5
        assert store.page_sizes[:3] == [8, 4, 2]

    def test_timeout_at_floor_raises(self):
        """A timeout at the minimum batch size fails."""
        nodes, edges = stats_rows()
        store = SlowCountStore(nodes, edges, page_limit=1)
        collector = StatsCollector(store, batch_size=8, batch_min=2)
        with pytest.raises(StoreTimeoutError):
            collector.collect()
        assert store.page_sizes == [8, 4, 2]

    def test_batch_min_never_exceeds_batch(self):
        """The floor is capped at the starting batch size."""
        collector = StatsCollector(InMemoryGraphStore(), batch_size=10, batch_min=50)
        assert collector.batch_min == 10


class TestFailures:
    """Failures outside the fallback path."""

    def test_total_count_failure_raises(self):
        """Failure of an unfiltered count is not retried."""

        class BrokenStore(InMemoryGraphStore):
            def count_nodes(self, node_ids=None):
                raise StoreError("connection reset", phase="count")

        with pytest.raises(StoreError):
            StatsCollector(BrokenStore()).collect()
