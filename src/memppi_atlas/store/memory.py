"""
In-process Graph Store Adapter.

Holds node and edge rows in lists and answers the adapter contract with
plain Python filtering. Used to serve a CSV export without PostgreSQL and
as the substitute store in tests.
"""

from collections.abc import Iterable
from pathlib import Path

from ..dataset import read_edges_csv, read_nodes_csv
from ..models import EdgeRow, NodeRow
from ..schema import StoreSchema
from .base import MAX_RESULTS, EdgeQuery, GraphStore


class InMemoryGraphStore(GraphStore):
    """
    Graph store over in-memory rows.

    Rows are used as given, duplicates included, so the retrieval code sees
    the same kind of data it would get from the relational store.

    Usage:
        store = InMemoryGraphStore.from_csv("data/")
        store.count_edges(EdgeQuery(source_class="prediction"))
    """

    def __init__(
        self,
        nodes: Iterable[NodeRow] = (),
        edges: Iterable[EdgeRow] = (),
        schema: StoreSchema | None = None,
    ):
        self.schema = schema or StoreSchema()
        self.nodes: list[NodeRow] = sorted(
            (dict(n) for n in nodes), key=lambda n: n["protein"]
        )
        self.edges: list[EdgeRow] = [dict(e) for e in edges]

    @classmethod
    def from_csv(
        cls,
        directory: Path | str | None = None,
        nodes_path: Path | str | None = None,
        edges_path: Path | str | None = None,
        schema: StoreSchema | None = None,
    ) -> "InMemoryGraphStore":
        """Load ``nodes.csv`` and ``edges.csv`` from a directory (or explicit paths)."""
        if directory is not None:
            nodes_path = nodes_path or Path(directory) / "nodes.csv"
            edges_path = edges_path or Path(directory) / "edges.csv"
        if nodes_path is None or edges_path is None:
            raise ValueError("from_csv needs a directory or both nodes_path and edges_path")
        return cls(read_nodes_csv(nodes_path), read_edges_csv(edges_path), schema=schema)

    # ─── Filtering ────────────────────────────────────────

    def _matches(self, edge: EdgeRow, query: EdgeQuery | None) -> bool:
        if query is None:
            return True

        if query.source_class is not None:
            if self.schema.class_of(edge.get("positive_type")) != query.source_class:
                return False

        if query.min_probability is not None:
            prob = edge.get("fusion_pred_prob")
            # NULL >= x is not true in SQL either
            if prob is None or prob < query.min_probability:
                return False

        if query.node_ids is not None:
            hits = (edge.get("protein1") in query.node_ids, edge.get("protein2") in query.node_ids)
            if query.node_match == "both" and not all(hits):
                return False
            if query.node_match == "any" and not any(hits):
                return False

        if query.enriched_only:
            tissue = edge.get("enriched_tissue")
            if tissue is None or tissue == "NA":
                return False

        return True

    def _ordered(self, edges: list[EdgeRow], query: EdgeQuery) -> list[EdgeRow]:
        if query.order_by == "probability":
            return sorted(
                edges,
                key=lambda e: (
                    e.get("fusion_pred_prob") is None,
                    -(e.get("fusion_pred_prob") or 0.0),
                    e.get("edge") or "",
                ),
            )
        if query.order_by == "edge":
            return sorted(edges, key=lambda e: e.get("edge") or "")
        return edges

    # ─── Contract ─────────────────────────────────────────

    def count_nodes(self, node_ids: Iterable[str] | None = None) -> int:
        if node_ids is None:
            return len(self.nodes)
        wanted = set(node_ids)
        return sum(1 for n in self.nodes if n["protein"] in wanted)

    def count_edges(self, query: EdgeQuery | None = None) -> int:
        if query is not None and query.matches_nothing:
            return 0
        return sum(1 for e in self.edges if self._matches(e, query))

    def select_nodes_page(
        self,
        node_ids: list[str] | None,
        offset: int,
        limit: int,
        columns: list[str] | None = None,
    ) -> list[NodeRow]:
        if limit <= 0:
            return []
        rows = self.nodes
        if node_ids is not None:
            wanted = set(node_ids)
            rows = [n for n in rows if n["protein"] in wanted]
        start = max(0, offset)
        rows = rows[start : start + min(limit, MAX_RESULTS)]
        if columns:
            return [{c: n.get(c) for c in columns} for n in rows]
        return [dict(n) for n in rows]

    def select_edges_page(self, query: EdgeQuery, offset: int, limit: int) -> list[EdgeRow]:
        if query.matches_nothing or limit <= 0:
            return []
        matched = self._ordered([e for e in self.edges if self._matches(e, query)], query)
        start = max(0, offset)
        return [dict(e) for e in matched[start : start + min(limit, MAX_RESULTS)]]
