"""
Graph Store Adapter contract.

The adapter is the only component that talks to the backing tables. It
offers count, paginated-range and filtered-select primitives over the
nodes and edges tables; everything above it (retrieval, subgraph
expansion, statistics) is written against this interface so a substitute
store can be injected.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

from ..models import EdgeRow, NodeRow, SourceClass
from ..schema import StoreSchema

# === SAFETY LIMITS (Non-negotiable) ===
MAX_RESULTS = 100_000  # Max rows returned by any single adapter call
QUERY_TIMEOUT_SEC = 30  # Per-statement timeout

NodeMatch = Literal["both", "any"]
EdgeOrder = Literal["edge", "probability"]


@dataclass(frozen=True)
class EdgeQuery:
    """
    Optional filters and ordering for edge counts and page selects.

    ``node_ids`` restricts edges to a protein set: with ``node_match="both"``
    both endpoints must be in the set, with ``"any"`` one is enough. An
    empty set matches nothing; ``None`` means unrestricted.
    """

    source_class: SourceClass | None = None
    min_probability: float | None = None
    node_ids: frozenset[str] | None = None
    node_match: NodeMatch = "both"
    enriched_only: bool = False
    order_by: EdgeOrder | None = None

    @classmethod
    def for_class(
        cls,
        source_class: SourceClass,
        min_probability: float,
        node_ids: Iterable[str] | None = None,
        node_match: NodeMatch = "both",
    ) -> "EdgeQuery":
        """
        Standard per-class slice query.

        Predicted edges are thresholded and ordered by descending
        probability so truncation keeps the most confident ones;
        experimental edges are ordered by id so repeated requests match.
        """
        ids = frozenset(node_ids) if node_ids else None
        if source_class == "prediction":
            return cls(
                source_class=source_class,
                min_probability=min_probability,
                node_ids=ids,
                node_match=node_match,
                order_by="probability",
            )
        return cls(
            source_class=source_class,
            node_ids=ids,
            node_match=node_match,
            order_by="edge",
        )

    @property
    def matches_nothing(self) -> bool:
        return self.node_ids is not None and len(self.node_ids) == 0


class GraphStore(ABC):
    """Read-only access to the nodes and edges tables."""

    schema: StoreSchema = StoreSchema()
    node_page_size: int = MAX_RESULTS

    @abstractmethod
    def count_nodes(self, node_ids: Iterable[str] | None = None) -> int:
        """Number of node rows, optionally restricted to ``node_ids``."""

    @abstractmethod
    def count_edges(self, query: EdgeQuery | None = None) -> int:
        """Number of edge rows matching ``query`` (all rows when None)."""

    @abstractmethod
    def select_nodes_page(
        self,
        node_ids: list[str] | None,
        offset: int,
        limit: int,
        columns: list[str] | None = None,
    ) -> list[NodeRow]:
        """One page of node rows ordered by id, optionally restricted to ``node_ids``."""

    @abstractmethod
    def select_edges_page(self, query: EdgeQuery, offset: int, limit: int) -> list[EdgeRow]:
        """One page of edge rows matching ``query`` in its order."""

    def select_nodes(
        self,
        node_ids: Iterable[str] | None = None,
        columns: list[str] | None = None,
    ) -> list[NodeRow]:
        """
        All node rows ordered by id, optionally restricted to ``node_ids``.

        Pages through the table ``node_page_size`` rows at a time, so the
        result is never cut at the per-call row cap.
        """
        ids = None if node_ids is None else sorted(set(node_ids))
        if ids is not None and not ids:
            return []

        page_size = max(1, min(self.node_page_size, MAX_RESULTS))
        rows: list[NodeRow] = []
        while True:
            page = self.select_nodes_page(ids, len(rows), page_size, columns)
            rows.extend(page)
            if len(page) < page_size:
                return rows

    def ping(self) -> bool:
        """True when the store answers a trivial query."""
        self.count_nodes()
        return True

    def close(self) -> None:
        """Release connections held by the store."""
