"""
Slice Retrieval Engine.

Produces a bounded, deduplicated, class-prioritized edge slice and the
node set needed to display it. All state is local to one call, so a
single engine instance serves concurrent requests.

Edges are fetched class by class in fixed priority order (experiment
before prediction) through an :class:`EdgeCollector`, which pages the
store, drops duplicate edge ids and stops once the shared edge budget is
spent. Subgraph expansion reuses the same collector.
"""

import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass, field

from ..exceptions import StoreError, StoreTimeoutError
from ..filters import FilterSpec
from ..models import (
    EdgeRow,
    RetrievalResult,
    SourceClass,
    Timings,
    Truncation,
)
from ..store.base import EdgeQuery, GraphStore
from ..transforms import close_over_edges, edge_to_response, node_to_response

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10_000


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


@dataclass
class ClassFetch:
    """Bookkeeping for one paged fetch pass."""

    source_class: SourceClass | None
    available: int | None = None
    """Upstream filtered count, None when the count query failed."""

    consumed: int = 0
    """Rows read from the store, duplicates included."""

    kept: int = 0
    exhausted: bool = False
    """The store returned a short page: nothing left for this pass."""


@dataclass
class EdgeCollector:
    """
    Budgeted, deduplicating edge accumulator.

    Several fetch passes (priority classes, subgraph backfill) share one
    collector; every pass draws from the same remaining budget and the
    same seen-id set, so an edge is never kept twice.
    """

    store: GraphStore
    max_edges: int
    page_size: int = DEFAULT_PAGE_SIZE
    edges: list[EdgeRow] = field(default_factory=list)
    seen: set[str] = field(default_factory=set)

    @property
    def remaining(self) -> int:
        return max(0, self.max_edges - len(self.edges))

    @property
    def full(self) -> bool:
        return self.remaining == 0

    def collect(
        self,
        query: EdgeQuery,
        phase: str = "edge page",
        available: int | None = None,
    ) -> ClassFetch:
        """
        Page through ``query`` until the budget is spent or the store runs dry.

        A statement timeout is retried once with half the page size; a
        second timeout (or any other store error) propagates.
        """
        fetch = ClassFetch(source_class=query.source_class, available=available)
        if available == 0 or query.matches_nothing:
            fetch.exhausted = True
            return fetch

        page_size = self.page_size
        retried = False

        while self.remaining > 0:
            limit = min(page_size, self.remaining)
            try:
                rows = self.store.select_edges_page(query, fetch.consumed, limit)
            except StoreTimeoutError:
                if retried or page_size <= 1:
                    raise
                retried = True
                page_size = max(1, page_size // 2)
                logger.warning(
                    "Edge page timed out during %s at offset %d; retrying with page size %d",
                    phase,
                    fetch.consumed,
                    page_size,
                )
                continue

            fetch.consumed += len(rows)
            for row in rows:
                edge_id = row.get("edge")
                if not edge_id or edge_id in self.seen:
                    continue
                self.seen.add(edge_id)
                self.edges.append(row)
                fetch.kept += 1

            if len(rows) < limit or (available is not None and fetch.consumed >= available):
                fetch.exhausted = True
                break

        return fetch

    def restrict_to(self, node_ids: frozenset[str]) -> None:
        """Drop collected edges with an endpoint outside ``node_ids``."""
        self.edges = [
            e for e in self.edges if e["protein1"] in node_ids and e["protein2"] in node_ids
        ]


def collect_by_priority(
    collector: EdgeCollector,
    spec: FilterSpec,
    node_ids: Iterable[str] | None,
    node_match: str,
    counts: dict[SourceClass, int | None] | None = None,
    phase: str = "edge page",
) -> list[ClassFetch]:
    """
    Run one fetch pass per requested class, in priority order.

    A failing secondary class (anything after a class that already
    produced edges) is logged and skipped; a failing first productive
    class fails the request.
    """
    counts = counts or {}
    fetches: list[ClassFetch] = []
    for source_class in spec.source_classes:
        if collector.full:
            fetches.append(
                ClassFetch(
                    source_class=source_class,
                    available=counts.get(source_class),
                )
            )
            continue

        query = EdgeQuery.for_class(source_class, spec.min_probability, node_ids, node_match)
        try:
            fetch = collector.collect(
                query,
                phase=phase,
                available=counts.get(source_class),
            )
        except StoreError as exc:
            if collector.edges:
                logger.warning(
                    "Skipping %s edges after store error during %s: %s",
                    source_class,
                    exc.phase,
                    exc,
                )
                fetches.append(
                    ClassFetch(
                        source_class=source_class,
                        available=counts.get(source_class),
                    )
                )
                continue
            logger.error("Store error during %s (%s edges): %s", exc.phase, source_class, exc)
            raise
        fetches.append(fetch)

    return fetches


class SliceRetrievalEngine:
    """
    Bounded network slices over a Graph Store Adapter.

    Usage:
        engine = SliceRetrievalEngine(store)
        result = engine.fetch_network(network_filters(request.query_params))
        result.meta()["truncated"]
    """

    def __init__(self, store: GraphStore, page_size: int = DEFAULT_PAGE_SIZE):
        self.store = store
        self.page_size = max(1, int(page_size))

    def _count_classes(self, spec: FilterSpec) -> dict[SourceClass, int | None]:
        """Per-class filtered counts; a failed count is recorded as unknown."""
        counts: dict[SourceClass, int | None] = {}
        for source_class in spec.source_classes:
            query = EdgeQuery.for_class(
                source_class, spec.min_probability, spec.node_ids, "both"
            )
            try:
                counts[source_class] = self.store.count_edges(query)
            except StoreError as exc:
                logger.warning(
                    "Filtered count for %s edges failed (%s); truncation will be probed",
                    source_class,
                    exc,
                )
                counts[source_class] = None
        return counts

    def _has_more(self, spec: FilterSpec, fetch: ClassFetch) -> bool:
        """Whether rows beyond those consumed exist for one class."""
        if fetch.available is not None:
            return fetch.available > fetch.consumed
        if fetch.exhausted:
            return False

        query = EdgeQuery.for_class(
            fetch.source_class, spec.min_probability, spec.node_ids, "both"
        )
        try:
            return bool(self.store.select_edges_page(query, fetch.consumed, 1))
        except StoreError as exc:
            logger.warning(
                "Truncation probe for %s edges failed (%s); assuming truncated",
                fetch.source_class,
                exc,
            )
            return True

    def fetch_network(self, spec: FilterSpec) -> RetrievalResult:
        """
        Retrieve one bounded slice for ``spec``.

        Raises:
            StoreError: If the node fetch, the total counts or the primary
                edge class fail. Secondary class failures only log.
        """
        overall = time.perf_counter()
        timings = Timings()
        restriction = spec.node_ids or None

        # 1. Nodes (always, even without edges)
        start = time.perf_counter()
        try:
            node_rows = self.store.select_nodes(restriction)
            total_nodes = self.store.count_nodes()
        except StoreError as exc:
            logger.error("Store error during %s: %s", exc.phase, exc)
            raise
        timings.fetch_nodes_ms = _elapsed_ms(start)

        # 2. Unfiltered edge total
        try:
            total_edges = self.store.count_edges()
        except StoreError as exc:
            logger.error("Store error during %s: %s", exc.phase, exc)
            raise

        collector = EdgeCollector(self.store, spec.max_edges, self.page_size)
        truncated = Truncation()
        available: int | None = None

        if spec.include_edges:
            # 3. Per-class filtered counts
            counts = self._count_classes(spec)
            if all(c is not None for c in counts.values()):
                available = sum(counts.values())

            # 4. Priority-ordered paging
            start = time.perf_counter()
            fetches = collect_by_priority(
                collector, spec, spec.node_ids, "both", counts=counts
            )
            timings.fetch_edges_ms = _elapsed_ms(start)

            # 5. Truncation
            if len(collector.edges) == spec.max_edges:
                truncated.edges = any(self._has_more(spec, f) for f in fetches)

        # 6-7. Shape response
        start = time.perf_counter()
        nodes = [node_to_response(row) for row in node_rows]
        edges = [edge_to_response(row, self.store.schema) for row in collector.edges]
        close_over_edges(nodes, edges)
        timings.transform_ms = _elapsed_ms(start)
        timings.total_ms = _elapsed_ms(overall)

        logger.debug(
            "Network slice: %d nodes, %d edges (truncated=%s) in %.2f ms",
            len(nodes),
            len(edges),
            truncated.edges,
            timings.total_ms,
        )

        return RetrievalResult(
            nodes=nodes,
            edges=edges,
            total_nodes_in_store=total_nodes,
            total_edges_in_store=total_edges,
            filtered_edge_count=len(edges),
            available_edge_count=available,
            truncated=truncated,
            timings=timings,
        )
