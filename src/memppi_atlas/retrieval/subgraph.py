"""
Subgraph expansion: query proteins, their one-hop neighbours and the
edges among them, bounded by ``max_nodes`` / ``max_edges``.
"""

import logging

from ..exceptions import BadInputError, NotFoundError, StoreError
from ..filters import FilterSpec
from ..models import SourceClass, SubgraphResult, Truncation
from ..store.base import EdgeQuery, GraphStore
from ..transforms import close_over_edges, edge_to_response, node_to_response
from .engine import DEFAULT_PAGE_SIZE, ClassFetch, EdgeCollector, collect_by_priority

logger = logging.getLogger(__name__)


def _closure(query_ids: tuple[str, ...], edges) -> list[str]:
    """Query ids, then edge endpoints in first-encounter order."""
    ordered = dict.fromkeys(query_ids)
    for edge in edges:
        ordered.setdefault(edge["protein1"])
        ordered.setdefault(edge["protein2"])
    return list(ordered)


class SubgraphExpander:
    """
    One-hop neighbourhood retrieval around explicit query ids.

    Usage:
        expander = SubgraphExpander(store)
        result = expander.expand(subgraph_filters({"proteins": "P12345,Q67890"}))
        result.to_dict()
    """

    def __init__(self, store: GraphStore, page_size: int = DEFAULT_PAGE_SIZE):
        self.store = store
        self.page_size = max(1, int(page_size))

    def _backfill(
        self, collector: EdgeCollector, spec: FilterSpec, node_ids: frozenset[str]
    ) -> dict[SourceClass, ClassFetch]:
        """Fill the remaining budget with edges among the fixed node set."""
        fetches: dict[SourceClass, ClassFetch] = {}
        for source_class in spec.source_classes:
            if collector.full:
                break
            query = EdgeQuery.for_class(source_class, spec.min_probability, node_ids, "both")
            try:
                fetches[source_class] = collector.collect(query, phase="backfill")
            except StoreError as exc:
                logger.warning("Backfill of %s edges failed, keeping partial result: %s", source_class, exc)
                break
        return fetches

    def _edges_left_out(
        self,
        spec: FilterSpec,
        collector: EdgeCollector,
        fetches: list[ClassFetch],
        backfills: dict[SourceClass, ClassFetch],
        node_ids: frozenset[str],
    ) -> bool:
        """
        Whether qualifying edges exist that a full collector had no room for.

        Each unfinished pass touching the query ids is read one row past
        what it consumed. Edges among the final node set are re-read up to
        one row beyond the collected count and checked for unseen ids.
        A failing check counts as truncated.
        """
        try:
            for fetch in fetches:
                if fetch.exhausted:
                    continue
                query = EdgeQuery.for_class(
                    fetch.source_class, spec.min_probability, spec.node_id_set, "any"
                )
                if self.store.select_edges_page(query, fetch.consumed, 1):
                    return True

            for source_class in spec.source_classes:
                backfill = backfills.get(source_class)
                if backfill is not None and backfill.exhausted:
                    continue
                query = EdgeQuery.for_class(source_class, spec.min_probability, node_ids, "both")
                rows = self.store.select_edges_page(query, 0, len(collector.seen) + 1)
                if any(row.get("edge") and row["edge"] not in collector.seen for row in rows):
                    return True
        except StoreError as exc:
            logger.warning("Subgraph truncation check failed (%s); assuming truncated", exc)
            return True
        return False

    def expand(self, spec: FilterSpec) -> SubgraphResult:
        """
        Expand ``spec.node_ids`` by one hop.

        Raises:
            BadInputError: If ``spec`` carries no query ids
            NotFoundError: If no edge touches the query ids and none of
                them exists in the node table
            StoreError: If the primary edge fetch or a node fetch fails
        """
        query_ids = spec.node_ids
        if not query_ids:
            raise BadInputError("Invalid proteins parameter: must contain at least one protein ID")
        query_set = spec.node_id_set
        max_nodes = spec.max_nodes if spec.max_nodes is not None else len(query_ids)

        # Edges touching any query id, class priority as for network slices
        collector = EdgeCollector(self.store, spec.max_edges, self.page_size)
        fetches = collect_by_priority(collector, spec, query_set, "any")
        truncated = Truncation()

        if not collector.edges:
            try:
                present = self.store.count_nodes(query_ids)
                rows = self.store.select_nodes(query_ids) if present else []
            except StoreError as exc:
                logger.error("Store error during %s: %s", exc.phase, exc)
                raise
            if not present:
                raise NotFoundError("None of the queried proteins exist in the dataset")
            return SubgraphResult(
                query=list(query_ids),
                nodes=[node_to_response(row, is_query=True) for row in rows],
                edges=[],
            )

        # Node closure, query ids are never dropped
        closure = _closure(query_ids, collector.edges)
        if len(closure) > max_nodes:
            neighbours = closure[len(query_ids):]
            keep = max(0, max_nodes - len(query_ids))
            closure = list(query_ids) + neighbours[:keep]
            truncated.nodes = True
            collector.restrict_to(frozenset(closure))
            logger.debug("Subgraph node set truncated to %d of %d", len(closure), len(neighbours) + len(query_ids))

        node_set = frozenset(closure)
        backfills = self._backfill(collector, spec, node_set)
        if collector.full:
            truncated.edges = self._edges_left_out(spec, collector, fetches, backfills, node_set)

        try:
            rows = self.store.select_nodes(closure)
        except StoreError as exc:
            logger.error("Store error during %s: %s", exc.phase, exc)
            raise

        nodes = [node_to_response(row, is_query=row["protein"] in query_set) for row in rows]
        edges = [edge_to_response(row, self.store.schema) for row in collector.edges]
        close_over_edges(nodes, edges, query_ids=query_set)

        return SubgraphResult(
            query=list(query_ids),
            nodes=nodes,
            edges=edges,
            truncated=truncated,
        )
