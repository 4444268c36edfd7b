"""Shared fixtures: row builders and in-memory stores."""

import pytest

from memppi_atlas.exceptions import StoreError, StoreTimeoutError
from memppi_atlas.store import EdgeQuery, InMemoryGraphStore


def node(protein, family="TM", **fields):
    row = {
        "protein": protein,
        "entry_name": f"{protein}_HUMAN",
        "description": f"Protein {protein}",
        "gene_names": f"G{protein}",
        "family": family,
        "expression_tissue": "brain\\liver",
    }
    row.update(fields)
    return row


def edge(p1, p2, positive_type="experiment", prob=None, edge_id=None, **fields):
    row = {
        "edge": edge_id or f"{p1}_{p2}",
        "protein1": p1,
        "protein2": p2,
        "fusion_pred_prob": prob,
        "enriched_tissue": "NA",
        "tissue_enriched_confidence": "NA",
        "positive_type": positive_type,
    }
    row.update(fields)
    return row


class FaultyStore(InMemoryGraphStore):
    """
    In-memory store with injectable failures.

    - count_failures: source classes whose filtered count raises
    - page_failures: source classes whose page selects raise
    - page_timeouts: number of page selects that time out before succeeding
    - peek_fails: single-row selects (truncation peeks) raise
    """

    def __init__(self, *args, count_failures=(), page_failures=(), page_timeouts=0, peek_fails=False, **kwargs):
        super().__init__(*args, **kwargs)
        self.count_failures = set(count_failures)
        self.page_failures = set(page_failures)
        self.page_timeouts = page_timeouts
        self.peek_fails = peek_fails
        self.page_calls: list[tuple[EdgeQuery, int, int]] = []

    def count_edges(self, query=None):
        if query is not None and query.source_class in self.count_failures:
            raise StoreError("count failed", phase="count")
        return super().count_edges(query)

    def select_edges_page(self, query, offset, limit):
        self.page_calls.append((query, offset, limit))
        if self.page_timeouts > 0:
            self.page_timeouts -= 1
            raise StoreTimeoutError("canceling statement due to statement timeout", phase="edge page")
        if query.source_class in self.page_failures:
            raise StoreError("page failed", phase="edge page")
        if self.peek_fails and limit == 1:
            raise StoreError("probe failed", phase="edge page")
        return super().select_edges_page(query, offset, limit)


@pytest.fixture
def scenario_store():
    """Nodes P1..P3; one experiment edge, one high-probability prediction."""
    return InMemoryGraphStore(
        nodes=[node("P1"), node("P2"), node("P3")],
        edges=[
            edge("P1", "P2", "experiment"),
            edge("P1", "P3", "prediction", prob=0.95),
        ],
    )


@pytest.fixture
def mixed_store():
    """Ten experiment and ten prediction edges over a ring of twelve proteins."""
    proteins = [f"P{i:02d}" for i in range(12)]
    nodes = [node(p, family=("TF" if i % 3 == 0 else "TM")) for i, p in enumerate(proteins)]
    edges = []
    for i in range(10):
        edges.append(edge(proteins[i], proteins[i + 1], "experiment"))
    for i in range(10):
        edges.append(
            edge(proteins[i], proteins[(i + 2) % 12], "prediction", prob=round(0.99 - i * 0.02, 2))
        )
    return InMemoryGraphStore(nodes=nodes, edges=edges)


@pytest.fixture
def hub_store():
    """Query hub Q1 with many neighbours; neighbours linked to each other."""
    nodes = [node("Q1", family="Receptor")] + [node(f"N{i}") for i in range(10)]
    edges = [edge("Q1", f"N{i}", "experiment") for i in range(10)]
    edges += [edge(f"N{i}", f"N{i + 1}", "prediction", prob=0.9) for i in range(9)]
    return InMemoryGraphStore(nodes=nodes, edges=edges)


class PagedNodeStore(InMemoryGraphStore):
    """In-memory store with a small node page that records each node page read."""

    node_page_size = 100

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.node_pages: list[tuple[int, int]] = []

    def select_nodes_page(self, node_ids, offset, limit, columns=None):
        self.node_pages.append((offset, limit))
        return super().select_nodes_page(node_ids, offset, limit, columns)
