"""
Subgraph expansion tests.
"""

import pytest

from memppi_atlas.exceptions import BadInputError, NotFoundError, StoreError
from memppi_atlas.filters import FilterSpec, subgraph_filters
from memppi_atlas.retrieval import SubgraphExpander
from memppi_atlas.store import InMemoryGraphStore

from conftest import FaultyStore, edge, node


def expand(store, **params):
    return SubgraphExpander(store).expand(subgraph_filters(params))


class TestNotFound:
    """Query ids with no data."""

    def test_nonexistent_protein(self, scenario_store):
        """Scenario D: unknown id -> not found."""
        with pytest.raises(NotFoundError, match="None of the queried proteins exist"):
            expand(scenario_store, proteins="NONEXISTENT")

    def test_isolated_protein(self):
        """Scenario E: present but edgeless -> one query node, no edges, no truncation."""
        store = InMemoryGraphStore(
            nodes=[node("P1"), node("P2"), node("P4")],
            edges=[edge("P1", "P2")],
        )
        result = expand(store, proteins="p4")
        body = result.to_dict()
        assert body["query"] == ["P4"]
        assert [n["id"] for n in body["nodes"]] == ["P4"]
        assert body["nodes"][0]["isQuery"] is True
        assert body["edges"] == []
        assert "truncated" not in body

    def test_empty_spec_rejected(self, scenario_store):
        """A spec without ids is a client error."""
        with pytest.raises(BadInputError):
            SubgraphExpander(scenario_store).expand(FilterSpec())


class TestExpansion:
    """One-hop neighbourhoods with backfill."""

    def test_neighbours_and_backfill(self, hub_store):
        """Hub edges first, then edges among the neighbours."""
        result = expand(hub_store, proteins="Q1")
        ids = [e["id"] for e in result.edges]
        assert ids[:10] == [f"Q1_N{i}" for i in range(10)]
        assert set(ids[10:]) == {f"N{i}_N{i + 1}" for i in range(9)}
        assert len(ids) == len(set(ids))
        assert result.truncated.any is False

    def test_case_normalized(self, hub_store):
        """Lower- and upper-case spellings give the same subgraph."""
        lower = expand(hub_store, proteins="q1")
        upper = expand(hub_store, proteins="Q1")
        assert lower.query == upper.query == ["Q1"]
        assert lower.nodes == upper.nodes
        assert lower.edges == upper.edges
        assert lower.to_dict() == upper.to_dict()
        query_nodes = [n["id"] for n in lower.nodes if n["isQuery"]]
        assert query_nodes == ["Q1"]

    def test_every_edge_endpoint_present(self, hub_store):
        """Node set covers every returned edge."""
        result = expand(hub_store, proteins="Q1,N5")
        ids = {n["id"] for n in result.nodes}
        for e in result.edges:
            assert e["source"] in ids and e["target"] in ids

    def test_prediction_threshold_applies(self, hub_store):
        """Backfilled predictions respect minProb."""
        result = expand(hub_store, proteins="Q1", minProb="0.95")
        assert all(e["positiveType"] == "experiment" for e in result.edges)


class TestCaps:
    """maxNodes / maxEdges bounds."""

    def test_query_nodes_never_dropped(self, hub_store):
        """Node cap keeps every query id and trims neighbours."""
        result = expand(hub_store, proteins="Q1", maxNodes="3")
        ids = {n["id"] for n in result.nodes}
        assert ids == {"Q1", "N0", "N1"}
        assert {e["id"] for e in result.edges} == {"Q1_N0", "Q1_N1", "N0_N1"}
        assert result.to_dict()["truncated"] == {"nodes": True, "edges": False}

    def test_node_cap_smaller_than_query(self, hub_store):
        """Query ids survive even when they alone exceed maxNodes."""
        result = expand(hub_store, proteins="Q1,N3", maxNodes="1")
        ids = {n["id"] for n in result.nodes}
        assert {"Q1", "N3"} <= ids
        assert result.truncated.nodes is True

    def test_edge_cap(self, hub_store):
        """Edge cap stops collection and flags truncation."""
        result = expand(hub_store, proteins="Q1", maxEdges="2")
        assert [e["id"] for e in result.edges] == ["Q1_N0", "Q1_N1"]
        assert result.to_dict()["truncated"] == {"nodes": False, "edges": True}

    def test_budget_filled_exactly(self, hub_store):
        """A neighbourhood with exactly maxEdges edges is not truncated."""
        result = expand(hub_store, proteins="Q1", maxEdges="19")
        assert len(result.edges) == 19
        assert "truncated" not in result.to_dict()

    def test_one_edge_short(self, hub_store):
        """One qualifying edge over the budget is reported."""
        result = expand(hub_store, proteins="Q1", maxEdges="18")
        assert len(result.edges) == 18
        assert result.to_dict()["truncated"] == {"nodes": False, "edges": True}

    def test_neighbour_edges_left_out(self, hub_store):
        """Hub edges filling the budget still leave neighbour edges out."""
        result = expand(hub_store, proteins="Q1", maxEdges="10")
        assert [e["id"] for e in result.edges] == [f"Q1_N{i}" for i in range(10)]
        assert result.truncated.edges is True

    def test_failed_check_assumes_truncated(self, hub_store):
        """A failing truncation check reports truncation."""
        store = FaultyStore(nodes=hub_store.nodes, edges=hub_store.edges, peek_fails=True)
        result = expand(store, proteins="Q1", maxEdges="10")
        assert len(result.edges) == 10
        assert result.truncated.edges is True


class TestFailures:
    """Store failures during expansion."""

    def test_primary_failure_raises(self, hub_store):
        """Failure of the first class fails the request."""
        store = FaultyStore(nodes=hub_store.nodes, edges=hub_store.edges, page_failures={"experiment"})
        with pytest.raises(StoreError):
            expand(store, proteins="Q1")

    def test_backfill_failure_keeps_partial(self, hub_store):
        """A failing backfill keeps the edges already collected."""
        store = FaultyStore(nodes=hub_store.nodes, edges=hub_store.edges, page_failures={"prediction"})
        result = expand(store, proteins="Q1")
        assert [e["id"] for e in result.edges] == [f"Q1_N{i}" for i in range(10)]
