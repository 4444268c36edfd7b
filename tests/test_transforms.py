"""
Response shaping tests: rows -> client dicts -> compact elements.
"""

from memppi_atlas.transforms import (
    EDGE_COLORS,
    FAMILY_COLORS,
    QUERY_NODE_COLOR,
    close_over_edges,
    edge_to_response,
    is_edge_element,
    node_to_response,
    parse_tissues,
    to_elements,
)

from conftest import edge, node


class TestNodes:
    """Node rows to responses."""

    def test_full_row(self):
        response = node_to_response(node("P1", family="Kinase"))
        assert response == {
            "id": "P1",
            "label": "P1_HUMAN",
            "description": "Protein P1",
            "geneNames": "GP1",
            "family": "Kinase",
            "expressionTissue": ["brain", "liver"],
        }

    def test_sparse_row(self):
        """Missing fields get defaults; label falls back to the id."""
        response = node_to_response({"protein": "P9", "family": None, "expression_tissue": "NA"})
        assert response["label"] == "P9"
        assert response["family"] == "Other"
        assert response["expressionTissue"] == []
        assert "isQuery" not in response

    def test_query_flag(self):
        assert node_to_response(node("P1"), is_query=False)["isQuery"] is False

    def test_parse_tissues(self):
        assert parse_tissues("brain\\ liver \\") == ["brain", "liver"]
        assert parse_tissues(None) == []


class TestEdges:
    """Edge rows to responses."""

    def test_prediction(self):
        response = edge_to_response(edge("P1", "P2", "prediction", prob=0.93, enriched_tissue="brain"))
        assert response["fusionPredProb"] == 0.93
        assert response["enrichedTissue"] == "brain"
        assert response["tissueEnrichedConfidence"] is None
        assert response["positiveType"] == "prediction"

    def test_experiment_without_probability(self):
        """Null probability reads as 0.0 and the alias is canonicalized."""
        response = edge_to_response(edge("P1", "P2", "experimental"))
        assert response["fusionPredProb"] == 0.0
        assert response["positiveType"] == "experiment"

    def test_unknown_type_kept(self):
        assert edge_to_response(edge("P1", "P2", "curated"))["positiveType"] == "curated"


class TestClosure:
    """Synthesized nodes for dangling endpoints."""

    def test_adds_each_endpoint_once(self):
        nodes = [node_to_response(node("P1"))]
        edges = [edge_to_response(edge("P1", "P9")), edge_to_response(edge("P9", "P8"))]
        close_over_edges(nodes, edges)
        assert [n["id"] for n in nodes] == ["P1", "P9", "P8"]

    def test_query_flags_on_stubs(self):
        nodes = []
        close_over_edges(nodes, [edge_to_response(edge("Q1", "P9"))], query_ids=frozenset({"Q1"}))
        assert {n["id"]: n["isQuery"] for n in nodes} == {"Q1": True, "P9": False}


class TestElements:
    """Compact element format."""

    def test_colors_and_groups(self):
        nodes = [
            node_to_response(node("Q1", family="TF"), is_query=True),
            node_to_response(node("P2", family="Kinase")),
            node_to_response(node("P3", family="Mystery")),
        ]
        edges = [
            edge_to_response(edge("Q1", "P2", "experiment")),
            edge_to_response(edge("Q1", "P3", "prediction", prob=0.9, enriched_tissue="liver")),
            edge_to_response(edge("P2", "P3", "prediction", prob=0.9)),
        ]
        elements = to_elements(nodes, edges)
        assert [e["group"] for e in elements] == ["nodes"] * 3 + ["edges"] * 3
        colors = [e["data"]["color"] for e in elements]
        assert colors == [
            QUERY_NODE_COLOR,
            FAMILY_COLORS["Kinase"],
            FAMILY_COLORS["Other"],
            EDGE_COLORS["experiment"],
            EDGE_COLORS["enriched"],
            EDGE_COLORS["prediction"],
        ]

    def test_tooltip_text(self):
        element = to_elements([node_to_response(node("P1", family="TM"))], [])[0]
        assert element["data"]["tooltip"] == "P1_HUMAN · GP1 · TM"

    def test_is_edge_element(self):
        assert is_edge_element({"group": "edges", "data": {}}) is True
        assert is_edge_element({"group": "nodes", "data": {"source": "a", "target": "b"}}) is False
        assert is_edge_element({"data": {"id": "e", "source": "a", "target": "b"}}) is True
        assert is_edge_element({"data": {"id": "n"}}) is False
