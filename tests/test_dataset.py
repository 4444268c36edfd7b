"""
CSV dataset loading, validation and augmentation tests.
"""

import pytest

from memppi_atlas.config import AtlasSettings
from memppi_atlas.dataset import (
    augment_nodes,
    read_edges_csv,
    read_nodes_csv,
    validate_edges,
    write_csv,
)
from memppi_atlas.schema import EDGE_FIELDS, NODE_FIELDS
from memppi_atlas.store import InMemoryGraphStore, open_store

from conftest import edge, node

NODES_CSV = (
    "protein,entry_name,description,gene_names,family,expression_tissue\n"
    "P1,A_HUMAN,Alpha,GA,TM,brain\\liver\n"
    "P2,,Beta,GB,,NA\n"
    ",X_HUMAN,no id,,,\n"
)
EDGES_CSV = (
    "edge,protein1,protein2,fusion_pred_prob,enriched_tissue,tissue_enriched_confidence,positive_type\n"
    "P1_P2,P1,P2,NA,NA,NA,experimental\n"
    "P1_P2,P1,P2,0.9,brain,high,prediction\n"
    "P1_P9,P1,P9,0.85,NA,NA,prediction\n"
)


@pytest.fixture
def data_dir(tmp_path):
    (tmp_path / "nodes.csv").write_text(NODES_CSV)
    (tmp_path / "edges.csv").write_text(EDGES_CSV)
    return tmp_path


class TestReading:
    """CSV parsing."""

    def test_nodes(self, data_dir):
        """Blank fields become None; rows without an id are skipped."""
        nodes = read_nodes_csv(data_dir / "nodes.csv")
        assert [n["protein"] for n in nodes] == ["P1", "P2"]
        assert nodes[1]["entry_name"] is None
        assert nodes[1]["expression_tissue"] == "NA"

    def test_edges(self, data_dir):
        """Probabilities are parsed; 'NA' probability is None; duplicates kept."""
        edges = read_edges_csv(data_dir / "edges.csv")
        assert len(edges) == 3
        assert edges[0]["fusion_pred_prob"] is None
        assert edges[1]["fusion_pred_prob"] == 0.9

    def test_write_then_read(self, tmp_path):
        """Written files load back with the same ids."""
        path = tmp_path / "edges.csv"
        count = write_csv(path, [edge("P1", "P2", prob=0.5)], EDGE_FIELDS)
        assert count == 1
        assert read_edges_csv(path)[0]["fusion_pred_prob"] == 0.5

    def test_store_from_csv(self, data_dir):
        """The in-memory store loads a directory export."""
        store = InMemoryGraphStore.from_csv(data_dir)
        assert store.count_nodes() == 2
        assert store.count_edges() == 3

    def test_store_from_csv_needs_paths(self):
        """Without a directory both paths are required."""
        with pytest.raises(ValueError):
            InMemoryGraphStore.from_csv(nodes_path="nodes.csv")

    def test_open_store_csv(self, data_dir):
        """Settings with csv_dir open an in-memory store."""
        store = open_store(AtlasSettings(csv_dir=str(data_dir)))
        assert isinstance(store, InMemoryGraphStore)
        assert store.count_edges() == 3


class TestValidation:
    """Edge export checks."""

    def test_report(self, data_dir):
        """Duplicates and dangling endpoints are counted with samples."""
        report = validate_edges(read_nodes_csv(data_dir / "nodes.csv"), read_edges_csv(data_dir / "edges.csv"))
        assert report.data_rows == 3
        assert report.unique_edges == 2
        assert report.duplicate_edge_count == 1
        assert report.duplicate_samples[0]["edge"] == "P1_P2"
        assert report.missing_protein_count == 1
        assert report.missing_protein_samples[0]["missing"] == {"protein1": False, "protein2": True}
        assert report.ok is False

    def test_clean_export(self):
        """A consistent export is ok."""
        report = validate_edges([node("P1"), node("P2")], [edge("P1", "P2")])
        assert report.ok is True
        assert report.to_dict()["ok"] is True

    def test_invalid_and_unnamed_rows(self):
        """Rows without endpoints are invalid; rows without an id are counted."""
        report = validate_edges(
            [node("P1"), node("P2")],
            [edge("P1", None), dict(edge("P1", "P2"), edge="")],
        )
        assert report.invalid_rows == 1
        assert report.empty_edge_id_count == 1
        assert report.unique_edges == 0

    def test_samples_bounded(self):
        """At most five samples per problem kind."""
        edges = [edge("P1", f"X{i}") for i in range(20)]
        report = validate_edges([node("P1")], edges)
        assert report.missing_protein_count == 20
        assert len(report.missing_protein_samples) == 5

    def test_camel_case_keys(self):
        """Report dict uses camelCase keys."""
        keys = set(validate_edges([], []).to_dict())
        assert {"dataRows", "duplicateEdgeCount", "missingProteinCount", "emptyEdgeIdCount"} <= keys


class TestAugmentation:
    """Minimal rows for dangling endpoints."""

    def test_adds_missing_once(self):
        """Each missing protein is added once with empty fields."""
        added = augment_nodes(
            [node("P1")],
            [edge("P1", "P9"), edge("P9", "P8"), edge("P8", "P1")],
        )
        assert [n["protein"] for n in added] == ["P9", "P8"]
        assert set(added[0]) == set(NODE_FIELDS)
        assert added[0]["family"] is None

    def test_nothing_missing(self):
        assert augment_nodes([node("P1"), node("P2")], [edge("P1", "P2")]) == []
