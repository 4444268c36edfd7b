"""
CSV dataset files: loading, validation and node augmentation.

The offline ingestion exports two files whose headers are the store field
names (see :data:`memppi_atlas.schema.NODE_FIELDS` / ``EDGE_FIELDS``).
Validation reports the problems that break the store's assumptions:
duplicate edge ids and edges pointing at proteins with no node row.
"""

import csv
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .models import EdgeRow, NodeRow
from .schema import EDGE_FIELDS, NODE_FIELDS

SAMPLE_LIMIT = 5


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _parse_probability(value: str | None) -> float | None:
    value = _clean(value)
    if value is None or value.upper() == "NA":
        return None
    try:
        return float(value)
    except ValueError:
        return None


def read_nodes_csv(path: Path | str) -> list[NodeRow]:
    """Node rows from a nodes.csv export; rows without an id are skipped."""
    nodes: list[NodeRow] = []
    with open(path, newline="", encoding="utf-8") as f:
        for raw in csv.DictReader(f):
            protein = _clean(raw.get("protein"))
            if not protein:
                continue
            row: NodeRow = {name: _clean(raw.get(name)) for name in NODE_FIELDS}
            row["protein"] = protein
            nodes.append(row)
    return nodes


def read_edges_csv(path: Path | str) -> list[EdgeRow]:
    """Edge rows from an edges.csv export, kept as-is (duplicates included)."""
    edges: list[EdgeRow] = []
    with open(path, newline="", encoding="utf-8") as f:
        for raw in csv.DictReader(f):
            row: EdgeRow = {name: _clean(raw.get(name)) for name in EDGE_FIELDS}
            row["fusion_pred_prob"] = _parse_probability(raw.get("fusion_pred_prob"))
            edges.append(row)
    return edges


def write_csv(path: Path | str, rows: Iterable[dict[str, Any]], fields: tuple[str, ...]) -> int:
    """Write rows with a header of ``fields``; returns the row count."""
    count = 0
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=list(fields), extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            writer.writerow({k: ("" if row.get(k) is None else row.get(k)) for k in fields})
            count += 1
    return count


@dataclass
class EdgeValidationReport:
    """Problems found in an edges export relative to its nodes export."""

    data_rows: int = 0
    unique_edges: int = 0
    duplicate_edge_count: int = 0
    duplicate_samples: list[dict[str, Any]] = field(default_factory=list)
    missing_protein_count: int = 0
    missing_protein_samples: list[dict[str, Any]] = field(default_factory=list)
    invalid_rows: int = 0
    empty_edge_id_count: int = 0

    @property
    def ok(self) -> bool:
        return not (
            self.duplicate_edge_count
            or self.missing_protein_count
            or self.invalid_rows
            or self.empty_edge_id_count
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "dataRows": self.data_rows,
            "uniqueEdges": self.unique_edges,
            "duplicateEdgeCount": self.duplicate_edge_count,
            "duplicateSamples": self.duplicate_samples,
            "missingProteinCount": self.missing_protein_count,
            "missingProteinSamples": self.missing_protein_samples,
            "invalidRows": self.invalid_rows,
            "emptyEdgeIdCount": self.empty_edge_id_count,
            "ok": self.ok,
        }


def validate_edges(nodes: Iterable[NodeRow], edges: Iterable[EdgeRow]) -> EdgeValidationReport:
    """
    Check edge rows against the node id set.

    Counts duplicate edge ids, rows with no edge id, rows missing an
    endpoint, and edges referencing proteins without a node row. Keeps up
    to five samples of each problem kind for display.
    """
    node_ids = {n["protein"] for n in nodes}
    report = EdgeValidationReport()
    seen: set[str] = set()
    duplicates: set[str] = set()

    for edge in edges:
        report.data_rows += 1
        edge_id = edge.get("edge")
        p1, p2 = edge.get("protein1"), edge.get("protein2")

        if not p1 or not p2:
            report.invalid_rows += 1
            continue

        if not edge_id:
            report.empty_edge_id_count += 1
        elif edge_id in seen:
            duplicates.add(edge_id)
            if len(report.duplicate_samples) < SAMPLE_LIMIT:
                report.duplicate_samples.append({"edge": edge_id, "protein1": p1, "protein2": p2})
        else:
            seen.add(edge_id)

        missing = {"protein1": p1 not in node_ids, "protein2": p2 not in node_ids}
        if any(missing.values()):
            report.missing_protein_count += 1
            if len(report.missing_protein_samples) < SAMPLE_LIMIT:
                report.missing_protein_samples.append(
                    {"edge": edge_id, "protein1": p1, "protein2": p2, "missing": missing}
                )

    report.unique_edges = len(seen)
    report.duplicate_edge_count = len(duplicates)
    return report


def augment_nodes(nodes: Iterable[NodeRow], edges: Iterable[EdgeRow]) -> list[NodeRow]:
    """Minimal node rows for proteins referenced by edges but absent from nodes."""
    known = {n["protein"] for n in nodes}
    added: list[NodeRow] = []
    for edge in edges:
        for protein in (edge.get("protein1"), edge.get("protein2")):
            if protein and protein not in known:
                known.add(protein)
                added.append({name: None for name in NODE_FIELDS} | {"protein": protein})
    return added
