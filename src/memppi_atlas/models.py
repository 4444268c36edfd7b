"""
Row, response and result types.

Store rows use the store vocabulary (``protein``, ``protein1``,
``fusion_pred_prob`` ...) whatever the physical column names are; the
adapter aliases columns into this shape. Response dicts use the camelCase
vocabulary of the HTTP surface.
"""

from dataclasses import dataclass, field
from typing import Any, Literal, TypedDict

SourceClass = Literal["experiment", "prediction"]

# Fixed fetch priority: experimentally observed edges first.
SOURCE_CLASSES: tuple[SourceClass, ...] = ("experiment", "prediction")


# === STORE ROWS ===


class NodeRow(TypedDict, total=False):
    """A row of the nodes table."""

    protein: str
    """Accession (primary key)."""

    entry_name: str | None
    description: str | None
    gene_names: str | None
    """Space-delimited gene symbols."""

    family: str | None
    expression_tissue: str | None
    """Backslash-delimited tissue list, or 'NA'."""


class EdgeRow(TypedDict, total=False):
    """A row of the edges table."""

    edge: str
    """Edge id, conventionally ``protein1_protein2``."""

    protein1: str
    protein2: str
    fusion_pred_prob: float | None
    enriched_tissue: str | None
    tissue_enriched_confidence: str | None
    positive_type: str | None
    """'experiment' (or 'experimental') or 'prediction'."""


# === RESPONSES ===


class NodeResponse(TypedDict, total=False):
    """Node as returned to clients."""

    id: str
    label: str
    description: str
    geneNames: str
    family: str
    expressionTissue: list[str]
    isQuery: bool


class EdgeResponse(TypedDict):
    """Edge as returned to clients."""

    id: str
    source: str
    target: str
    fusionPredProb: float
    enrichedTissue: str | None
    tissueEnrichedConfidence: str | None
    positiveType: str


class NetworkStats(TypedDict):
    """Aggregate statistics over the whole store."""

    totalNodes: int
    totalEdges: int
    familyCounts: dict[str, int]
    enrichedEdgeCount: int
    predictedEdgeCount: int


# === RESULTS ===


@dataclass
class Truncation:
    """Whether more qualifying data existed than the response includes."""

    nodes: bool = False
    edges: bool = False

    @property
    def any(self) -> bool:
        return self.nodes or self.edges

    def to_dict(self) -> dict[str, bool]:
        return {"nodes": self.nodes, "edges": self.edges}


@dataclass
class Timings:
    """Per-phase elapsed time in milliseconds."""

    fetch_nodes_ms: float = 0.0
    fetch_edges_ms: float | None = None
    transform_ms: float = 0.0
    total_ms: float = 0.0

    def to_dict(self) -> dict[str, float]:
        out = {
            "fetchNodesMs": _round_ms(self.fetch_nodes_ms),
            "transformMs": _round_ms(self.transform_ms),
            "totalMs": _round_ms(self.total_ms),
        }
        if self.fetch_edges_ms is not None:
            out["fetchEdgesMs"] = _round_ms(self.fetch_edges_ms)
        return out


def _round_ms(value: float) -> float:
    return round(value, 2)


@dataclass
class RetrievalResult:
    """One bounded network slice."""

    nodes: list[NodeResponse]
    edges: list[EdgeResponse]
    total_nodes_in_store: int
    total_edges_in_store: int
    filtered_edge_count: int
    available_edge_count: int | None
    """Upstream filtered count summed over requested classes (upper bound)."""

    truncated: Truncation = field(default_factory=Truncation)
    timings: Timings = field(default_factory=Timings)

    def meta(self) -> dict[str, Any]:
        return {
            "totalNodes": self.total_nodes_in_store,
            "totalEdges": self.total_edges_in_store,
            "filteredEdges": self.filtered_edge_count,
            "availableEdges": self.available_edge_count,
            "truncated": self.truncated.to_dict(),
            "timings": self.timings.to_dict(),
        }


@dataclass
class SubgraphResult:
    """Query nodes, their one-hop neighbourhood and the edges among them."""

    query: list[str]
    nodes: list[NodeResponse]
    edges: list[EdgeResponse]
    truncated: Truncation = field(default_factory=Truncation)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "query": self.query,
            "nodes": self.nodes,
            "edges": self.edges,
        }
        if self.truncated.any:
            out["truncated"] = self.truncated.to_dict()
        return out
