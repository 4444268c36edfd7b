"""
Response shaping: store rows -> client dicts and compact render elements.
"""

import logging
from collections.abc import Iterable
from typing import Any

from .models import EdgeResponse, EdgeRow, NodeResponse, NodeRow
from .schema import StoreSchema

logger = logging.getLogger(__name__)

DEFAULT_FAMILY = "Other"
MISSING = "NA"

FAMILY_COLORS: dict[str, str] = {
    "TM": "#93B4E5",
    "TF": "#A7C5EB",
    "Kinase": "#CBD5E1",
    "Receptor": "#B6C2D9",
    "Other": "#D1D5DB",
}
QUERY_NODE_COLOR = "#1E3A8A"
EDGE_COLORS: dict[str, str] = {
    "experiment": "#4C6FB9",
    "enriched": "#7DA6E8",
    "prediction": "#C9DBF8",
}
TOOLTIP_SEPARATOR = " · "

_DEFAULT_SCHEMA = StoreSchema()


def _na_to_none(value: str | None) -> str | None:
    return None if value == MISSING else value


def parse_tissues(value: str | None) -> list[str]:
    """Backslash-delimited tissue list; missing or 'NA' is empty."""
    if not value or value == MISSING:
        return []
    return [t.strip() for t in value.split("\\") if t.strip()]


def node_to_response(row: NodeRow, is_query: bool | None = None) -> NodeResponse:
    node: NodeResponse = {
        "id": row["protein"],
        "label": row.get("entry_name") or row["protein"],
        "description": row.get("description") or "",
        "geneNames": row.get("gene_names") or "",
        "family": row.get("family") or DEFAULT_FAMILY,
        "expressionTissue": parse_tissues(row.get("expression_tissue")),
    }
    if is_query is not None:
        node["isQuery"] = is_query
    return node


def edge_to_response(row: EdgeRow, schema: StoreSchema | None = None) -> EdgeResponse:
    schema = schema or _DEFAULT_SCHEMA
    stored_type = row.get("positive_type")
    prob = row.get("fusion_pred_prob")
    return {
        "id": row["edge"],
        "source": row["protein1"],
        "target": row["protein2"],
        "fusionPredProb": float(prob) if prob is not None else 0.0,
        "enrichedTissue": _na_to_none(row.get("enriched_tissue")),
        "tissueEnrichedConfidence": _na_to_none(row.get("tissue_enriched_confidence")),
        "positiveType": schema.class_of(stored_type) or (stored_type or ""),
    }


def stub_node(protein: str, is_query: bool | None = None) -> NodeResponse:
    """Minimal node for an edge endpoint that has no node row."""
    return node_to_response({"protein": protein}, is_query=is_query)


def close_over_edges(
    nodes: list[NodeResponse],
    edges: Iterable[EdgeResponse],
    query_ids: frozenset[str] | None = None,
) -> list[NodeResponse]:
    """
    Append stub nodes for edge endpoints missing from ``nodes``.

    Returns the same list (extended in place) so every edge endpoint has a
    node in the response.
    """
    known = {n["id"] for n in nodes}
    added = 0
    for edge in edges:
        for endpoint in (edge["source"], edge["target"]):
            if endpoint not in known:
                known.add(endpoint)
                is_query = None if query_ids is None else endpoint in query_ids
                nodes.append(stub_node(endpoint, is_query=is_query))
                added += 1
    if added:
        logger.warning("Synthesized %d node(s) for edge endpoints without node rows", added)
    return nodes


# ─── Compact elements ─────────────────────────────────────


def family_color(family: str | None) -> str:
    return FAMILY_COLORS.get(family or DEFAULT_FAMILY, FAMILY_COLORS[DEFAULT_FAMILY])


def edge_color(edge: EdgeResponse) -> str:
    if edge["positiveType"] == "experiment":
        return EDGE_COLORS["experiment"]
    if edge["enrichedTissue"]:
        return EDGE_COLORS["enriched"]
    return EDGE_COLORS["prediction"]


def node_element(node: NodeResponse) -> dict[str, Any]:
    is_query = bool(node.get("isQuery"))
    tooltip = TOOLTIP_SEPARATOR.join(
        part for part in (node["label"], node.get("geneNames"), node.get("family")) if part
    )
    return {
        "group": "nodes",
        "data": {
            "id": node["id"],
            "label": node["label"],
            "family": node.get("family") or DEFAULT_FAMILY,
            "color": QUERY_NODE_COLOR if is_query else family_color(node.get("family")),
            "isQuery": is_query,
            "description": node.get("description", ""),
            "geneNames": node.get("geneNames", ""),
            "expressionTissue": node.get("expressionTissue", []),
            "tooltip": tooltip,
        },
    }


def edge_element(edge: EdgeResponse) -> dict[str, Any]:
    return {
        "group": "edges",
        "data": {
            "id": edge["id"],
            "source": edge["source"],
            "target": edge["target"],
            "fusionPredProb": edge["fusionPredProb"],
            "enrichedTissue": edge["enrichedTissue"],
            "positiveType": edge["positiveType"],
            "color": edge_color(edge),
        },
    }


def to_elements(nodes: Iterable[NodeResponse], edges: Iterable[EdgeResponse]) -> list[dict[str, Any]]:
    """Flat element list, nodes first, in the compact response format."""
    return [node_element(n) for n in nodes] + [edge_element(e) for e in edges]


def is_edge_element(element: dict[str, Any]) -> bool:
    if "group" in element:
        return element["group"] == "edges"
    data = element.get("data", element)
    return "source" in data and "target" in data
