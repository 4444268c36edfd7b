"""
Routes: GET /network, GET /network/stats, GET /subgraph, GET /health.

Handlers are plain ``def`` so FastAPI runs the blocking store calls in its
threadpool. Query parameters are taken raw and normalized by
:mod:`memppi_atlas.filters`; malformed values fall back to defaults.
"""

import logging
from typing import Any

from fastapi import APIRouter, Request, Response

from ..exceptions import StoreError
from ..filters import RawValue, network_filters, subgraph_filters
from ..transforms import to_elements

logger = logging.getLogger(__name__)

router = APIRouter()


def _raw_params(request: Request) -> dict[str, RawValue]:
    """Every query parameter as the list of its values."""
    params = request.query_params
    return {key: params.getlist(key) for key in params.keys()}


# ─── GET /network ───────────────────────────────────────────


@router.get("/network")
def get_network(request: Request, response: Response) -> dict[str, Any]:
    """Bounded, priority-ordered slice of the interaction network."""
    spec = network_filters(_raw_params(request))
    result = request.app.state.engine.fetch_network(spec)
    meta = result.meta()

    logger.info(
        "GET /network: %d nodes, %d/%s edges, truncated=%s, %.2f ms",
        len(result.nodes),
        result.filtered_edge_count,
        result.available_edge_count,
        result.truncated.edges,
        result.timings.total_ms,
    )

    response.headers["Cache-Control"] = request.app.state.settings.cache_control
    if spec.format == "compact":
        return {"elements": to_elements(result.nodes, result.edges), "meta": meta}
    return {"nodes": result.nodes, "edges": result.edges, "meta": meta}


# ─── GET /network/stats ─────────────────────────────────────


@router.get("/network/stats")
def get_network_stats(request: Request) -> dict[str, Any]:
    """Whole-store counts and family distribution."""
    return request.app.state.stats.collect()


# ─── GET /subgraph ──────────────────────────────────────────


@router.get("/subgraph")
def get_subgraph(request: Request) -> dict[str, Any]:
    """Query proteins, their one-hop neighbours and the edges among them."""
    spec = subgraph_filters(_raw_params(request))
    result = request.app.state.expander.expand(spec)
    logger.info(
        "GET /subgraph %s: %d nodes, %d edges",
        ",".join(result.query),
        len(result.nodes),
        len(result.edges),
    )
    return result.to_dict()


# ─── GET /health ────────────────────────────────────────────


@router.get("/health")
def health(request: Request, response: Response) -> dict[str, Any]:
    """Store reachability; 503 when the store does not answer."""
    try:
        ok = request.app.state.store.ping()
    except StoreError as exc:
        logger.warning("Health check failed: %s", exc)
        ok = False
    if not ok:
        response.status_code = 503
    return {"ok": ok}
