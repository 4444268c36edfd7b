"""
Progressive rendering of retrieved slices.

- engine: render engine contract and the networkx-backed engine
- pipeline: seed + layout + streamed batches with supersession
"""

from .engine import NetworkXRenderEngine, RenderEngine
from .pipeline import (
    FIT_PADDING,
    LARGE_GRAPH_BATCH_SIZE,
    LARGE_GRAPH_SEED_EDGES,
    LARGE_GRAPH_THRESHOLD,
    QUERY_EDGE_Z,
    QUERY_NODE_Z,
    SEED_EDGES,
    STREAM_BATCH_SIZE,
    PipelineState,
    ProgressiveRenderPipeline,
    RenderProgress,
    TooltipState,
)

__all__ = [
    # Constants
    "FIT_PADDING",
    "LARGE_GRAPH_BATCH_SIZE",
    "LARGE_GRAPH_SEED_EDGES",
    "LARGE_GRAPH_THRESHOLD",
    "QUERY_EDGE_Z",
    "QUERY_NODE_Z",
    "SEED_EDGES",
    "STREAM_BATCH_SIZE",
    # Engines
    "NetworkXRenderEngine",
    "RenderEngine",
    # Pipeline
    "PipelineState",
    "ProgressiveRenderPipeline",
    "RenderProgress",
    "TooltipState",
]
