"""
Progressive Render Pipeline.

Feeds a retrieved slice into a render engine without blocking the event
loop: all nodes plus a seed prefix of edges go in first, one layout pass
positions them, and the remaining edges stream in fixed-size batches as
an asyncio task that yields between batches.

A new slice supersedes the one being streamed. Each load bumps a
generation counter; a streaming task checks it (and the engine's
destroyed flag) before every batch and stops as soon as it is stale.
"""

import asyncio
import contextlib
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..exceptions import LayoutError, RenderError
from ..transforms import is_edge_element
from .engine import Handler, RenderEngine

logger = logging.getLogger(__name__)

# === RENDER BUDGETS ===
SEED_EDGES = 20_000
LARGE_GRAPH_SEED_EDGES = 12_000
LARGE_GRAPH_THRESHOLD = 50_000  # edges
STREAM_BATCH_SIZE = 10_000
LARGE_GRAPH_BATCH_SIZE = 5_000
QUERY_NODE_Z = 1000
QUERY_EDGE_Z = 900
FIT_PADDING = 30

HIDE_TOOLTIP_EVENTS = ("mouseout", "drag", "viewport", "resize")


class PipelineState(Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    POPULATING = "populating"
    SETTLED = "settled"


@dataclass
class RenderProgress:
    nodes_loaded: bool = False
    edges_loaded: int = 0
    edges_total: int = 0

    @property
    def fraction(self) -> float:
        return min(1.0, self.edges_loaded / max(1, self.edges_total))


@dataclass
class TooltipState:
    """Hover card for a node."""

    visible: bool = False
    label: str = ""
    family: str | None = None
    gene_names: str | None = None
    expression: list[str] = field(default_factory=list)
    is_query: bool = False


class ProgressiveRenderPipeline:
    """
    Drives a render engine through Uninitialized -> Ready -> Populating -> Settled.

    The engine is acquired lazily from ``engine_factory``; using the
    pipeline as an async context manager guarantees handlers are unbound
    and the engine destroyed on every exit path.

    Usage:
        async with ProgressiveRenderPipeline(NetworkXRenderEngine) as pipeline:
            await pipeline.load(elements)
            await pipeline.wait_settled()
    """

    def __init__(
        self,
        engine_factory: Callable[[], RenderEngine],
        layout: str = "spring",
        fallback_layout: str = "circular",
        seed_edges: int = SEED_EDGES,
        large_graph_seed_edges: int = LARGE_GRAPH_SEED_EDGES,
        large_graph_threshold: int = LARGE_GRAPH_THRESHOLD,
        batch_size: int = STREAM_BATCH_SIZE,
        large_graph_batch_size: int = LARGE_GRAPH_BATCH_SIZE,
        padding: float = FIT_PADDING,
    ):
        self.engine_factory = engine_factory
        self.layout = layout
        self.fallback_layout = fallback_layout
        self.seed_edges = seed_edges
        self.large_graph_seed_edges = large_graph_seed_edges
        self.large_graph_threshold = large_graph_threshold
        self.batch_size = max(1, batch_size)
        self.large_graph_batch_size = max(1, large_graph_batch_size)
        self.padding = padding

        self.engine: RenderEngine | None = None
        self.state = PipelineState.UNINITIALIZED
        self.progress = RenderProgress()
        self.tooltip = TooltipState()

        self._generation = 0
        self._task: asyncio.Task | None = None
        self._bindings: list[tuple[str, Handler]] = []
        self._query_ids: list[str] = []

    # ─── Lifecycle ────────────────────────────────────────

    def acquire(self) -> RenderEngine:
        """
        Current engine, creating one if needed.

        Raises:
            RenderError: If the engine cannot be created. Nothing else is
                touched, so a later call may retry with the same data.
        """
        if self.engine is not None and not self.engine.destroyed:
            return self.engine
        try:
            engine = self.engine_factory()
        except Exception as exc:
            raise RenderError(f"Render engine failed to initialize: {exc}") from exc
        self.engine = engine
        self.state = PipelineState.READY
        return engine

    async def close(self) -> None:
        """Stop streaming, unbind handlers and destroy the engine."""
        self._generation += 1
        await self._cancel_stream()
        self._unbind()
        if self.engine is not None:
            self.engine.destroy()
        self.engine = None
        self.state = PipelineState.UNINITIALIZED

    async def __aenter__(self) -> "ProgressiveRenderPipeline":
        self.acquire()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def generation(self) -> int:
        return self._generation

    # ─── Loading ──────────────────────────────────────────

    async def load(self, elements: Iterable[dict[str, Any]]) -> None:
        """
        Render a new slice, superseding any slice still streaming.

        Returns once nodes and seed edges are laid out; the rest streams
        in the background (see :meth:`wait_settled`).
        """
        engine = self.acquire()
        self._generation += 1
        generation = self._generation
        await self._cancel_stream()
        if generation != self._generation:
            logger.debug("Load for generation %d superseded before drawing", generation)
            return
        self._unbind()

        elements = list(elements)
        nodes = [e for e in elements if not is_edge_element(e)]
        edges = [e for e in elements if is_edge_element(e)]
        large = len(edges) > self.large_graph_threshold
        seed = self.large_graph_seed_edges if large else self.seed_edges
        batch = self.large_graph_batch_size if large else self.batch_size

        self.state = PipelineState.POPULATING
        self.progress = RenderProgress(edges_total=len(edges))
        self._query_ids = [
            e["data"]["id"] for e in nodes if e.get("data", {}).get("isQuery")
        ]

        engine.clear()
        engine.add(nodes)
        self.progress.nodes_loaded = True
        seeded = min(seed, len(edges))
        engine.add(edges[:seeded])
        self.progress.edges_loaded = seeded
        self._apply_priority()
        self._hide_tooltip()
        self._bind(engine)

        self._run_layout(engine)
        engine.fit(self.padding)

        if seeded < len(edges):
            self._task = asyncio.create_task(self._stream(generation, edges, seeded, batch))
            self._task.add_done_callback(self._log_stream_failure)
        else:
            self.state = PipelineState.SETTLED

    async def wait_settled(self) -> None:
        """Wait for the current streaming task, if any, to finish."""
        task = self._task
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    def _run_layout(self, engine: RenderEngine) -> None:
        try:
            engine.run_layout(self.layout)
        except LayoutError as exc:
            logger.warning(
                "Layout %r failed (%s); falling back to %r", self.layout, exc, self.fallback_layout
            )
            engine.run_layout(self.fallback_layout)
        self._apply_priority()

    async def _stream(
        self,
        generation: int,
        edges: list[dict[str, Any]],
        cursor: int,
        batch_size: int,
    ) -> None:
        while cursor < len(edges):
            await asyncio.sleep(0)
            engine = self.engine
            if generation != self._generation or engine is None or engine.destroyed:
                logger.debug("Streaming for generation %d superseded at %d edges", generation, cursor)
                return
            end = min(cursor + batch_size, len(edges))
            engine.add(edges[cursor:end])
            cursor = end
            self.progress.edges_loaded = cursor
            self._apply_priority()

        if generation == self._generation:
            self.state = PipelineState.SETTLED

    @staticmethod
    def _log_stream_failure(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Edge streaming failed: %s", exc, exc_info=exc)

    async def _cancel_stream(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    # ─── Stacking and tooltip ─────────────────────────────

    def _apply_priority(self) -> None:
        engine = self.engine
        if engine is None or engine.destroyed or not self._query_ids:
            return
        engine.set_z_index(self._query_ids, QUERY_NODE_Z)
        engine.set_z_index(engine.connected_edges(self._query_ids), QUERY_EDGE_Z)

    def _bind(self, engine: RenderEngine) -> None:
        self._bindings = [("mouseover", self._show_tooltip)]
        self._bindings += [(event, self._on_hide) for event in HIDE_TOOLTIP_EVENTS]
        for event, handler in self._bindings:
            engine.on(event, handler)

    def _unbind(self) -> None:
        if self.engine is not None:
            for event, handler in self._bindings:
                self.engine.off(event, handler)
        self._bindings = []

    def _show_tooltip(self, payload: dict[str, Any]) -> None:
        engine = self.engine
        data = engine.node_data(payload.get("id", "")) if engine is not None else None
        if data is None:
            return
        expression = data.get("expressionTissue")
        self.tooltip = TooltipState(
            visible=True,
            label=data.get("label") or data.get("id") or "Protein",
            family=data.get("family") or None,
            gene_names=data.get("geneNames") or None,
            expression=list(expression) if isinstance(expression, list) else [],
            is_query=bool(data.get("isQuery")),
        )

    def _on_hide(self, payload: dict[str, Any]) -> None:
        self._hide_tooltip()

    def _hide_tooltip(self) -> None:
        if self.tooltip.visible:
            self.tooltip = TooltipState()
