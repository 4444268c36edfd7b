"""
Render engines.

The progressive pipeline drives an engine through a small surface: add
elements, clear, run a layout, fit the viewport, stack elements by
z-index, and publish/subscribe UI events. ``NetworkXRenderEngine`` is a
headless engine that keeps the graph in networkx and computes node
positions with networkx layouts.
"""

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Callable, Iterable
from typing import Any

import networkx as nx

from ..exceptions import LayoutError, RenderError
from ..transforms import is_edge_element

logger = logging.getLogger(__name__)

Handler = Callable[[dict[str, Any]], None]
Position = tuple[float, float]
Viewport = tuple[float, float, float, float]

EVENTS = ("mouseover", "mouseout", "drag", "viewport", "resize")


class RenderEngine(ABC):
    """
    Interactive graph widget contract.

    Event subscription is implemented here; subclasses supply the element
    and layout operations.
    """

    def __init__(self):
        self._handlers: dict[str, list[Handler]] = defaultdict(list)
        self._destroyed = False

    # ─── Elements ─────────────────────────────────────────

    @abstractmethod
    def add(self, elements: Iterable[dict[str, Any]]) -> None:
        """Insert node and edge elements (``{"group", "data"}`` dicts)."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every element."""

    @abstractmethod
    def node_data(self, node_id: str) -> dict[str, Any] | None:
        """Data dict of a rendered node, or None."""

    @abstractmethod
    def connected_edges(self, node_ids: Iterable[str]) -> list[str]:
        """Ids of rendered edges touching any of ``node_ids``."""

    @abstractmethod
    def edge_count(self) -> int:
        """Number of rendered edges."""

    # ─── Layout / viewport ────────────────────────────────

    @abstractmethod
    def run_layout(self, name: str, node_ids: Iterable[str] | None = None) -> dict[str, Position]:
        """
        Position nodes synchronously.

        Raises:
            LayoutError: If the layout is unknown or fails
        """

    @abstractmethod
    def fit(self, padding: float = 0) -> Viewport:
        """Fit the viewport around all positioned nodes."""

    @abstractmethod
    def set_z_index(self, element_ids: Iterable[str], z: int) -> None:
        """Stacking layer for the given elements."""

    # ─── Events ───────────────────────────────────────────

    def on(self, event: str, handler: Handler) -> None:
        self._check_alive()
        self._handlers[event].append(handler)

    def off(self, event: str, handler: Handler | None = None) -> None:
        """Unbind one handler, or every handler for ``event``."""
        if handler is None:
            self._handlers.pop(event, None)
            return
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event: str, payload: dict[str, Any] | None = None) -> None:
        if self._destroyed:
            return
        for handler in list(self._handlers.get(event, [])):
            handler(payload or {})

    def handler_count(self, event: str | None = None) -> int:
        if event is not None:
            return len(self._handlers.get(event, []))
        return sum(len(h) for h in self._handlers.values())

    # ─── Lifecycle ────────────────────────────────────────

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def destroy(self) -> None:
        """Drop all elements and handlers; the engine is unusable afterwards."""
        if self._destroyed:
            return
        self.clear()
        self._handlers.clear()
        self._destroyed = True

    def _check_alive(self) -> None:
        if self._destroyed:
            raise RenderError("Render engine has been destroyed")


class NetworkXRenderEngine(RenderEngine):
    """
    Headless render engine backed by a networkx multigraph.

    Node positions only change in :meth:`run_layout`; edges added later
    attach to wherever their endpoints already are.

    Usage:
        engine = NetworkXRenderEngine(seed=7)
        engine.add(to_elements(nodes, edges))
        engine.run_layout("spring")
        engine.fit(30)
    """

    LAYOUTS = ("spring", "circular")

    def __init__(self, seed: int | None = 42, scale: float = 500.0, iterations: int = 50):
        super().__init__()
        self.seed = seed
        self.scale = scale
        self.iterations = iterations
        self.graph = nx.MultiGraph()
        self.positions: dict[str, Position] = {}
        self.z_index: dict[str, int] = {}
        self.viewport: Viewport = (0.0, 0.0, 0.0, 0.0)
        self._edge_endpoints: dict[str, tuple[str, str]] = {}

    def add(self, elements: Iterable[dict[str, Any]]) -> None:
        self._check_alive()
        for element in elements:
            data = element.get("data", element)
            if is_edge_element(element):
                source, target = data["source"], data["target"]
                if source not in self.graph or target not in self.graph:
                    raise RenderError(f"Edge {data['id']} references a node that is not rendered")
                self.graph.add_edge(source, target, key=data["id"], **data)
                self._edge_endpoints[data["id"]] = (source, target)
            else:
                self.graph.add_node(data["id"], **data)

    def clear(self) -> None:
        self.graph.clear()
        self.positions.clear()
        self.z_index.clear()
        self._edge_endpoints.clear()

    def node_data(self, node_id: str) -> dict[str, Any] | None:
        if node_id not in self.graph:
            return None
        return dict(self.graph.nodes[node_id])

    def connected_edges(self, node_ids: Iterable[str]) -> list[str]:
        edge_ids: list[str] = []
        for node_id in node_ids:
            if node_id in self.graph:
                edge_ids.extend(key for _, _, key in self.graph.edges(node_id, keys=True))
        return list(dict.fromkeys(edge_ids))

    def edge_count(self) -> int:
        return self.graph.number_of_edges()

    def run_layout(self, name: str, node_ids: Iterable[str] | None = None) -> dict[str, Position]:
        self._check_alive()
        if name not in self.LAYOUTS:
            raise LayoutError(f"Unknown layout: {name}")

        graph = nx.Graph(self.graph)
        if node_ids is not None:
            graph = graph.subgraph(node_ids).copy()
        if graph.number_of_nodes() == 0:
            return {}

        try:
            if name == "spring":
                pos = nx.spring_layout(
                    graph, seed=self.seed, scale=self.scale, iterations=self.iterations
                )
            else:
                pos = nx.circular_layout(graph, scale=self.scale)
        except Exception as exc:
            raise LayoutError(f"{name} layout failed: {exc}") from exc

        placed = {node: (float(xy[0]), float(xy[1])) for node, xy in pos.items()}
        self.positions.update(placed)
        logger.debug("%s layout placed %d nodes", name, len(placed))
        return placed

    def fit(self, padding: float = 0) -> Viewport:
        self._check_alive()
        if not self.positions:
            self.viewport = (-padding, -padding, padding, padding)
        else:
            xs = [p[0] for p in self.positions.values()]
            ys = [p[1] for p in self.positions.values()]
            self.viewport = (
                min(xs) - padding,
                min(ys) - padding,
                max(xs) + padding,
                max(ys) + padding,
            )
        self.emit("viewport", {"viewport": self.viewport})
        return self.viewport

    def pan(self, dx: float, dy: float) -> Viewport:
        x0, y0, x1, y1 = self.viewport
        self.viewport = (x0 + dx, y0 + dy, x1 + dx, y1 + dy)
        self.emit("viewport", {"viewport": self.viewport})
        return self.viewport

    def set_z_index(self, element_ids: Iterable[str], z: int) -> None:
        for element_id in element_ids:
            self.z_index[element_id] = z

    def snapshot(self) -> dict[str, Any]:
        """Positions, stacking and viewport as plain JSON-ready data."""
        return {
            "positions": {k: [x, y] for k, (x, y) in self.positions.items()},
            "zIndex": dict(self.z_index),
            "viewport": list(self.viewport),
            "nodes": self.graph.number_of_nodes(),
            "edges": self.graph.number_of_edges(),
        }
