"""
Filter specification: raw query parameters -> canonical, bounded request.

Parsing never fails on malformed values; anything unusable falls back to
the documented default. The only client error raised here is a missing
or empty query-id list for subgraph requests, which has no sensible
default.
"""

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Literal, Union

from .exceptions import BadInputError
from .models import SOURCE_CLASSES, SourceClass

RawValue = Union[str, Sequence[str], None]

# === REQUEST CAPS (Non-negotiable) ===
DEFAULT_MIN_PROBABILITY = 0.8
DEFAULT_MAX_EDGES = 50_000
HARD_MAX_EDGES = 100_000
SUBGRAPH_DEFAULT_MAX_EDGES = 5_000
SUBGRAPH_HARD_MAX_EDGES = 20_000
SUBGRAPH_DEFAULT_MAX_NODES = 1_000
SUBGRAPH_HARD_MAX_NODES = 5_000

DEFAULT_SOURCE_CLASSES: tuple[SourceClass, ...] = ("experiment",)
SUBGRAPH_DEFAULT_SOURCE_CLASSES: tuple[SourceClass, ...] = SOURCE_CLASSES

SOURCE_CLASS_ALIASES = {"experimental": "experiment"}

_TRUE_TOKENS = {"1", "true", "yes", "on"}
_FALSE_TOKENS = {"0", "false", "no", "off"}

ResponseFormat = Literal["json", "compact"]


@dataclass(frozen=True)
class FilterSpec:
    """Canonical, immutable request configuration."""

    min_probability: float = DEFAULT_MIN_PROBABILITY
    source_classes: tuple[SourceClass, ...] = DEFAULT_SOURCE_CLASSES
    """Requested classes, always in fetch priority order."""

    node_ids: tuple[str, ...] = ()
    """Upper-cased, de-duplicated ids in input order; empty = unrestricted."""

    max_edges: int = DEFAULT_MAX_EDGES
    max_nodes: int | None = None
    """Only set for subgraph requests."""

    include_edges: bool = True
    format: ResponseFormat = "json"

    @property
    def node_id_set(self) -> frozenset[str]:
        return frozenset(self.node_ids)


def _first(value: RawValue) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return value[0] if len(value) > 0 else None


def _split_all(value: RawValue) -> list[str]:
    if value is None:
        return []
    items = [value] if isinstance(value, str) else list(value)
    return [part.strip() for item in items for part in item.split(",")]


def parse_number(value: RawValue, default: float) -> float:
    """Parse a finite number, falling back to ``default``."""
    raw = _first(value)
    if raw is None:
        return default
    try:
        parsed = float(raw.strip())
    except ValueError:
        return default
    return parsed if math.isfinite(parsed) else default


def parse_boolean(value: RawValue, default: bool) -> bool:
    raw = _first(value)
    if raw is None:
        return default
    normalized = raw.strip().lower()
    if normalized in _TRUE_TOKENS:
        return True
    if normalized in _FALSE_TOKENS:
        return False
    return default


def parse_probability(value: RawValue, default: float = DEFAULT_MIN_PROBABILITY) -> float:
    """Probability threshold clamped into [0, 1]."""
    return min(max(parse_number(value, default), 0.0), 1.0)


def parse_source_classes(
    value: RawValue,
    prefer_experiment: bool = True,
    default: tuple[SourceClass, ...] = DEFAULT_SOURCE_CLASSES,
) -> tuple[SourceClass, ...]:
    """
    Parse a comma-separated (optionally repeated) source-class list.

    Unknown tokens are dropped and ``experimental`` is accepted as an alias.
    When nothing usable remains, a caller with no preference
    (``prefer_experiment=False``) gets every class, anyone else gets
    ``default``. The result is ordered by fetch priority.
    """
    requested = set()
    for token in _split_all(value):
        token = token.lower()
        token = SOURCE_CLASS_ALIASES.get(token, token)
        if token in SOURCE_CLASSES:
            requested.add(token)

    if not requested:
        return default if prefer_experiment else SOURCE_CLASSES

    return tuple(cls for cls in SOURCE_CLASSES if cls in requested)


def parse_node_ids(value: RawValue) -> tuple[str, ...]:
    """Comma-separated ids: trimmed, upper-cased, de-duplicated, order kept."""
    ids = [item.upper() for item in _split_all(value) if item]
    return tuple(dict.fromkeys(ids))


def clamp_cap(value: RawValue, default: int, hard_cap: int) -> int:
    """Size cap: non-positive or unusable input resets to ``default``."""
    parsed = parse_number(value, default)
    if parsed <= 0:
        parsed = default
    return min(max(1, math.floor(parsed)), hard_cap)


def parse_format(value: RawValue) -> ResponseFormat:
    raw = _first(value)
    if raw is not None and raw.strip().lower() in ("compact", "cyto"):
        return "compact"
    return "json"


def network_filters(params: Mapping[str, RawValue]) -> FilterSpec:
    """Build the filter specification for a network request."""
    prefer_experiment = parse_boolean(params.get("preferExperimental"), True)
    return FilterSpec(
        min_probability=parse_probability(params.get("minProb")),
        source_classes=parse_source_classes(params.get("positiveType"), prefer_experiment),
        node_ids=parse_node_ids(params.get("nodes")),
        max_edges=clamp_cap(params.get("maxEdges"), DEFAULT_MAX_EDGES, HARD_MAX_EDGES),
        include_edges=parse_boolean(params.get("edges"), True),
        format=parse_format(params.get("format")),
    )


def subgraph_filters(params: Mapping[str, RawValue]) -> FilterSpec:
    """
    Build the filter specification for a subgraph request.

    Raises:
        BadInputError: If ``proteins`` is missing, blank, or holds no ids
            once separators and whitespace are removed.
    """
    raw = params.get("proteins")
    values = [] if raw is None else [raw] if isinstance(raw, str) else list(raw)
    if not any(value.strip() for value in values):
        raise BadInputError("Missing required parameter: proteins")

    query_ids = parse_node_ids(raw)
    if not query_ids:
        raise BadInputError(
            "Invalid proteins parameter: must contain at least one protein ID"
        )

    prefer_experiment = parse_boolean(params.get("preferExperimental"), True)
    return FilterSpec(
        min_probability=parse_probability(params.get("minProb")),
        source_classes=parse_source_classes(
            params.get("positiveType"),
            prefer_experiment,
            default=SUBGRAPH_DEFAULT_SOURCE_CLASSES,
        ),
        node_ids=query_ids,
        max_edges=clamp_cap(
            params.get("maxEdges"), SUBGRAPH_DEFAULT_MAX_EDGES, SUBGRAPH_HARD_MAX_EDGES
        ),
        max_nodes=clamp_cap(
            params.get("maxNodes"), SUBGRAPH_DEFAULT_MAX_NODES, SUBGRAPH_HARD_MAX_NODES
        ),
        include_edges=True,
    )
