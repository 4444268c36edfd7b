"""
Typed error hierarchy.

Every failure a caller can observe carries a stable ``kind`` so the HTTP
layer (and any other consumer) can tell bad input, missing data, an
unreachable store and internal faults apart without inspecting messages.
"""

from dataclasses import dataclass


class AtlasError(Exception):
    """Base exception for all MemPPI Atlas errors."""

    kind: str = "internal"

    def __init__(self, message: str, kind: str | None = None):
        self.message = message
        if kind is not None:
            self.kind = kind
        super().__init__(message)


class BadInputError(AtlasError):
    """Malformed or missing required request parameter."""

    kind = "bad_input"


class NotFoundError(AtlasError):
    """None of the requested ids exist in the store."""

    kind = "not_found"


class StoreError(AtlasError):
    """A Graph Store Adapter call failed."""

    kind = "internal"

    def __init__(self, message: str, phase: str = "unknown"):
        self.phase = phase
        super().__init__(message)


class StoreTimeoutError(StoreError):
    """The store cancelled a statement (statement timeout)."""

    pass


class StoreUnavailableError(StoreError):
    """The store could not be reached at all."""

    kind = "upstream_unavailable"


class RenderError(AtlasError):
    """The render engine could not be initialized or driven."""

    kind = "render"


class LayoutError(RenderError):
    """A layout pass failed."""

    pass


@dataclass
class SchemaProblem:
    """A single problem found while validating a store schema mapping."""

    section: str  # "nodes" or "edges"
    field: str
    message: str

    def __str__(self):
        return f"{self.section}.{self.field} - {self.message}"


class SchemaValidationError(AtlasError):
    """Raised when a store schema mapping fails validation."""

    def __init__(self, problems: list[SchemaProblem]):
        self.problems = problems
        message = f"Store schema validation failed with {len(problems)} error(s):\n"
        message += "\n".join(f"  - {p}" for p in problems)
        super().__init__(message)
