"""
Store schema mapping.

Maps the store vocabulary used throughout the package (``protein``,
``protein1``, ``fusion_pred_prob`` ...) onto physical tables and columns.
The defaults match the tables produced by the ingestion scripts; a YAML
file can override any of them:

    nodes:
      table: proteins
      columns:
        protein: accession
    edges:
      table: interactions
      class_values:
        experiment: [experiment, experimental]

Identifiers are interpolated into SQL, so validation rejects anything that
is not a plain identifier.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .exceptions import SchemaProblem, SchemaValidationError
from .models import SOURCE_CLASSES

NODE_FIELDS: tuple[str, ...] = (
    "protein",
    "entry_name",
    "description",
    "gene_names",
    "family",
    "expression_tissue",
)
EDGE_FIELDS: tuple[str, ...] = (
    "edge",
    "protein1",
    "protein2",
    "fusion_pred_prob",
    "enriched_tissue",
    "tissue_enriched_confidence",
    "positive_type",
)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _default_class_values() -> dict[str, tuple[str, ...]]:
    return {
        "experiment": ("experiment", "experimental"),
        "prediction": ("prediction",),
    }


@dataclass
class StoreSchema:
    """Physical layout of the nodes and edges tables."""

    nodes_table: str = "nodes"
    edges_table: str = "edges"
    node_columns: dict[str, str] = field(
        default_factory=lambda: {f: f for f in NODE_FIELDS}
    )
    edge_columns: dict[str, str] = field(
        default_factory=lambda: {f: f for f in EDGE_FIELDS}
    )
    class_values: dict[str, tuple[str, ...]] = field(default_factory=_default_class_values)
    """Stored ``positive_type`` spellings for each source class."""

    @classmethod
    def from_yaml(cls, path: Path | str, validate: bool = True) -> "StoreSchema":
        """
        Load a mapping from YAML, filling anything unspecified with defaults.

        Raises:
            SchemaValidationError: If validation is enabled and fails
        """
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        schema = cls()
        nodes = data.get("nodes") or {}
        edges = data.get("edges") or {}

        schema.nodes_table = nodes.get("table", schema.nodes_table)
        schema.edges_table = edges.get("table", schema.edges_table)
        schema.node_columns.update(nodes.get("columns") or {})
        schema.edge_columns.update(edges.get("columns") or {})
        for source_class, values in (edges.get("class_values") or {}).items():
            if isinstance(values, str):
                values = [values]
            schema.class_values[source_class] = tuple(values or ())

        if validate:
            problems = schema.validate()
            if problems:
                raise SchemaValidationError(problems)
        return schema

    def validate(self) -> list[SchemaProblem]:
        """Collect every problem with this mapping (empty list = valid)."""
        problems: list[SchemaProblem] = []

        for section, table in (("nodes", self.nodes_table), ("edges", self.edges_table)):
            if not isinstance(table, str) or not _IDENTIFIER.match(table):
                problems.append(SchemaProblem(section, "table", f"not a plain identifier: {table!r}"))

        for section, fields, columns in (
            ("nodes", NODE_FIELDS, self.node_columns),
            ("edges", EDGE_FIELDS, self.edge_columns),
        ):
            for name in columns:
                if name not in fields:
                    problems.append(SchemaProblem(section, name, "unknown field"))
            for name in fields:
                column = columns.get(name)
                if not isinstance(column, str) or not _IDENTIFIER.match(column):
                    problems.append(
                        SchemaProblem(section, name, f"column is not a plain identifier: {column!r}")
                    )

        for source_class in self.class_values:
            if source_class not in SOURCE_CLASSES:
                problems.append(SchemaProblem("edges", "class_values", f"unknown class {source_class!r}"))
        for source_class in SOURCE_CLASSES:
            if not self.class_values.get(source_class):
                problems.append(
                    SchemaProblem("edges", "class_values", f"no stored values for {source_class!r}")
                )

        return problems

    def node_column(self, name: str) -> str:
        return self.node_columns[name]

    def edge_column(self, name: str) -> str:
        return self.edge_columns[name]

    def node_select(self, fields: list[str] | tuple[str, ...] | None = None) -> str:
        """SELECT list aliasing physical node columns to store field names."""
        return ", ".join(f"{self.node_columns[f]} AS {f}" for f in (fields or NODE_FIELDS))

    def edge_select(self, fields: list[str] | tuple[str, ...] | None = None) -> str:
        """SELECT list aliasing physical edge columns to store field names."""
        return ", ".join(f"{self.edge_columns[f]} AS {f}" for f in (fields or EDGE_FIELDS))

    def values_for_class(self, source_class: str) -> list[str]:
        return list(self.class_values.get(source_class, (source_class,)))

    def class_of(self, stored: str | None) -> str | None:
        """Canonical class for a stored ``positive_type`` value."""
        if stored is None:
            return None
        lowered = stored.strip().lower()
        for source_class, values in self.class_values.items():
            if lowered in (v.lower() for v in values):
                return source_class
        return None
