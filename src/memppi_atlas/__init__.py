"""
MemPPI Atlas - bounded exploration of a large protein-protein interaction graph.

This package serves size-capped, priority-ordered slices of an interaction
network stored in relational tables, and feeds those slices progressively
into an interactive layout engine so that tens of thousands of elements
never have to be materialized or laid out at once.
"""

__version__ = "0.1.0"
