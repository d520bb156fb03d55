"""Case-link graph core.

This package provides:
- The entity catalog and link model (records, links)
- Filtered/paginated link queries and per-type summaries
- Bounded neighborhood and network graph assembly over a pluggable provider
"""

from .assembler import GraphAssembler
from .links import Link, LinkType, StrengthTier, classify_strength
from .nodes import GraphEdge, GraphNode, NeighborhoodGraph
from .provider import InMemoryProvider, LinkDataProvider, Snapshot, load_snapshot
from .query_engine import LinkFilter, LinkPage, LinkQueryEngine, TypeSummary
from .records import Case, Membership, NodeKind, Person, PersonRole, Sample

__all__ = [
    "Case",
    "GraphAssembler",
    "GraphEdge",
    "GraphNode",
    "InMemoryProvider",
    "Link",
    "LinkDataProvider",
    "LinkFilter",
    "LinkPage",
    "LinkQueryEngine",
    "LinkType",
    "Membership",
    "NeighborhoodGraph",
    "NodeKind",
    "Person",
    "PersonRole",
    "Sample",
    "Snapshot",
    "StrengthTier",
    "TypeSummary",
    "classify_strength",
    "load_snapshot",
]
