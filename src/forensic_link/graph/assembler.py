"""Neighborhood and network graph assembly.

Expansion is a bounded breadth-first walk over entities. Every entity is keyed
by its node id, so a case reachable through several paths appears once, and
parallel edges (same endpoints, same kind) collapse to the strongest one.
"""

from __future__ import annotations

import logging
from collections import deque

from forensic_link.errors import InvalidArgument, NotFound
from forensic_link.settings import settings

from .links import Link, MergePolicy, keep_strongest
from .nodes import (
    EdgeKind,
    GraphEdge,
    GraphNode,
    NeighborhoodGraph,
    artifact_node,
    case_node,
    node_id,
    person_node,
)
from .provider import FocalKind, LinkDataProvider, Neighborhood
from .query_engine import LinkQueryEngine
from .records import Case, Person

logger = logging.getLogger(__name__)


class _GraphBuilder:
    def __init__(self) -> None:
        self.nodes: dict[str, GraphNode] = {}
        self.edges: dict[tuple[str, str, EdgeKind], GraphEdge] = {}

    def add_node(self, node: GraphNode) -> bool:
        """First sighting wins; returns True if the node is new."""
        if node.id in self.nodes:
            return False
        self.nodes[node.id] = node
        return True

    def add_edge(self, edge: GraphEdge) -> None:
        if edge.source == edge.target:
            return
        current = self.edges.get(edge.key)
        if current is None:
            self.edges[edge.key] = edge
        elif edge.strength > current.strength:
            self.edges[edge.key] = current.model_copy(update={"strength": edge.strength})

    def build(self, focal: str | None, depth: int) -> NeighborhoodGraph:
        return NeighborhoodGraph(
            focal=focal,
            depth=depth,
            nodes=list(self.nodes.values()),
            edges=list(self.edges.values()),
        )


class GraphAssembler:
    """Builds view graphs from provider records.

    The query engine supplies the network view; neighborhood expansion reads
    raw relationship records straight from the provider.
    """

    def __init__(
        self,
        provider: LinkDataProvider,
        *,
        query_engine: LinkQueryEngine | None = None,
        merge: MergePolicy = keep_strongest,
        max_depth: int | None = None,
    ):
        self.provider = provider
        self.query_engine = query_engine or LinkQueryEngine(provider, merge=merge)
        self.max_depth = max_depth or settings.max_depth

    def build_neighborhood(self, focal_kind: FocalKind, focal_id: str, depth: int = 1) -> NeighborhoodGraph:
        if focal_kind not in ("case", "person"):
            raise InvalidArgument(f"focal kind must be 'case' or 'person', got {focal_kind!r}")
        if isinstance(depth, bool) or not isinstance(depth, int) or not 1 <= depth <= self.max_depth:
            raise InvalidArgument(f"depth must be an integer in [1, {self.max_depth}], got {depth!r}")

        root = self.provider.fetch_entity_neighborhood(focal_kind, str(focal_id))
        if root is None:
            raise NotFound(focal_kind, str(focal_id))

        builder = _GraphBuilder()
        if isinstance(root.focal, Case):
            focal = case_node(root.focal)
        else:
            focal = person_node(root.focal)
        builder.add_node(focal)

        # (kind, entity id, hops from focal, prefetched records)
        queue: deque[tuple[FocalKind, str, int, Neighborhood | None]] = deque(
            [(focal_kind, root.focal_id, 0, root)]
        )
        expanded: set[str] = set()
        while queue:
            kind, entity_id, hops, hood = queue.popleft()
            key = node_id(kind, entity_id)
            if key in expanded or hops >= depth:
                continue
            expanded.add(key)
            if hood is None:
                hood = self.provider.fetch_entity_neighborhood(kind, entity_id)
                if hood is None:
                    logger.debug("skipping %s: vanished from provider during expansion", key)
                    continue
            for next_kind, next_id in self._expand(builder, hood):
                queue.append((next_kind, next_id, hops + 1, None))

        graph = builder.build(focal.id, depth)
        logger.debug(
            "neighborhood %s depth=%d -> %d nodes, %d edges", focal.id, depth, len(graph.nodes), len(graph.edges)
        )
        return graph

    def _expand(self, builder: _GraphBuilder, hood: Neighborhood) -> list[tuple[FocalKind, str]]:
        """Add one entity's direct relationships; return the entities reached."""
        reached: list[tuple[FocalKind, str]] = []
        if isinstance(hood.focal, Person):
            person = hood.focal
            source = node_id("person", person.person_id)
            cases = {c.case_id: c for c in hood.cases}
            for m in hood.memberships:
                case = cases.get(m.case_id)
                if case is None:
                    continue
                target = case_node(case)
                builder.add_node(target)
                builder.add_edge(
                    GraphEdge(
                        source=source,
                        target=target.id,
                        kind=EdgeKind.PERSON_CASE,
                        label=m.role.value if m.role else None,
                    )
                )
                reached.append(("case", case.case_id))
            return reached

        case = hood.focal
        source = node_id("case", case.case_id)
        others = {c.case_id: c for c in hood.cases}
        # raw links: parallel edges collapse to the strongest in add_edge
        for link in hood.links:
            other = others.get(link.other(case.case_id))
            if other is None:
                continue
            target = case_node(other, linked=True)
            builder.add_node(target)
            builder.add_edge(self._link_edge(source, target.id, link))
            reached.append(("case", other.case_id))

        persons = {p.person_id: p for p in hood.persons}
        for m in hood.memberships:
            person = persons.get(m.person_id)
            if person is None:
                continue
            target = person_node(person, m.role)
            builder.add_node(target)
            builder.add_edge(
                GraphEdge(
                    source=source,
                    target=target.id,
                    kind=EdgeKind.PERSON_CASE,
                    label=m.role.value if m.role else None,
                )
            )
            reached.append(("person", person.person_id))

        for sample in hood.samples:
            target = artifact_node(sample)
            builder.add_node(target)
            builder.add_edge(
                GraphEdge(source=source, target=target.id, kind=EdgeKind.HAS_EVIDENCE, label=sample.sample_type)
            )
        return reached

    @staticmethod
    def _link_edge(source: str, target: str, link: Link) -> GraphEdge:
        return GraphEdge(
            source=source,
            target=target,
            kind=EdgeKind.from_link_type(link.link_type),
            strength=link.link_strength,
            label=link.link_type.value,
        )

    def build_network(self, min_strength: float | None = None, limit: int | None = None) -> NeighborhoodGraph:
        """Case-to-case graph of the strongest links at or above ``min_strength``."""
        min_strength = settings.network_min_strength if min_strength is None else min_strength
        limit = settings.network_limit if limit is None else limit
        links = self.query_engine.top_links(limit, min_strength=min_strength)

        builder = _GraphBuilder()
        cases: dict[str, Case | None] = {}
        for link in links:
            for case_id in link.pair:
                if case_id not in cases:
                    cases[case_id] = self.provider.fetch_case(case_id)
            ends = [cases[case_id] for case_id in link.pair]
            if any(case is None for case in ends):
                logger.debug("skipping link %s: case missing from provider", link.link_id)
                continue
            a, b = (case_node(case) for case in ends)
            builder.add_node(a)
            builder.add_node(b)
            builder.add_edge(self._link_edge(a.id, b.id, link))
        return builder.build(focal=None, depth=1)
