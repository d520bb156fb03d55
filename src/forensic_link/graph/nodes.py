"""Graph view artifacts: node variants, edges and the assembled neighborhood.

Nodes are a tagged union on ``kind``; each variant carries only the fields
that make sense for it. Node ids are ``<entity>:<id>`` so a case reached as
focal and as a linked case still collapses to a single node.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from .links import LinkType
from .records import ArtifactKind, Case, Person, PersonRole, Sample, Severity


class EdgeKind(str, Enum):
    DNA_MATCH = "DNA_MATCH"
    ID_NUMBER = "ID_NUMBER"
    EVIDENCE = "EVIDENCE"
    PERSON_CASE = "PERSON_CASE"  # membership of a person in a case
    HAS_EVIDENCE = "HAS_EVIDENCE"  # containment of an artifact in a case

    @classmethod
    def from_link_type(cls, link_type: LinkType) -> "EdgeKind":
        return cls(link_type.value)


def node_id(entity: str, entity_id: str) -> str:
    return f"{entity}:{entity_id}"


class _Node(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    entity_id: str
    label: str
    color: str | None = None


class _CaseFields(_Node):
    case_type: str | None = None
    province: str | None = None
    case_date: str | None = None
    severity: Severity = "normal"


class CaseNode(_CaseFields):
    kind: Literal["case"] = "case"


class LinkedCaseNode(_CaseFields):
    kind: Literal["linked_case"] = "linked_case"


class PersonNode(_Node):
    kind: Literal["person"] = "person"
    role: PersonRole | None = None
    id_number: str | None = None


class ArtifactNode(_Node):
    kind: ArtifactKind
    sample_type: str | None = None
    lab_number: str | None = None


class ClusterNode(_Node):
    kind: Literal["cluster"] = "cluster"
    member_count: int = 0


GraphNode = Annotated[
    Union[CaseNode, LinkedCaseNode, PersonNode, ArtifactNode, ClusterNode],
    Field(discriminator="kind"),
]


def case_node(case: Case, *, linked: bool = False) -> CaseNode | LinkedCaseNode:
    cls = LinkedCaseNode if linked else CaseNode
    return cls(
        id=node_id("case", case.case_id),
        entity_id=case.case_id,
        label=case.case_number,
        case_type=case.case_type,
        province=case.province,
        case_date=case.case_date,
        severity=case.severity,
    )


def person_node(person: Person, role: PersonRole | None = None) -> PersonNode:
    return PersonNode(
        id=node_id("person", person.person_id),
        entity_id=person.person_id,
        label=person.full_name,
        role=role if role is not None else person.role,
        id_number=person.id_number,
    )


def artifact_node(sample: Sample) -> ArtifactNode:
    return ArtifactNode(
        id=node_id("sample", sample.sample_id),
        entity_id=sample.sample_id,
        label=sample.lab_number or sample.sample_type or sample.sample_id,
        kind=sample.artifact_kind,
        sample_type=sample.sample_type,
        lab_number=sample.lab_number,
    )


class GraphEdge(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: str
    target: str
    kind: EdgeKind
    strength: float = 1.0
    label: str | None = None

    @property
    def key(self) -> tuple[str, str, EdgeKind]:
        """Endpoint order does not matter for identity."""
        a, b = sorted((self.source, self.target))
        return (a, b, self.kind)


class NeighborhoodGraph(BaseModel):
    """Nodes and edges around a focal entity. Built per request, never cached."""

    focal: str | None = None
    depth: int = 1
    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)

    def node(self, node_id: str) -> GraphNode | None:
        return next((n for n in self.nodes if n.id == node_id), None)

    def stats(self) -> dict[str, int]:
        kinds = [n.kind for n in self.nodes]
        out = {
            "node_count": len(self.nodes),
            "edge_count": len(self.edges),
            "person_count": kinds.count("person"),
            "linked_case_count": kinds.count("linked_case"),
            "artifact_count": sum(1 for n in self.nodes if isinstance(n, ArtifactNode)),
            "severe_case_count": sum(
                1 for n in self.nodes if isinstance(n, (CaseNode, LinkedCaseNode)) and n.severity == "severe"
            ),
        }
        for lt in LinkType:
            out[f"{lt.value.lower()}_links"] = sum(1 for e in self.edges if e.kind.value == lt.value)
        return out
