"""Type resolver: node kind (and person role) to an icon id and color.

This sits at the rendering boundary, so it never raises. Anything it does
not recognise is drawn like a plain case.
"""

from __future__ import annotations

from typing import Any, NamedTuple

from forensic_link.graph.records import NodeKind, PersonRole, parse_role


class NodeStyle(NamedTuple):
    icon: str
    color: str


DEFAULT_STYLES: dict[NodeKind, NodeStyle] = {
    NodeKind.CASE: NodeStyle("case", "#00d4ff"),
    NodeKind.LINKED_CASE: NodeStyle("case", "#a855f7"),
    NodeKind.PERSON: NodeStyle("person-reference", "#2ec4b6"),
    NodeKind.SAMPLE: NodeStyle("sample", "#4895ef"),
    NodeKind.DNA: NodeStyle("dna", "#4895ef"),
    NodeKind.FINGERPRINT: NodeStyle("fingerprint", "#a855f7"),
    NodeKind.DRUG: NodeStyle("drug", "#f72585"),
    NodeKind.WEAPON: NodeStyle("weapon", "#6c757d"),
    NodeKind.LOCATION: NodeStyle("location", "#8338ec"),
    NodeKind.VEHICLE: NodeStyle("vehicle", "#495057"),
    NodeKind.PHONE: NodeStyle("phone", "#ffc300"),
    NodeKind.MONEY: NodeStyle("money", "#ffd60a"),
    NodeKind.ORGANIZATION: NodeStyle("organization", "#7209b7"),
    NodeKind.CLUSTER: NodeStyle("cluster", "#6366f1"),
}

ROLE_STYLES: dict[PersonRole, NodeStyle] = {
    PersonRole.SUSPECT: NodeStyle("person-suspect", "#ef233c"),
    PersonRole.ARRESTED: NodeStyle("person-arrested", "#f77f00"),
}


def _kind(value: Any) -> NodeKind:
    try:
        return NodeKind(getattr(value, "value", value))
    except (ValueError, TypeError):
        return NodeKind.CASE


def resolve(kind: Any, role: Any = None, color: Any = None) -> NodeStyle:
    """Total over any input; an explicit, non-empty ``color`` wins over the default."""
    node_kind = _kind(kind)
    style = DEFAULT_STYLES[node_kind]
    if node_kind is NodeKind.PERSON:
        style = ROLE_STYLES.get(parse_role(role), style)  # type: ignore[arg-type]
    if isinstance(color, str) and color.strip():
        return style._replace(color=color.strip())
    return style


def style_for(node: Any) -> NodeStyle:
    """Resolve a graph node's style from its kind, role and color override."""
    return resolve(getattr(node, "kind", None), getattr(node, "role", None), getattr(node, "color", None))
