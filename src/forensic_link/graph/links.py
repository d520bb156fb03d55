"""Link model: typed, strength-scored relationships between two cases.

A link is stored with its case pair in canonical order (smaller id first), so
"same pair, same type" is a plain tuple comparison. Strength tiers live here so
that aggregates and presentation agree on the boundaries.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Iterable

from pydantic import BaseModel, ConfigDict, Field, model_validator

from forensic_link.errors import InvalidArgument

logger = logging.getLogger(__name__)


class LinkType(str, Enum):
    """Closed set of link kinds. Declaration order is the presentation order."""

    DNA_MATCH = "DNA_MATCH"
    ID_NUMBER = "ID_NUMBER"
    EVIDENCE = "EVIDENCE"


def parse_link_type(value: Any) -> LinkType:
    if isinstance(value, LinkType):
        return value
    try:
        return LinkType(str(value).strip().upper())
    except ValueError:
        allowed = ", ".join(t.value for t in LinkType)
        raise InvalidArgument(f"unknown link_type {value!r}; expected one of {allowed}") from None


def id_sort_key(value: str) -> tuple[int, int, str]:
    """Numeric ids sort numerically, everything else lexicographically after them."""
    if value.isascii() and value.isdecimal():
        return (0, int(value), value)
    return (1, 0, value)


def canonical_pair(a: str, b: str) -> tuple[str, str]:
    return (a, b) if id_sort_key(a) <= id_sort_key(b) else (b, a)


class StrengthTier(str, Enum):
    SEVERE = "severe"
    MEDIUM = "medium"
    NORMAL = "normal"


SEVERE_THRESHOLD = 0.9
MEDIUM_THRESHOLD = 0.7


def classify_strength(strength: float) -> StrengthTier:
    if strength >= SEVERE_THRESHOLD:
        return StrengthTier.SEVERE
    if strength >= MEDIUM_THRESHOLD:
        return StrengthTier.MEDIUM
    return StrengthTier.NORMAL


class Link(BaseModel):
    """A scored relationship between two distinct cases."""

    model_config = ConfigDict(frozen=True, extra="ignore", coerce_numbers_to_str=True)

    link_id: str
    case1_id: str
    case2_id: str
    link_type: LinkType
    link_strength: float = Field(ge=0.0, le=1.0, allow_inf_nan=False)
    verified: bool = False
    evidence_details: str | None = None
    created_at: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _canonical_order(cls, data: Any) -> Any:
        if isinstance(data, dict) and "case1_id" in data and "case2_id" in data:
            first, second = canonical_pair(str(data["case1_id"]), str(data["case2_id"]))
            data = {**data, "case1_id": first, "case2_id": second}
        return data

    @model_validator(mode="after")
    def _no_self_link(self) -> "Link":
        if self.case1_id == self.case2_id:
            raise ValueError(f"link {self.link_id} joins case {self.case1_id} to itself")
        return self

    @property
    def pair(self) -> tuple[str, str]:
        return (self.case1_id, self.case2_id)

    @property
    def key(self) -> tuple[str, str, LinkType]:
        return (self.case1_id, self.case2_id, self.link_type)

    @property
    def tier(self) -> StrengthTier:
        return classify_strength(self.link_strength)

    def touches(self, case_id: str) -> bool:
        return case_id in self.pair

    def other(self, case_id: str) -> str:
        return self.case2_id if case_id == self.case1_id else self.case1_id


# Ingestion boundary: how a later duplicate (same pair, same type) updates an existing link.
MergePolicy = Callable[[Link, Link], Link]


def keep_strongest(existing: Link, incoming: Link) -> Link:
    if incoming.link_strength <= existing.link_strength:
        return existing
    return existing.model_copy(update={"link_strength": incoming.link_strength})


def keep_latest(existing: Link, incoming: Link) -> Link:
    return incoming.model_copy(update={"link_id": existing.link_id})


def dedupe_links(links: Iterable[Link], merge: MergePolicy = keep_strongest) -> list[Link]:
    """Collapse same-pair same-type duplicates; the first-seen link id survives."""
    merged: dict[tuple[str, str, LinkType], Link] = {}
    for link in links:
        current = merged.get(link.key)
        if current is None:
            merged[link.key] = link
            continue
        logger.debug("merging duplicate %s link %s into %s", link.link_type.value, link.link_id, current.link_id)
        merged[link.key] = merge(current, link)
    return list(merged.values())
