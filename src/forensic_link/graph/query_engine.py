from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable

from forensic_link.errors import InvalidArgument, NotFound
from forensic_link.settings import settings

from .links import (
    Link,
    LinkType,
    MergePolicy,
    StrengthTier,
    dedupe_links,
    id_sort_key,
    keep_strongest,
    parse_link_type,
)
from .provider import LinkDataProvider

logger = logging.getLogger(__name__)


def _parse_strength(value: Any) -> float:
    if isinstance(value, bool):
        raise InvalidArgument(f"min_strength must be a number, got {value!r}")
    try:
        strength = float(value)
    except (TypeError, ValueError):
        raise InvalidArgument(f"min_strength must be a number, got {value!r}") from None
    if math.isnan(strength) or not 0.0 <= strength <= 1.0:
        raise InvalidArgument(f"min_strength must be within [0, 1], got {value!r}")
    return strength


def _require_int(name: str, value: Any, lo: int, hi: int | None = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgument(f"{name} must be an integer, got {value!r}")
    if value < lo or (hi is not None and value > hi):
        bounds = f"[{lo}, {hi}]" if hi is not None else f">= {lo}"
        raise InvalidArgument(f"{name} must be {bounds}, got {value}")
    return value


@dataclass(frozen=True, slots=True)
class LinkFilter:
    """Immutable link query parameters. Every condition that is set must hold.

    ``province`` matches when either case of the link is in that province.
    """

    link_type: LinkType | None = None
    min_strength: float | None = None
    province: str | None = None

    def __post_init__(self) -> None:
        if self.link_type is not None:
            object.__setattr__(self, "link_type", parse_link_type(self.link_type))
        if self.min_strength is not None:
            object.__setattr__(self, "min_strength", _parse_strength(self.min_strength))
        if self.province is not None:
            object.__setattr__(self, "province", str(self.province).strip() or None)

    @classmethod
    def from_params(
        cls,
        link_type: str | None = None,
        min_strength: str | float | None = None,
        province: str | None = None,
    ) -> "LinkFilter":
        """Build from query-string style values; empty strings mean 'not set'."""
        return cls(
            link_type=link_type or None,
            min_strength=None if min_strength in (None, "") else min_strength,
            province=province or None,
        )

    @property
    def threshold(self) -> float:
        return self.min_strength if self.min_strength is not None else 0.0

    def matches(self, link: Link, province_of: Callable[[str], str | None] | None = None) -> bool:
        """``province_of`` maps a case id to its province; required for a province filter."""
        if self.link_type is not None and link.link_type is not self.link_type:
            return False
        if link.link_strength < self.threshold:
            return False
        if self.province is None:
            return True
        if province_of is None:
            return False
        return any(province_of(case_id) == self.province for case_id in link.pair)


@dataclass(frozen=True, slots=True)
class LinkPage:
    items: tuple[Link, ...]
    page: int
    page_size: int
    total_count: int
    total_pages: int


@dataclass(frozen=True, slots=True)
class TypeSummary:
    """Aggregate for one link type. ``avg_strength`` is unrounded."""

    link_type: LinkType
    count: int
    avg_strength: float
    verified_count: int = 0
    tiers: dict[StrengthTier, int] = field(default_factory=dict)


class LinkQueryEngine:
    """Filtered, paginated and aggregate queries over the link set.

    Stateless: every call reads a fresh snapshot from the provider, so
    concurrent calls never interfere.
    """

    def __init__(
        self,
        provider: LinkDataProvider,
        *,
        merge: MergePolicy = keep_strongest,
        max_page_size: int | None = None,
    ):
        self.provider = provider
        self.merge = merge
        self.max_page_size = max_page_size or settings.max_page_size

    def all_links(self) -> list[Link]:
        """Deduplicated links in link-id order."""
        links = dedupe_links(self.provider.fetch_links(), self.merge)
        return sorted(links, key=lambda link: id_sort_key(link.link_id))

    def list_links(
        self,
        filter: LinkFilter | None = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> LinkPage:
        filter = filter or LinkFilter()
        page = _require_int("page", page, 1)
        page_size = _require_int(
            "page_size", settings.default_page_size if page_size is None else page_size, 1, self.max_page_size
        )

        province_of = self._province_lookup() if filter.province else None
        matched = [link for link in self.all_links() if filter.matches(link, province_of)]
        total = len(matched)
        total_pages = math.ceil(total / page_size)
        start = (page - 1) * page_size
        items = tuple(matched[start : start + page_size])
        logger.debug(
            "list_links type=%s min=%.3f page=%d/%d -> %d of %d",
            filter.link_type.value if filter.link_type else "*",
            filter.threshold,
            page,
            total_pages,
            len(items),
            total,
        )
        return LinkPage(items=items, page=page, page_size=page_size, total_count=total, total_pages=total_pages)

    def _province_lookup(self) -> Callable[[str], str | None]:
        """Case id to province, fetching each case at most once per query."""
        cache: dict[str, str | None] = {}

        def province_of(case_id: str) -> str | None:
            if case_id not in cache:
                case = self.provider.fetch_case(case_id)
                cache[case_id] = case.province if case is not None else None
            return cache[case_id]

        return province_of

    def summarize_by_type(self) -> list[TypeSummary]:
        buckets: dict[LinkType, list[Link]] = {}
        for link in self.all_links():
            buckets.setdefault(link.link_type, []).append(link)

        out: list[TypeSummary] = []
        for link_type in LinkType:
            links = buckets.get(link_type)
            if not links:
                continue
            tiers = {tier: 0 for tier in StrengthTier}
            for link in links:
                tiers[link.tier] += 1
            out.append(
                TypeSummary(
                    link_type=link_type,
                    count=len(links),
                    avg_strength=sum(link.link_strength for link in links) / len(links),
                    verified_count=sum(1 for link in links if link.verified),
                    tiers=tiers,
                )
            )
        return out

    def top_links(self, limit: int = 10, *, min_strength: float = 0.0) -> list[Link]:
        """Strongest links first; ties broken by link id."""
        limit = _require_int("limit", limit, 1, 200)
        threshold = _parse_strength(min_strength)
        links = [link for link in self.all_links() if link.link_strength >= threshold]
        links.sort(key=lambda link: -link.link_strength)
        return links[:limit]

    def get_link(self, link_id: str) -> Link:
        link_id = str(link_id)
        for link in self.all_links():
            if link.link_id == link_id:
                return link
        raise NotFound("link", link_id)
