from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Protocol, Sequence

from pydantic import BaseModel, Field, ValidationError

from forensic_link.errors import ProviderFailure

from .links import Link
from .records import Case, Membership, Person, Sample

logger = logging.getLogger(__name__)

FocalKind = Literal["case", "person"]


@dataclass(frozen=True, slots=True)
class Neighborhood:
    """Raw relationship records around one case or person.

    ``cases`` holds the *other* cases referenced by ``links`` or ``memberships``.
    """

    focal: Case | Person
    cases: tuple[Case, ...] = ()
    persons: tuple[Person, ...] = ()
    memberships: tuple[Membership, ...] = ()
    samples: tuple[Sample, ...] = ()
    links: tuple[Link, ...] = ()

    @property
    def focal_id(self) -> str:
        if isinstance(self.focal, Case):
            return self.focal.case_id
        return self.focal.person_id


class LinkDataProvider(Protocol):
    """Synchronous access to the system of record.

    Implementations raise ProviderFailure when the source fails; they must not
    hide failures behind empty results.
    """

    def fetch_links(self) -> Sequence[Link]: ...

    def fetch_case(self, ref: str) -> Case | None: ...

    def fetch_entity_neighborhood(self, kind: FocalKind, entity_id: str) -> Neighborhood | None: ...


class Snapshot(BaseModel):
    """On-disk / in-memory record set. Also the JSON snapshot file format."""

    cases: list[Case] = Field(default_factory=list)
    persons: list[Person] = Field(default_factory=list)
    memberships: list[Membership] = Field(default_factory=list)
    samples: list[Sample] = Field(default_factory=list)
    links: list[Link] = Field(default_factory=list)


@dataclass(slots=True)
class InMemoryProvider:
    """Provider over an immutable snapshot. Safe to share between threads."""

    snapshot: Snapshot
    _cases: dict[str, Case] = field(init=False, repr=False)
    _case_numbers: dict[str, str] = field(init=False, repr=False)
    _persons: dict[str, Person] = field(init=False, repr=False)
    _id_numbers: dict[str, str] = field(init=False, repr=False)
    _links: tuple[Link, ...] = field(init=False, repr=False)
    _links_by_case: dict[str, tuple[Link, ...]] = field(init=False, repr=False)
    _members_by_case: dict[str, tuple[Membership, ...]] = field(init=False, repr=False)
    _members_by_person: dict[str, tuple[Membership, ...]] = field(init=False, repr=False)
    _samples_by_case: dict[str, tuple[Sample, ...]] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        snap = self.snapshot
        self._cases = {c.case_id: c for c in snap.cases}
        self._case_numbers = {c.case_number: c.case_id for c in snap.cases}
        self._persons = {p.person_id: p for p in snap.persons}
        self._id_numbers = {p.id_number: p.person_id for p in snap.persons if p.id_number}

        links = []
        for link in snap.links:
            if link.case1_id not in self._cases or link.case2_id not in self._cases:
                logger.warning("dropping link %s: references an unknown case", link.link_id)
                continue
            links.append(link)
        self._links = tuple(links)

        by_case: dict[str, list[Link]] = defaultdict(list)
        for link in self._links:
            by_case[link.case1_id].append(link)
            by_case[link.case2_id].append(link)
        self._links_by_case = {k: tuple(v) for k, v in by_case.items()}

        members_case: dict[str, list[Membership]] = defaultdict(list)
        members_person: dict[str, list[Membership]] = defaultdict(list)
        for m in snap.memberships:
            if m.case_id in self._cases and m.person_id in self._persons:
                members_case[m.case_id].append(m)
                members_person[m.person_id].append(m)
        self._members_by_case = {k: tuple(v) for k, v in members_case.items()}
        self._members_by_person = {k: tuple(v) for k, v in members_person.items()}

        samples: dict[str, list[Sample]] = defaultdict(list)
        for s in snap.samples:
            samples[s.case_id].append(s)
        self._samples_by_case = {k: tuple(v) for k, v in samples.items()}

    def fetch_links(self) -> Sequence[Link]:
        return self._links

    def fetch_case(self, ref: str) -> Case | None:
        """Look up by case id, falling back to the case number."""
        return self._cases.get(ref) or self._cases.get(self._case_numbers.get(ref, ""))

    def get_person(self, ref: str) -> Person | None:
        """Look up by person id, falling back to the national id number."""
        return self._persons.get(ref) or self._persons.get(self._id_numbers.get(ref, ""))

    def fetch_entity_neighborhood(self, kind: FocalKind, entity_id: str) -> Neighborhood | None:
        if kind == "case":
            case = self.fetch_case(entity_id)
            if case is None:
                return None
            links = self._links_by_case.get(case.case_id, ())
            members = self._members_by_case.get(case.case_id, ())
            return Neighborhood(
                focal=case,
                cases=tuple(self._cases[link.other(case.case_id)] for link in links),
                persons=tuple(self._persons[m.person_id] for m in members),
                memberships=members,
                samples=self._samples_by_case.get(case.case_id, ()),
                links=links,
            )

        person = self.get_person(entity_id)
        if person is None:
            return None
        members = self._members_by_person.get(person.person_id, ())
        return Neighborhood(
            focal=person,
            cases=tuple(self._cases[m.case_id] for m in members),
            memberships=members,
        )


def load_snapshot(path: str | Path) -> InMemoryProvider:
    try:
        text = Path(path).expanduser().read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ProviderFailure(f"cannot read snapshot {path}: {e}") from e
    try:
        snapshot = Snapshot.model_validate_json(text)
    except ValidationError as e:
        raise ProviderFailure(f"invalid snapshot {path}: {e.error_count()} error(s)") from e
    logger.info(
        "loaded snapshot %s: %d cases, %d persons, %d links",
        path,
        len(snapshot.cases),
        len(snapshot.persons),
        len(snapshot.links),
    )
    return InMemoryProvider(snapshot)
