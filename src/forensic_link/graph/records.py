"""Entity catalog: the records the core reads and the closed set of node kinds.

Case, Person and Sample records are owned by the external system of record.
They arrive through a provider and are never mutated here.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, field_validator


class NodeKind(str, Enum):
    """Every kind of node a graph can contain."""

    CASE = "case"
    LINKED_CASE = "linked_case"
    PERSON = "person"
    SAMPLE = "sample"
    DNA = "dna"
    FINGERPRINT = "fingerprint"
    DRUG = "drug"
    WEAPON = "weapon"
    LOCATION = "location"
    VEHICLE = "vehicle"
    PHONE = "phone"
    MONEY = "money"
    ORGANIZATION = "organization"
    CLUSTER = "cluster"


ArtifactKind = Literal[
    "sample",
    "dna",
    "fingerprint",
    "drug",
    "weapon",
    "location",
    "vehicle",
    "phone",
    "money",
    "organization",
]

ARTIFACT_KINDS: tuple[str, ...] = (
    "sample",
    "dna",
    "fingerprint",
    "drug",
    "weapon",
    "location",
    "vehicle",
    "phone",
    "money",
    "organization",
)


class PersonRole(str, Enum):
    SUSPECT = "Suspect"
    ARRESTED = "Arrested"
    REFERENCE = "Reference"


def parse_role(value: Any) -> PersonRole | None:
    """Map a raw role value to a PersonRole; anything unrecognised is neutral (None)."""
    if value is None or isinstance(value, PersonRole):
        return value
    text = str(value).strip().lower()
    for role in PersonRole:
        if role.value.lower() == text:
            return role
    return None


RoleField = Annotated[PersonRole | None, BeforeValidator(parse_role)]


Severity = Literal["severe", "normal"]

# homicide, robbery, narcotics
_SEVERE_CASE_TERMS = ("ฆ่า", "ปล้น", "ยาเสพติด", "murder", "homicide", "robbery", "narcotic", "drug")


def case_severity(case_type: str | None) -> Severity:
    if not case_type:
        return "normal"
    lowered = case_type.lower()
    return "severe" if any(term in lowered for term in _SEVERE_CASE_TERMS) else "normal"


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", coerce_numbers_to_str=True)


class Case(_Record):
    case_id: str
    case_number: str
    case_type: str | None = None
    province: str | None = None
    police_station: str | None = None
    case_date: str | None = None

    @property
    def severity(self) -> Severity:
        return case_severity(self.case_type)


class Person(_Record):
    person_id: str
    full_name: str
    id_number: str | None = None
    role: RoleField = Field(default=None, validation_alias=AliasChoices("role", "person_type"))


class Membership(_Record):
    """A person appearing in a case, with the role they hold in that case."""

    person_id: str
    case_id: str
    role: RoleField = None


# Keyword hints for free-text sample types. First match wins.
_ARTIFACT_HINTS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("fingerprint", ("fingerprint", "latent print", "ลายนิ้วมือ")),
    ("dna", ("dna", "blood", "saliva", "semen", "hair", "เลือด")),
    ("drug", ("drug", "narcotic", "meth", "heroin", "ยาเสพติด", "ยาบ้า")),
    ("weapon", ("weapon", "gun", "firearm", "knife", "cartridge", "อาวุธ", "ปืน", "มีด")),
    ("vehicle", ("vehicle", "car", "motorcycle", "รถ")),
    ("phone", ("phone", "mobile", "sim card", "โทรศัพท์")),
    ("money", ("money", "cash", "banknote", "เงิน")),
    ("location", ("location", "scene", "address", "สถานที่")),
    ("organization", ("organization", "gang", "network", "องค์กร")),
)


def infer_artifact_kind(sample_type: str | None) -> ArtifactKind:
    if not sample_type:
        return "sample"
    lowered = sample_type.lower()
    for kind, hints in _ARTIFACT_HINTS:
        if any(h in lowered for h in hints):
            return kind  # type: ignore[return-value]
    return "sample"


class Sample(_Record):
    """An evidentiary artifact collected for a case."""

    sample_id: str
    case_id: str
    sample_type: str | None = None
    lab_number: str | None = None
    sample_source: str | None = None
    kind: ArtifactKind | None = None

    @field_validator("kind", mode="before")
    @classmethod
    def _known_kind(cls, v: Any) -> Any:
        if v is None:
            return None
        v = str(v).strip().lower()
        return v if v in ARTIFACT_KINDS else None

    @property
    def artifact_kind(self) -> ArtifactKind:
        return self.kind or infer_artifact_kind(self.sample_type)
