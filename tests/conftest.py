"""Shared fixtures: a small case-link snapshot.

Cases C1..C3 are linked; C4 is isolated. Links 2 and 3 are the same EVIDENCE
relationship between C1 and C2 reported twice (0.6 then 0.8).
"""

import pytest

from forensic_link.graph.assembler import GraphAssembler
from forensic_link.graph.provider import InMemoryProvider, Snapshot
from forensic_link.graph.query_engine import LinkQueryEngine


def build_snapshot() -> Snapshot:
    return Snapshot.model_validate(
        {
            "cases": [
                {"case_id": "C1", "case_number": "CN-001", "case_type": "ฆ่าผู้อื่น", "province": "Bangkok"},
                {"case_id": "C2", "case_number": "CN-002", "case_type": "ลักทรัพย์", "province": "Chiang Mai"},
                {"case_id": "C3", "case_number": "CN-003", "case_type": "ยาเสพติด", "province": "Bangkok"},
                {"case_id": "C4", "case_number": "CN-004", "case_type": "Fraud", "province": "Phuket"},
            ],
            "persons": [
                {"person_id": "P1", "full_name": "Somchai K.", "id_number": "1100000000001", "person_type": "Suspect"},
                {"person_id": "P2", "full_name": "Anan S.", "person_type": "Arrested"},
                {"person_id": "P3", "full_name": "Malee T.", "person_type": "Witness"},
                {"person_id": "P4", "full_name": "Nobody"},
            ],
            "memberships": [
                {"person_id": "P1", "case_id": "C1", "role": "Suspect"},
                {"person_id": "P1", "case_id": "C2", "role": "Suspect"},
                {"person_id": "P2", "case_id": "C1", "role": "Arrested"},
                {"person_id": "P3", "case_id": "C3"},
            ],
            "samples": [
                {"sample_id": "S1", "case_id": "C1", "sample_type": "DNA swab", "lab_number": "LAB-1"},
                {"sample_id": "S2", "case_id": "C1", "sample_type": "Latent fingerprint", "lab_number": "LAB-2"},
                {"sample_id": "S3", "case_id": "C2", "sample_type": "Item 7", "kind": "weapon"},
            ],
            "links": [
                {"link_id": 1, "case1_id": "C1", "case2_id": "C2", "link_type": "DNA_MATCH", "link_strength": 0.95, "verified": 1},
                {"link_id": 2, "case1_id": "C2", "case2_id": "C1", "link_type": "EVIDENCE", "link_strength": 0.6},
                {"link_id": 3, "case1_id": "C1", "case2_id": "C2", "link_type": "EVIDENCE", "link_strength": 0.8},
                {"link_id": 4, "case1_id": "C2", "case2_id": "C3", "link_type": "ID_NUMBER", "link_strength": 0.75},
                {"link_id": 5, "case1_id": "C1", "case2_id": "C3", "link_type": "DNA_MATCH", "link_strength": 0.5},
                {"link_id": 10, "case1_id": "C3", "case2_id": "C2", "link_type": "EVIDENCE", "link_strength": 0.3},
            ],
        }
    )


@pytest.fixture
def snapshot() -> Snapshot:
    return build_snapshot()


@pytest.fixture
def provider(snapshot) -> InMemoryProvider:
    return InMemoryProvider(snapshot)


@pytest.fixture
def engine(provider) -> LinkQueryEngine:
    return LinkQueryEngine(provider)


@pytest.fixture
def assembler(provider, engine) -> GraphAssembler:
    return GraphAssembler(provider, query_engine=engine)


@pytest.fixture
def snapshot_file(tmp_path, snapshot):
    path = tmp_path / "snapshot.json"
    path.write_text(snapshot.model_dump_json(), encoding="utf-8")
    return path
