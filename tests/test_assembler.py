import pytest

from forensic_link.errors import InvalidArgument, NotFound, ProviderFailure
from forensic_link.graph.assembler import GraphAssembler
from forensic_link.graph.links import Link, keep_latest
from forensic_link.graph.nodes import EdgeKind
from forensic_link.graph.provider import InMemoryProvider, Snapshot
from forensic_link.graph.records import PersonRole


def kinds_by_id(graph):
    return {n.id: n.kind for n in graph.nodes}


def edges_between(graph, a, b, kind=None):
    return [
        e
        for e in graph.edges
        if {e.source, e.target} == {a, b} and (kind is None or e.kind is kind)
    ]


def assert_no_self_edges(graph):
    assert all(e.source != e.target for e in graph.edges)


def assert_unique_nodes(graph):
    node_ids = [n.id for n in graph.nodes]
    assert len(node_ids) == len(set(node_ids))


def test_case_neighborhood_depth_one(assembler):
    graph = assembler.build_neighborhood("case", "C1")

    assert graph.focal == "case:C1"
    assert kinds_by_id(graph) == {
        "case:C1": "case",
        "case:C2": "linked_case",
        "case:C3": "linked_case",
        "person:P1": "person",
        "person:P2": "person",
        "sample:S1": "dna",
        "sample:S2": "fingerprint",
    }
    assert len(graph.edges) == 7
    assert_no_self_edges(graph)

    [dna] = edges_between(graph, "case:C1", "case:C2", EdgeKind.DNA_MATCH)
    assert dna.strength == 0.95
    assert len(edges_between(graph, "case:C1", "person:P1", EdgeKind.PERSON_CASE)) == 1
    assert len(edges_between(graph, "case:C1", "sample:S1", EdgeKind.HAS_EVIDENCE)) == 1
    # C2-C3 is two hops away
    assert edges_between(graph, "case:C2", "case:C3") == []


def test_parallel_evidence_links_collapse_to_max_strength(assembler):
    graph = assembler.build_neighborhood("case", "C1")
    [edge] = edges_between(graph, "case:C1", "case:C2", EdgeKind.EVIDENCE)
    assert edge.strength == 0.8


def test_case_can_be_found_by_case_number(assembler):
    graph = assembler.build_neighborhood("case", "CN-001")
    assert graph.focal == "case:C1"


def test_person_roles_carried_on_nodes(assembler):
    graph = assembler.build_neighborhood("case", "C1")
    assert graph.node("person:P1").role is PersonRole.SUSPECT
    assert graph.node("person:P2").role is PersonRole.ARRESTED

    witness = assembler.build_neighborhood("case", "C3").node("person:P3")
    assert witness.role is None


def test_person_neighborhood_depth_one(assembler):
    graph = assembler.build_neighborhood("person", "P1")

    assert graph.focal == "person:P1"
    assert kinds_by_id(graph) == {"person:P1": "person", "case:C1": "case", "case:C2": "case"}
    assert {e.kind for e in graph.edges} == {EdgeKind.PERSON_CASE}
    assert all(e.label == "Suspect" for e in graph.edges)


def test_person_found_by_id_number(assembler):
    assert assembler.build_neighborhood("person", "1100000000001").focal == "person:P1"


def test_person_neighborhood_depth_two_has_no_duplicates(assembler):
    graph = assembler.build_neighborhood("person", "P1", depth=2)

    nodes = kinds_by_id(graph)
    assert nodes["case:C1"] == "case"
    assert nodes["case:C2"] == "case"
    assert nodes["case:C3"] == "linked_case"
    assert "person:P2" in nodes
    assert "sample:S3" in nodes
    assert_unique_nodes(graph)
    assert_no_self_edges(graph)
    # C1-C2 EVIDENCE is reachable from both cases but appears once
    assert len(edges_between(graph, "case:C1", "case:C2", EdgeKind.EVIDENCE)) == 1
    assert len(edges_between(graph, "person:P1", "case:C1", EdgeKind.PERSON_CASE)) == 1


def test_case_neighborhood_depth_two(assembler):
    graph = assembler.build_neighborhood("case", "C1", depth=2)

    assert_unique_nodes(graph)
    assert_no_self_edges(graph)
    assert [e.strength for e in edges_between(graph, "case:C2", "case:C3", EdgeKind.ID_NUMBER)] == [0.75]
    assert [e.strength for e in edges_between(graph, "case:C2", "case:C3", EdgeKind.EVIDENCE)] == [0.3]
    assert [e.strength for e in edges_between(graph, "case:C1", "case:C2", EdgeKind.EVIDENCE)] == [0.8]
    assert "person:P3" in kinds_by_id(graph)


def test_isolated_case_is_a_single_node_graph(assembler):
    graph = assembler.build_neighborhood("case", "C4")
    assert [n.id for n in graph.nodes] == ["case:C4"]
    assert graph.edges == []


def test_person_without_cases_is_a_single_node_graph(assembler):
    graph = assembler.build_neighborhood("person", "P4")
    assert [n.id for n in graph.nodes] == ["person:P4"]
    assert graph.edges == []


@pytest.mark.parametrize("kind,ref", [("case", "nope"), ("person", "nope")])
def test_missing_focal_entity(assembler, kind, ref):
    with pytest.raises(NotFound):
        assembler.build_neighborhood(kind, ref)


@pytest.mark.parametrize("depth", [0, -1, 4, 1.0, True])
def test_depth_is_validated(assembler, depth):
    with pytest.raises(InvalidArgument):
        assembler.build_neighborhood("case", "C1", depth=depth)


def test_focal_kind_is_validated(assembler):
    with pytest.raises(InvalidArgument):
        assembler.build_neighborhood("sample", "S1")


@pytest.mark.parametrize("kind,ref,depth", [("case", "C1", 1), ("case", "C2", 3), ("person", "P1", 2)])
def test_assembly_is_idempotent(assembler, kind, ref, depth):
    first = assembler.build_neighborhood(kind, ref, depth)
    second = assembler.build_neighborhood(kind, ref, depth)
    assert set(first.nodes) == set(second.nodes)
    assert set(first.edges) == set(second.edges)


def test_neighborhood_stats(assembler):
    stats = assembler.build_neighborhood("case", "C1").stats()
    assert stats["person_count"] == 2
    assert stats["linked_case_count"] == 2
    assert stats["artifact_count"] == 2
    assert stats["dna_match_links"] == 2
    assert stats["evidence_links"] == 1
    assert stats["id_number_links"] == 0
    assert stats["severe_case_count"] == 2


def test_network_of_strong_links(assembler):
    graph = assembler.build_network(min_strength=0.7)
    assert {n.id for n in graph.nodes} == {"case:C1", "case:C2", "case:C3"}
    assert {n.kind for n in graph.nodes} == {"case"}
    assert len(graph.edges) == 3
    assert_no_self_edges(graph)


def test_network_respects_limit(assembler):
    graph = assembler.build_network(min_strength=0.0, limit=1)
    assert len(graph.edges) == 1
    assert graph.edges[0].strength == 0.95


def test_network_rejects_bad_threshold(assembler):
    with pytest.raises(InvalidArgument):
        assembler.build_network(min_strength=2.0)


class BrokenProvider:
    def fetch_links(self):
        return []

    def fetch_entity_neighborhood(self, kind, entity_id):
        raise ProviderFailure("timeout")


def test_provider_failure_is_not_swallowed():
    with pytest.raises(ProviderFailure):
        GraphAssembler(BrokenProvider()).build_neighborhood("case", "C1")


def test_parallel_edges_keep_max_strength_under_keep_latest():
    snapshot = Snapshot(
        cases=[{"case_id": "X", "case_number": "X-1"}, {"case_id": "Y", "case_number": "Y-1"}],
        links=[
            Link(link_id="1", case1_id="X", case2_id="Y", link_type="EVIDENCE", link_strength=0.8),
            Link(link_id="2", case1_id="Y", case2_id="X", link_type="EVIDENCE", link_strength=0.6),
        ],
    )
    assembler = GraphAssembler(InMemoryProvider(snapshot), merge=keep_latest)

    graph = assembler.build_neighborhood("case", "X")
    [edge] = edges_between(graph, "case:X", "case:Y", EdgeKind.EVIDENCE)
    assert edge.strength == 0.8
    # the ingestion policy still decides what the query engine reports
    assert assembler.query_engine.get_link("1").link_strength == 0.6


class HiddenCaseProvider:
    """Serves links that reference a case it cannot resolve."""

    def __init__(self, inner, hidden):
        self.inner = inner
        self.hidden = hidden
        self.case_lookups = []

    def fetch_links(self):
        return self.inner.fetch_links()

    def fetch_case(self, ref):
        self.case_lookups.append(ref)
        return None if ref == self.hidden else self.inner.fetch_case(ref)

    def fetch_entity_neighborhood(self, kind, entity_id):
        raise AssertionError("network view must not load neighborhoods")


def test_network_skips_links_with_unresolved_cases(provider):
    graph = GraphAssembler(HiddenCaseProvider(provider, hidden="C3")).build_network(min_strength=0.0)

    assert {n.id for n in graph.nodes} == {"case:C1", "case:C2"}
    assert len(graph.edges) == 2
    assert all({e.source, e.target} == {"case:C1", "case:C2"} for e in graph.edges)


def test_network_looks_up_each_case_once(provider):
    hiding = HiddenCaseProvider(provider, hidden=None)
    GraphAssembler(hiding).build_network(min_strength=0.0)
    assert sorted(hiding.case_lookups) == ["C1", "C2", "C3"]
