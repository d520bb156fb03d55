import pytest
from fastapi.testclient import TestClient

from forensic_link.errors import ProviderFailure
from forensic_link.service.app import create_app


@pytest.fixture
def client(provider):
    return TestClient(create_app(provider))


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["ok"] is True


def test_list_links_with_filter(client):
    r = client.get("/v1/links", params={"link_type": "EVIDENCE", "min_strength": "0.5"})
    assert r.status_code == 200
    body = r.json()
    assert [link["link_id"] for link in body["data"]] == ["2"]
    assert body["data"][0]["link_strength"] == 0.8
    assert body["data"][0]["tier"] == "medium"
    assert body["pagination"] == {"page": 1, "limit": 20, "total": 1, "totalPages": 1}


def test_blank_filters_mean_unset(client):
    r = client.get("/v1/links", params={"link_type": "", "min_strength": ""})
    assert r.json()["pagination"]["total"] == 5


def test_pagination(client):
    r = client.get("/v1/links", params={"page": 2, "limit": 2})
    body = r.json()
    assert [link["link_id"] for link in body["data"]] == ["4", "5"]
    assert body["pagination"]["totalPages"] == 3


def test_page_past_the_end_is_empty(client):
    r = client.get("/v1/links", params={"page": 9})
    assert r.status_code == 200
    assert r.json()["data"] == []
    assert r.json()["pagination"]["total"] == 5


@pytest.mark.parametrize(
    "params",
    [
        {"page": 0},
        {"limit": 0},
        {"limit": 101},
        {"link_type": "PHONE"},
        {"min_strength": "1.5"},
        {"min_strength": "strong"},
    ],
)
def test_invalid_list_arguments(client, params):
    r = client.get("/v1/links", params=params)
    assert r.status_code == 400
    assert r.json()["error"]["status"] == 400


def test_link_types(client):
    data = client.get("/v1/links/types").json()["data"]
    assert [s["link_type"] for s in data] == ["DNA_MATCH", "ID_NUMBER", "EVIDENCE"]
    dna = data[0]
    assert dna["count"] == 2
    assert dna["avg_strength"] == 0.725
    assert dna["verified_count"] == 1
    assert dna["tiers"] == {"severe": 1, "medium": 0, "normal": 1}


def test_top_links(client):
    data = client.get("/v1/links/top", params={"limit": 3}).json()["data"]
    assert [link["link_id"] for link in data] == ["1", "2", "4"]


def test_top_links_limit_is_capped(client):
    assert client.get("/v1/links/top", params={"limit": 51}).status_code == 400


def test_get_link(client):
    r = client.get("/v1/links/2")
    assert r.status_code == 200
    assert r.json()["data"]["case1_id"] == "C1"


def test_missing_link(client):
    r = client.get("/v1/links/999")
    assert r.status_code == 404
    assert r.json() == {"error": {"message": "link not found: 999", "status": 404}}


def test_case_graph(client):
    r = client.get("/v1/graph/case/C1")
    assert r.status_code == 200
    graph = r.json()["data"]
    assert graph["focal"] == "case:C1"
    nodes = {n["id"]: n for n in graph["nodes"]}
    assert nodes["person:P1"]["icon"] == "person-suspect"
    assert nodes["case:C2"]["color"] == "#a855f7"
    assert nodes["sample:S1"]["kind"] == "dna"
    assert graph["stats"]["node_count"] == 7
    assert graph["stats"]["edge_count"] == 7


def test_case_graph_depth_is_validated(client):
    assert client.get("/v1/graph/case/C1", params={"depth": 4}).status_code == 400


def test_person_graph(client):
    graph = client.get("/v1/graph/person/P1", params={"depth": 2}).json()["data"]
    ids = [n["id"] for n in graph["nodes"]]
    assert len(ids) == len(set(ids))
    assert "case:C3" in ids


def test_missing_person(client):
    r = client.get("/v1/graph/person/nope")
    assert r.status_code == 404
    assert r.json()["error"]["message"] == "person not found: nope"


def test_network_graph(client):
    graph = client.get("/v1/graph/network", params={"min_strength": 0.7}).json()["data"]
    assert graph["focal"] is None
    assert len(graph["edges"]) == 3


def test_network_default_threshold(client):
    graph = client.get("/v1/graph/network").json()["data"]
    assert len(graph["edges"]) == 2


def test_network_bad_threshold(client):
    assert client.get("/v1/graph/network", params={"min_strength": 3}).status_code == 400


class DownProvider:
    def fetch_links(self):
        raise ProviderFailure("upstream timed out")

    def fetch_entity_neighborhood(self, kind, entity_id):
        raise ProviderFailure("upstream timed out")


def test_provider_failure_maps_to_bad_gateway():
    client = TestClient(create_app(DownProvider()))
    r = client.get("/v1/links")
    assert r.status_code == 502
    assert r.json() == {"error": {"message": "upstream timed out", "status": 502}}
    assert client.get("/v1/graph/case/C1").status_code == 502


def test_list_links_by_province(client):
    body = client.get("/v1/links", params={"province": "Chiang Mai", "link_type": "EVIDENCE"}).json()
    assert [link["link_id"] for link in body["data"]] == ["2", "10"]
    assert client.get("/v1/links", params={"province": "Phuket"}).json()["pagination"]["total"] == 0
