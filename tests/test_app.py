import pytest
from jsonschema import validate

import app as cpm_app

ROW_SCHEMA = {
    "type": "object",
    "properties": {
        "id": {"type": "integer", "minimum": 1},
        "name": {"type": "string"},
        "duration": {"type": "number", "minimum": 0},
        "es": {"type": "number"},
        "ef": {"type": "number"},
        "ls": {"type": "number"},
        "lf": {"type": "number"},
        "slack": {"type": "number", "minimum": 0},
        "critical": {"type": "boolean"},
        "predecessors": {"type": "array", "items": {"type": "integer"}},
    },
    "required": ["id", "name", "duration", "es", "ef", "ls", "lf", "slack", "critical", "predecessors"],
}

RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "ok": {"const": True},
        "result": {
            "type": "object",
            "properties": {
                "project_duration": {"type": "number"},
                "activities": {"type": "array", "items": ROW_SCHEMA},
                "links": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "from": {"type": "integer"},
                            "to": {"type": "integer"},
                            "critical": {"type": "boolean"},
                        },
                        "required": ["from", "to", "critical"],
                    },
                },
                "critical_path": {"type": "array", "items": {"type": "integer"}},
            },
            "required": ["project_duration", "activities", "links", "critical_path"],
        },
        "issues": {"type": "array"},
    },
    "required": ["ok", "result"],
}

DIAMOND = [
    {"name": "A", "duration": "1", "precedingEvents": ""},
    {"name": "B", "duration": "2", "precedingEvents": "1"},
    {"name": "C", "duration": "3", "precedingEvents": "1"},
    {"name": "D", "duration": "1", "precedingEvents": "2, 3"},
]


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"ok": True}


def test_home_page(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert b'id="btn-analyze"' in resp.data


def test_analyze_diamond(client):
    resp = client.post("/api/analyze", json={"events": DIAMOND})
    data = resp.get_json()

    assert resp.status_code == 200
    validate(instance=data, schema=RESPONSE_SCHEMA)
    result = data["result"]
    assert result["project_duration"] == 5
    assert result["critical_path"] == [1, 3, 4]
    rows = {r["id"]: r for r in result["activities"]}
    assert rows[4]["es"] == 4
    assert rows[2]["slack"] == 1
    assert data["issues"] == []


def test_analyze_does_not_store(client):
    client.post("/api/analyze", json={"events": DIAMOND})
    data = client.get("/api/network").get_json()
    assert data["result"]["activities"] == []


def test_analyze_reports_bad_rows(client):
    resp = client.post("/api/analyze", json={"events": [
        {"name": "X", "duration": "abc", "precedingEvents": []},
        {"name": "Y", "duration": 2, "precedingEvents": [5]},
    ]})
    data = resp.get_json()

    assert resp.status_code == 200
    assert [r["name"] for r in data["result"]["activities"]] == ["Y"]
    assert [(i["type"], i["position"]) for i in data["issues"]] == [
        ("InvalidDuration", 1),
        ("DanglingPrecedence", 2),
    ]


@pytest.mark.parametrize("body", [
    {},
    {"events": "nope"},
    {"events": [{"name": "A", "duration": True}]},
    {"events": [{"name": "A", "duration": 1, "precedingEvents": 3}]},
])
def test_analyze_rejects_malformed_requests(client, body):
    resp = client.post("/api/analyze", json=body)
    assert resp.status_code == 400
    assert resp.get_json()["ok"] is False


def test_analyze_rejects_oversized_submission(client, monkeypatch):
    monkeypatch.setattr(cpm_app.config, "MAX_ACTIVITIES", 2)
    events = [{"name": str(i), "duration": 1} for i in range(3)]
    resp = client.post("/api/analyze", json={"events": events})
    assert resp.status_code == 400
    assert "Too many events" in resp.get_json()["error"]


def test_solve_records(client):
    resp = client.post("/api/solve", json={
        "activities": [{"id": 1, "name": "A", "duration": 3},
                       {"id": 2, "name": "B", "duration": "2"}],
        "links": [{"from": 1, "to": 2}],
    })
    data = resp.get_json()
    assert resp.status_code == 200
    validate(instance=data, schema=RESPONSE_SCHEMA)
    assert data["result"]["project_duration"] == 5


def test_solve_rejects_cycle(client):
    resp = client.post("/api/solve", json={
        "activities": [{"id": 1, "name": "A", "duration": 1},
                       {"id": 2, "name": "B", "duration": 1}],
        "links": [{"from": 1, "to": 2}, {"from": 2, "to": 1}],
    })
    data = resp.get_json()
    assert resp.status_code == 400
    assert data["ok"] is False
    assert "Cycle detected in dependencies" in data["error"]


def test_solve_rejects_unknown_reference(client):
    resp = client.post("/api/solve", json={
        "activities": [{"id": 1, "name": "A", "duration": 1}],
        "links": [{"from": 1, "to": 9}],
    })
    assert resp.status_code == 422
    assert "unknown event 9" in resp.get_json()["error"]


def test_solve_rejects_links_without_activities(client):
    resp = client.post("/api/solve", json={
        "activities": [],
        "links": [{"from": 1, "to": 2}],
    })
    assert resp.status_code == 422
    assert resp.get_json()["ok"] is False


@pytest.mark.parametrize("body", [
    {"activities": [{"id": 0, "name": "A", "duration": 1}]},
    {"activities": [{"id": 1, "name": "A", "duration": 1}], "links": [{"from": -1, "to": 1}]},
])
def test_solve_rejects_non_positive_ids(client, body):
    resp = client.post("/api/solve", json=body)
    assert resp.status_code == 400


def test_solve_rejects_oversized_network(client, monkeypatch):
    monkeypatch.setattr(cpm_app.config, "MAX_ACTIVITIES", 1)
    resp = client.post("/api/solve", json={"activities": [
        {"id": 1, "duration": 1}, {"id": 2, "duration": 1},
    ]})
    assert resp.status_code == 400
    assert "Too many events" in resp.get_json()["error"]


def test_solve_collapses_repeated_links(client):
    resp = client.post("/api/solve", json={
        "activities": [{"id": 1, "name": "A", "duration": 2},
                       {"id": 2, "name": "B", "duration": 1}],
        "links": [{"from": 1, "to": 2}, {"from": 1, "to": 2}],
    })
    result = resp.get_json()["result"]
    assert result["activities"][1]["predecessors"] == [1]
    assert len(result["links"]) == 1


def test_submit_replaces_stored_network(client):
    first = client.post("/api/network", json={"events": DIAMOND})
    assert first.status_code == 200
    assert len(client.get("/api/network").get_json()["result"]["activities"]) == 4

    second = client.post("/api/network", json={"events": [{"name": "Only", "duration": 7}]})
    data = second.get_json()
    validate(instance=data, schema=RESPONSE_SCHEMA)
    assert [r["name"] for r in data["result"]["activities"]] == ["Only"]
    assert client.get("/api/network").get_json()["result"]["project_duration"] == 7


def test_rejected_submission_keeps_previous_network(client):
    client.post("/api/network", json={"events": DIAMOND})
    resp = client.post("/api/network", json={"events": [{"name": "A", "duration": False}]})
    assert resp.status_code == 400

    data = client.get("/api/network").get_json()
    assert len(data["result"]["activities"]) == 4


def test_stored_issues_are_returned(client):
    client.post("/api/network", json={"events": [
        {"name": "A", "duration": "1", "precedingEvents": "2"},
    ]})
    data = client.get("/api/network").get_json()
    assert [i["type"] for i in data["issues"]] == ["DanglingPrecedence"]


def test_reset(client):
    client.post("/api/network", json={"events": DIAMOND})
    resp = client.delete("/api/network")
    assert resp.get_json() == {"ok": True}

    data = client.get("/api/network").get_json()
    assert data["result"]["activities"] == []
    assert data["issues"] == []


def test_inspect_event(client):
    client.post("/api/network", json={"events": DIAMOND})
    resp = client.get("/api/activities/3")
    assert resp.status_code == 200
    activity = resp.get_json()["activity"]
    assert activity["name"] == "C"
    assert activity["critical"] is True

    assert client.get("/api/activities/42").status_code == 404


def test_edit_name(client):
    client.post("/api/network", json={"events": DIAMOND})
    resp = client.patch("/api/activities/2", json={"name": "Forms"})
    data = resp.get_json()

    assert resp.status_code == 200
    assert data["activity"]["name"] == "Forms"
    assert data["result"]["critical_path"] == [1, 3, 4]


def test_edit_duration_resolves(client):
    client.post("/api/network", json={"events": DIAMOND})
    resp = client.patch("/api/activities/2", json={"duration": "5"})
    data = resp.get_json()

    assert resp.status_code == 200
    assert data["activity"]["duration"] == 5
    assert data["activity"]["critical"] is True
    assert data["result"]["critical_path"] == [1, 2, 4]
    assert data["result"]["project_duration"] == 7


@pytest.mark.parametrize("body, status", [
    ({"duration": "-1"}, 400),
    ({"duration": "abc"}, 400),
    ({"links": []}, 400),
])
def test_edit_rejects_bad_input(client, body, status):
    client.post("/api/network", json={"events": DIAMOND})
    resp = client.patch("/api/activities/1", json=body)
    assert resp.status_code == status
    # stored network unchanged
    assert client.get("/api/activities/1").get_json()["activity"]["duration"] == 1


def test_edit_unknown_event(client):
    resp = client.patch("/api/activities/3", json={"name": "Nope"})
    assert resp.status_code == 404
