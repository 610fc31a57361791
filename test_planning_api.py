#!/usr/bin/env python3
"""
Test script for the planning HTTP API: session lifecycle, capacity errors
mapped to responses, layout and wastage endpoints.
"""
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from roll_planner.api.base import get_registry
from roll_planner.main import app
from roll_planner.services.planning_session import SessionRegistry


@pytest.fixture
def client():
    registry = SessionRegistry()
    app.dependency_overrides[get_registry] = lambda: registry
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def session_id(client):
    response = client.post("/api/planning/sessions", json={"created_by_id": "user-1", "load_masters": False})
    assert response.status_code == 200
    return response.json()["session_id"]


def _first_set(client, session_id):
    spec = client.post(
        f"/api/planning/sessions/{session_id}/paper-specs",
        json={"gsm": 180, "bf": 18, "shade": "Golden"},
    ).json()
    jumbo = client.post(f"/api/planning/sessions/{session_id}/paper-specs/{spec['id']}/jumbo-rolls").json()
    return jumbo["sets"][0]["id"]


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_new_session_starts_in_draft(client, session_id):
    data = client.get(f"/api/planning/sessions/{session_id}").json()

    assert data["capacity"]["state"] == "draft"
    assert data["capacity"]["planning_width"] == 123
    assert data["paper_specs"] == []


def test_unknown_session_is_404(client):
    response = client.get("/api/planning/sessions/does-not-exist")

    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


def test_capacity_exceeded_returns_available_width(client, session_id):
    set_id = _first_set(client, session_id)
    url = f"/api/planning/sessions/{session_id}/sets/{set_id}/cut-rolls"
    assert client.post(url, json={"width_inches": 40, "quantity": 2, "client_id": "client-1"}).status_code == 200

    response = client.post(url, json={"width_inches": 50, "quantity": 1, "client_id": "client-1"})

    assert response.status_code == 409
    body = response.json()
    assert body["code"] == "capacity_exceeded"
    assert body["available"] == 43


def test_commit_rejected_lists_overflowing_sets(client, session_id):
    set_id = _first_set(client, session_id)
    client.post(
        f"/api/planning/sessions/{session_id}/sets/{set_id}/cut-rolls",
        json={"width_inches": 61, "quantity": 2, "client_id": "client-1"},
    )

    proposal = client.put(f"/api/planning/sessions/{session_id}/allowance", json={"wastage": 5})
    assert proposal.json()["draft_planning_width"] == 119
    response = client.post(f"/api/planning/sessions/{session_id}/allowance/commit")

    assert response.status_code == 409
    assert [v["set_id"] for v in response.json()["violations"]] == [set_id]
    state = client.get(f"/api/planning/sessions/{session_id}").json()["capacity"]
    assert state["state"] == "draft"
    assert state["planning_width"] == 123


def test_out_of_range_allowance_is_422(client, session_id):
    response = client.put(f"/api/planning/sessions/{session_id}/allowance", json={"wastage": 80})

    assert response.status_code == 422
    assert response.json()["code"] == "invalid_allowance"


def test_submit_before_commit_is_refused(client, session_id):
    _first_set(client, session_id)

    with patch("roll_planner.services.external_clients.requests.post") as post:
        response = client.post(f"/api/planning/sessions/{session_id}/submit")

    assert response.status_code == 409
    post.assert_not_called()


def test_submit_failure_surfaces_upstream_detail(client, session_id):
    set_id = _first_set(client, session_id)
    client.post(
        f"/api/planning/sessions/{session_id}/sets/{set_id}/cut-rolls",
        json={"width_inches": 30, "quantity": 1, "client_id": "client-1"},
    )
    client.post(f"/api/planning/sessions/{session_id}/allowance/commit")
    upstream = MagicMock(status_code=400, text="")
    upstream.json.return_value = {"detail": "Paper specification not found"}

    with patch("roll_planner.services.external_clients.requests.post", return_value=upstream):
        response = client.post(f"/api/planning/sessions/{session_id}/submit")

    assert response.status_code == 502
    assert response.json()["detail"] == "Paper specification not found"
    assert response.json()["upstream_status"] == 400
    tree = client.get(f"/api/planning/sessions/{session_id}/tree").json()
    assert tree["counts"]["cut_rolls"] == 1


def test_layout_segments(client):
    response = client.post("/api/layout/segments", json={
        "items": [
            {"width": 50, "code": "CR_00003"},
            {"width": 50, "code": "CR_00001"},
            {"width": 50, "code": "CR_00002"},
        ],
        "max_allowed_width": 123,
    })

    assert response.status_code == 200
    segments = response.json()["segments"]
    assert [s["codes"] for s in segments] == [["CR_00001", "CR_00002"], ["CR_00003"]]
    assert [s["waste"] for s in segments] == [23, 73]


def test_jumbo_labels(client):
    response = client.post("/api/layout/jumbo-labels", json={"raw_ids": ["9F2C1A0B", "1A2B3C4D", "JR_00004"]})

    assert response.json()["labels"] == {
        "1A2B3C4D": "JR-00001",
        "9F2C1A0B": "JR-00002",
        "JR_00004": "JR_00004",
    }


def test_wastage_extract_and_validate(client):
    response = client.post("/api/wastage/extract", json={
        "source_plan_id": "plan-1",
        "cut_rolls": [
            {"individual_roll_number": 1, "trim_left": 9.0, "gsm": 180, "bf": 18, "shade": "Golden",
             "paper_id": "paper-1", "width_inches": 30},
            {"individual_roll_number": 2, "trim_left": 8.9, "gsm": 180, "bf": 18, "shade": "Golden",
             "paper_id": "paper-1", "width": 30},
        ],
    })

    body = response.json()
    assert body["total_wastage_count"] == 1
    assert body["validation"]["valid"]

    report = client.post("/api/wastage/validate", json={"items": [{"width_inches": 30}]}).json()
    assert not report["valid"]
    assert len(report["errors"]) == 3
