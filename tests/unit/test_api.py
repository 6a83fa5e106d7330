"""Tests for the curation API routes."""

import pytest
from fastapi.testclient import TestClient

from bjj_curator import __version__
from bjj_curator.api import dependencies
from bjj_curator.api.server import create_app


@pytest.fixture
def client(sample_config):
    """Test client with the worker launcher disabled."""
    app = create_app(sample_config, start_scheduler=False)
    with TestClient(app) as test_client:
        dependencies.get_orchestrator().launcher = None
        yield test_client
    dependencies.reset_dependencies()


def start_run(client) -> str:
    response = client.post("/api/curation/runs", json={"run_type": "manual"})
    assert response.status_code == 202
    return response.json()["run_id"]


class TestHealth:
    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "version": __version__}


class TestRuns:
    def test_start_run(self, client):
        response = client.post("/api/curation/runs", json={"run_type": "manual"})
        assert response.status_code == 202
        body = response.json()
        assert body["status"] == "running"
        assert body["run_id"]

    def test_start_without_body_defaults_to_manual(self, client):
        run_id = client.post("/api/curation/runs").json()["run_id"]
        assert client.get(f"/api/curation/runs/{run_id}").json()["run_type"] == "manual"

    def test_second_start_conflicts(self, client):
        run_id = start_run(client)
        response = client.post("/api/curation/runs", json={"run_type": "manual"})
        assert response.status_code == 409
        assert run_id in response.json()["detail"]

    def test_invalid_run_type(self, client):
        response = client.post("/api/curation/runs", json={"run_type": "hourly"})
        assert response.status_code == 422

    def test_get_run(self, client):
        run_id = start_run(client)
        response = client.get(f"/api/curation/runs/{run_id}")
        assert response.status_code == 200
        body = response.json()
        assert body["id"] == run_id
        assert body["status"] == "running"
        assert body["skip_breakdown"] == {"duration": 0, "duplicates": 0, "quota": 0, "other": 0}

    def test_get_unknown_run(self, client):
        response = client.get("/api/curation/runs/does-not-exist")
        assert response.status_code == 404
        assert response.json()["detail"] == "Run not found"

    def test_list_runs(self, client):
        run_id = start_run(client)
        client.portal.call(dependencies.get_orchestrator().complete, run_id, 10, 1, 100)
        start_run(client)

        body = client.get("/api/curation/runs").json()
        assert body["total"] == 2

        completed = client.get("/api/curation/runs", params={"status": "completed"}).json()
        assert [run["id"] for run in completed["runs"]] == [run_id]

        assert client.get("/api/curation/runs", params={"limit": 1}).json()["total"] == 1
        assert client.get("/api/curation/runs", params={"limit": 0}).status_code == 422

    def test_progress(self, client):
        run_id = start_run(client)
        feed = dependencies.get_progress_feed()
        client.portal.call(feed.publish, run_id, {"type": "progress", "message": "Searching armbar"})

        body = client.get(f"/api/curation/runs/{run_id}/progress").json()
        assert body["status"] == "running"
        assert body["messages"] == [{"type": "progress", "message": "Searching armbar"}]

    def test_progress_unknown_run(self, client):
        assert client.get("/api/curation/runs/nope/progress").status_code == 404


class TestEligibilityAndStats:
    def test_eligibility(self, client):
        body = client.get("/api/curation/eligibility").json()
        assert body["eligible"] is True
        assert body["quota_remaining"] == 9500

        start_run(client)
        body = client.get("/api/curation/eligibility", params={"run_type": "scheduled"}).json()
        assert body["eligible"] is False

    def test_stats(self, client):
        run_id = start_run(client)
        client.portal.call(dependencies.get_orchestrator().complete, run_id, 40, 4, 300)

        body = client.get("/api/curation/stats").json()
        assert body["runs"]["total_runs"] == 1
        assert body["runs"]["videos_added"] == 4
        assert body["runs"]["approval_rate"] == 10.0
        assert body["last_24h"]["total_runs"] == 1
        assert body["library_total"] == 0
        assert body["techniques"] == []
        assert body["quota"]["units_limit"] == 10000


class TestExhaustion:
    def test_list_and_clear(self, client):
        tracker = dependencies.get_exhaustion_tracker()
        for _ in range(5):
            client.portal.call(tracker.record_empty_search, "Gordon Ryan")
        client.portal.call(tracker.record_empty_search, "armbar")

        body = client.get("/api/curation/exhaustion").json()
        assert body["cooling"] == 1
        assert [s["source"] for s in body["sources"]] == ["gordon ryan", "armbar"]

        cooling = client.get("/api/curation/exhaustion", params={"cooling_only": True}).json()
        assert [s["display_name"] for s in cooling["sources"]] == ["Gordon Ryan"]

        response = client.delete("/api/curation/exhaustion/Gordon Ryan")
        assert response.status_code == 200
        assert client.get("/api/curation/exhaustion").json()["cooling"] == 0

    def test_clear_unknown_source(self, client):
        assert client.delete("/api/curation/exhaustion/nobody").status_code == 404


class TestWebSocket:
    def test_unknown_run(self, client):
        with client.websocket_connect("/ws/curation/nope") as websocket:
            assert websocket.receive_json() == {"type": "error", "message": "Run not found"}

    def test_status_history_and_live_messages(self, client):
        run_id = start_run(client)
        feed = dependencies.get_progress_feed()
        client.portal.call(feed.publish, run_id, {"type": "progress", "message": "before connect"})

        with client.websocket_connect(f"/ws/curation/{run_id}") as websocket:
            status = websocket.receive_json()
            assert status["type"] == "status"
            assert status["run"]["id"] == run_id
            assert websocket.receive_json()["message"] == "before connect"

            websocket.send_text("ping")
            assert websocket.receive_text() == "pong"

            client.portal.call(feed.publish, run_id, {"type": "progress", "message": "live"})
            assert websocket.receive_json()["message"] == "live"
