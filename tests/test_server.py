import pytest

from crm_integrations.core.config import Settings
from crm_integrations.jobs import server
from crm_integrations.manager import IntegrationManager
from crm_integrations.models import JobStatus, Provider


class DummyRunner:
    def __init__(self):
        self.submitted = []

    def submit(self, job, filters=None):
        self.submitted.append((job, filters))

    def shutdown(self, wait=True):
        pass


@pytest.fixture
def manager(store, monkeypatch):
    runner = DummyRunner()
    mgr = IntegrationManager(
        store,
        settings=Settings(provider_api_keys={Provider.PIPEDRIVE: "env"}),
        runner=runner,
    )
    monkeypatch.setattr(server, "get_manager", lambda: mgr)
    return mgr


@pytest.fixture
def client(manager):
    return server.app.test_client()


def test_health_endpoint(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.get_json()["status"] == "ok"
    assert "hits" in response.get_json()["cache"]


def test_search_returns_sample_data(client):
    response = client.post("/integrations/apollo/search", json={"query": "solar"}, headers={"X-User-Id": "u1"})

    body = response.get_json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["usingMockData"] is True
    assert body["source"] == "apollo"
    assert len(body["data"]) == 2

    again = client.post("/integrations/apollo/search", json={"query": "solar"}, headers={"X-User-Id": "u1"})
    assert again.get_json()["cached"] is True


def test_search_validation_errors(client):
    invalid = client.post("/integrations/salesforce/search", json={"query": "x"})
    assert invalid.status_code == 400
    assert invalid.get_json()["success"] is False
    assert invalid.get_json()["provider"] == "salesforce"
    assert invalid.get_json()["data"] == []

    assert client.post("/integrations/apollo/search", json={}).status_code == 400
    assert client.post("/integrations/apollo/search", json={"query": "x", "filters": "bad"}).status_code == 400
    assert client.post("/integrations/apollo/search", json={"query": "x", "location": [1, 2]}).status_code == 400


def test_search_rate_limited_envelope(client, manager):
    manager.rate_limiter.max_requests = 1
    client.post("/integrations/foursquare/search", json={"query": "a"}, headers={"X-User-Id": "u1"})

    response = client.post("/integrations/foursquare/search", json={"query": "b"}, headers={"X-User-Id": "u1"})

    assert response.status_code == 429
    body = response.get_json()
    assert body == {
        "success": False,
        "error": "Too many requests. Please try again later.",
        "message": "Too many requests. Please try again later.",
        "provider": "foursquare",
        "data": [],
    }


def test_status_endpoint(client):
    response = client.get("/integrations/pipedrive/status")

    assert response.status_code == 200
    assert response.get_json()["status"] == "active"
    assert response.get_json()["hasEnvironmentKey"] is True


def test_sync_requires_caller_and_configuration(client):
    assert client.post("/integrations/pipedrive/sync", json={}).status_code == 401

    response = client.post("/integrations/apollo/sync", json={}, headers={"X-User-Id": "u1"})
    assert response.status_code == 400


def test_sync_accepts_and_queues(client, manager):
    response = client.post(
        "/integrations/pipedrive/sync",
        json={"jobType": "import", "filters": {"stage": "won"}},
        headers={"X-User-Id": "u1"},
    )

    assert response.status_code == 202
    job = response.get_json()["job"]
    assert job["provider"] == "pipedrive"
    assert job["status"] == "queued"
    submitted_job, filters = manager.runner.submitted[0]
    assert submitted_job.id == job["id"]
    assert filters == {"stage": "won"}


def test_job_queries(client, manager):
    job = manager.tracker.create("u1", Provider.PIPEDRIVE, "sync")
    manager.tracker.set_status(job.id, JobStatus.RUNNING)

    listing = client.get("/integrations/sync-jobs?provider=pipedrive", headers={"X-User-Id": "u1"})
    assert listing.status_code == 200
    assert listing.get_json()["count"] == 1
    assert listing.get_json()["jobs"][0]["status"] == "running"

    assert client.get("/integrations/sync-jobs").status_code == 401
    assert client.get("/integrations/sync-jobs?limit=bad", headers={"X-User-Id": "u1"}).status_code == 400
    assert client.get("/integrations/sync-jobs?offset=-1", headers={"X-User-Id": "u1"}).status_code == 400

    own = client.get(f"/integrations/sync-jobs/{job.id}", headers={"X-User-Id": "u1"})
    assert own.status_code == 200
    assert own.get_json()["job"]["callerId"] == "u1"

    other = client.get(f"/integrations/sync-jobs/{job.id}", headers={"X-User-Id": "u2"})
    assert other.status_code == 403
    assert other.get_json() == {"error": "Forbidden"}

    missing = client.get("/integrations/sync-jobs/nope", headers={"X-User-Id": "u1"})
    assert missing.status_code == 404


def test_non_object_bodies_are_rejected_with_envelope(client):
    for body in (["solar"], "solar", 7):
        response = client.post("/integrations/apollo/search", json=body)
        assert response.status_code == 400
        assert response.get_json()["success"] is False
        assert response.get_json()["message"] == "body must be a JSON object"
        assert response.get_json()["provider"] == "apollo"

    sync = client.post("/integrations/pipedrive/sync", json=["import"], headers={"X-User-Id": "u1"})
    assert sync.status_code == 400
    assert sync.get_json()["success"] is False


def test_non_string_query_is_rejected(client):
    response = client.post("/integrations/apollo/search", json={"query": ["solar"]})

    assert response.status_code == 400
    assert response.get_json()["message"] == "query must be a string"
    assert response.get_json()["data"] == []


def test_cached_sample_response_keeps_flag(client):
    client.post("/integrations/google_maps/search", json={"query": "pizza"})

    body = client.post("/integrations/google_maps/search", json={"query": "pizza"}).get_json()

    assert body["cached"] is True
    assert body["usingMockData"] is True
    assert "message" in body
