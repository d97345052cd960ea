"""
Tests for the JobControl HTTP API.

The app's lifespan creates the served group ("api") with a 10ms tick.
Each test gets a fresh group: shutdown_job_control() runs before and
after the client.
"""

import time

import pytest
from fastapi.testclient import TestClient

from src import __version__
from src.api._jobcontrol_state import get_job_control, shutdown_job_control
from src.api.main import app


TEST_API_KEY = "test-secret-key-12345"


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setenv("JOBCONTROL_POLL_INTERVAL", "0.01")
    monkeypatch.setenv("JOBCONTROL_GROUP", "api")
    shutdown_job_control()
    with TestClient(app) as test_client:
        yield test_client
    shutdown_job_control()


@pytest.fixture
def auth_client(client, monkeypatch):
    monkeypatch.setenv("API_AUTH_ENABLED", "true")
    monkeypatch.setenv("API_KEY", TEST_API_KEY)
    return client


def delete_plan(*paths) -> dict:
    return {
        "jobs": [
            {"name": f"rm{i}", "kind": "delete", "path": str(p), "optional": True}
            for i, p in enumerate(paths)
        ]
    }


def wait_for_status(client, predicate, timeout: float = 5.0) -> dict:
    deadline = time.monotonic() + timeout
    status = client.get("/jobcontrol/status").json()
    while not predicate(status) and time.monotonic() < deadline:
        time.sleep(0.02)
        status = client.get("/jobcontrol/status").json()
    return status


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "version": __version__}


class TestStatus:

    def test_initial_status(self, client):
        """The loop is created on startup but not started."""
        response = client.get("/jobcontrol/status")

        assert response.status_code == 200
        data = response.json()
        assert data["group"] == "api"
        assert data["thread_state"] == "READY"
        assert data["ticks"] == 0
        assert data["all_finished"] is True
        assert data["error"] is None


class TestPlans:

    def test_register_plan(self, client, tmp_path):
        response = client.post("/jobcontrol/plans", json=delete_plan(tmp_path / "a", tmp_path / "b"))

        assert response.status_code == 200
        data = response.json()
        assert data["group"] == "api"
        assert data["job_ids"] == {"rm0": "api0", "rm1": "api1"}

    def test_ids_continue_across_plans(self, client, tmp_path):
        client.post("/jobcontrol/plans", json=delete_plan(tmp_path / "a"))
        response = client.post("/jobcontrol/plans", json=delete_plan(tmp_path / "b"))

        assert response.json()["job_ids"] == {"rm0": "api1"}

    def test_invalid_plan_rejected(self, client):
        plan = {"jobs": [{"name": "a", "kind": "delete", "path": "x", "depends_on": ["ghost"]}]}
        response = client.post("/jobcontrol/plans", json=plan)

        assert response.status_code == 422
        assert get_job_control().group.all_jobs() == []

    def test_cyclic_plan_rejected_and_loop_keeps_running(self, client, tmp_path):
        client.post("/jobcontrol/plans", json=delete_plan(tmp_path / "healthy"))
        cyclic = {
            "jobs": [
                {"name": "a", "kind": "delete", "path": "a", "depends_on": ["b"]},
                {"name": "b", "kind": "delete", "path": "b", "depends_on": ["a"]},
            ]
        }

        response = client.post("/jobcontrol/plans", json=cyclic)
        assert response.status_code == 422

        client.post("/jobcontrol/start")
        status = wait_for_status(client, lambda s: s["all_finished"])
        assert status["thread_state"] == "RUNNING"
        assert status["counts"]["succeeded"] == 1
        assert status["error"] is None


class TestJobs:

    def test_list_jobs(self, client, tmp_path):
        client.post("/jobcontrol/plans", json=delete_plan(tmp_path / "a", tmp_path / "b"))

        response = client.get("/jobcontrol/jobs")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert [j["job_id"] for j in data["jobs"]] == ["api0", "api1"]
        assert data["jobs"][0]["state"] == "WAITING"
        assert data["jobs"][0]["kind"] == "delete"

    def test_list_by_bucket(self, client, tmp_path):
        client.post("/jobcontrol/plans", json=delete_plan(tmp_path / "a"))

        assert client.get("/jobcontrol/jobs", params={"bucket": "waiting"}).json()["total"] == 1
        assert client.get("/jobcontrol/jobs", params={"bucket": "running"}).json()["total"] == 0

    def test_unknown_bucket_rejected(self, client):
        response = client.get("/jobcontrol/jobs", params={"bucket": "limbo"})
        assert response.status_code == 422

    def test_get_job(self, client, tmp_path):
        plan = {
            "jobs": [
                {"name": "first", "kind": "delete", "path": str(tmp_path / "a"), "optional": True},
                {"name": "second", "kind": "delete", "path": str(tmp_path / "b"),
                 "config": {"k": "v"}, "depends_on": ["first"]},
            ]
        }
        client.post("/jobcontrol/plans", json=plan)

        response = client.get("/jobcontrol/jobs/api1")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "second"
        assert data["dependencies"] == ["api0"]
        assert data["config"] == {"k": "v"}
        assert data["message"] == "just initialized"

    def test_get_unknown_job(self, client):
        response = client.get("/jobcontrol/jobs/api42")
        assert response.status_code == 404


class TestControl:

    def test_start_runs_registered_jobs(self, client, tmp_path):
        target = tmp_path / "a.txt"
        target.write_text("x")
        client.post("/jobcontrol/plans", json=delete_plan(target, tmp_path / "missing"))

        response = client.post("/jobcontrol/start")

        assert response.status_code == 200
        assert response.json()["success"] is True
        status = wait_for_status(client, lambda s: s["all_finished"])
        assert status["all_finished"] is True
        assert status["counts"]["succeeded"] == 2
        assert not target.exists()

        detail = client.get("/jobcontrol/jobs/api0").json()
        assert detail["metrics"] == {"filesystem": {"operations": 1}}

    def test_start_is_idempotent_while_running(self, client):
        client.post("/jobcontrol/start")
        response = client.post("/jobcontrol/start")

        assert response.status_code == 200
        assert response.json()["message"] == "JobControl is already running"

    def test_suspend_and_resume(self, client):
        client.post("/jobcontrol/start")

        suspended = client.post("/jobcontrol/suspend").json()
        assert suspended["success"] is True
        assert suspended["thread_state"] == "SUSPENDED"

        resumed = client.post("/jobcontrol/resume").json()
        assert resumed["success"] is True
        assert resumed["thread_state"] == "RUNNING"

    def test_suspend_requires_running_loop(self, client):
        data = client.post("/jobcontrol/suspend").json()
        assert data["success"] is False
        assert data["thread_state"] == "READY"

    def test_resume_requires_suspended_loop(self, client):
        data = client.post("/jobcontrol/resume").json()
        assert data["success"] is False

    def test_stop_then_restart(self, client, tmp_path):
        client.post("/jobcontrol/start")
        assert client.post("/jobcontrol/stop").json()["success"] is True
        wait_for_status(client, lambda s: s["thread_state"] == "STOPPED")

        client.post("/jobcontrol/plans", json=delete_plan(tmp_path / "late"))
        response = client.post("/jobcontrol/start")

        assert response.json()["thread_state"] == "RUNNING"
        status = wait_for_status(client, lambda s: s["all_finished"])
        assert status["counts"]["succeeded"] == 1

    def test_stop_before_start(self, client):
        data = client.post("/jobcontrol/stop").json()
        assert data["thread_state"] == "STOPPED"


class TestAuth:
    """X-API-Key checks when API_AUTH_ENABLED=true."""

    def test_health_open(self, auth_client):
        assert auth_client.get("/health").status_code == 200

    def test_missing_key(self, auth_client):
        response = auth_client.get("/jobcontrol/status")
        assert response.status_code == 401
        assert "Missing API key" in response.json()["detail"]

    def test_wrong_key(self, auth_client):
        response = auth_client.get("/jobcontrol/status", headers={"X-API-Key": "nope"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid API key"

    def test_valid_key(self, auth_client):
        response = auth_client.get("/jobcontrol/status", headers={"X-API-Key": TEST_API_KEY})
        assert response.status_code == 200

    def test_enabled_without_configured_key(self, auth_client, monkeypatch):
        monkeypatch.delenv("API_KEY")
        response = auth_client.post("/jobcontrol/start", headers={"X-API-Key": "anything"})
        assert response.status_code == 401
