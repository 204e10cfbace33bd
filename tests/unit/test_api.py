"""
Unit tests for the webhook HTTP endpoints
"""

import pytest
from docker.errors import APIError, DockerException

from services.webhook.app import create_app
from services.webhook.errors import ConflictError
from services.webhook.settings import Settings
from tests.fixtures.swarm_services import FakeSwarmAdapter, service_attrs, webhook_labels


@pytest.fixture
def build_app():
    """Build webhook apps over a fake swarm"""
    apps = []

    def factory(services, **settings_kwargs):
        adapter = FakeSwarmAdapter(services)
        slept = []
        app = create_app(
            settings=Settings(**settings_kwargs),
            docker_adapter=adapter,
            start_background=False,
            sleep=slept.append,
        )
        app.config["TESTING"] = True
        apps.append(app)
        return app.test_client(), adapter, slept

    yield factory
    for app in apps:
        app.extensions["swarm_webhook"]["scaler"].close()
        app.extensions["swarm_webhook"]["cache"].stop()


@pytest.mark.unit
class TestListEndpoint:
    """Test cases for GET /"""

    def test_empty_cache_returns_empty_list(self, build_app):
        client, _, _ = build_app([service_attrs("s1", "web", {})])

        response = client.get("/")

        assert response.status_code == 200
        assert response.get_json() == []

    def test_lists_enabled_services(self, build_app):
        labels = webhook_labels("api")
        client, _, _ = build_app([
            service_attrs("s1", "web", labels),
            service_attrs("s2", "db", {"swarm.webhook.enabled": "false"}),
        ])

        response = client.get("/")

        assert response.get_json() == [{
            "name": "web",
            "labels": labels,
            "createdAt": "2025-09-19T00:00:00.000000000Z",
            "updatedAt": "2025-09-19T00:00:10.000000000Z",
        }]

    def test_serves_cache_snapshot(self, build_app):
        client, adapter, _ = build_app([service_attrs("s1", "web", webhook_labels("api"))])
        calls = adapter.list_calls
        adapter.set_attrs(service_attrs("s2", "worker", webhook_labels("jobs")))

        response = client.get("/")

        assert [s["name"] for s in response.get_json()] == ["web"]
        assert adapter.list_calls == calls

    def test_live_listing_when_polling_disabled(self, build_app):
        client, adapter, _ = build_app([], refresh_interval_ms=0)
        adapter.set_attrs(service_attrs("s1", "web", webhook_labels("api")))

        response = client.get("/")

        assert [s["name"] for s in response.get_json()] == ["web"]

    def test_live_listing_docker_error(self, build_app):
        client, adapter, _ = build_app([], refresh_interval_ms=0)
        adapter.list_error = DockerException("socket unavailable")

        response = client.get("/")

        assert response.status_code == 502
        assert "socket unavailable" in response.get_json()["error"]


@pytest.mark.unit
class TestStartEndpoint:
    """Test cases for GET /start/<name>"""

    def test_start_scales_to_label_replicas(self, build_app):
        client, adapter, _ = build_app([
            service_attrs("s1", "web", webhook_labels("api", replicas="3"), replicas=1),
        ])

        response = client.get("/start/api")

        assert response.status_code == 200
        assert response.get_json() == [{"id": "s1", "name": "web", "replicas": 3, "warnings": []}]
        assert len(adapter.updates) == 1
        assert adapter.replicas("s1") == 3

    def test_start_unknown_name(self, build_app):
        client, adapter, _ = build_app([service_attrs("s1", "web", webhook_labels("api"))])

        response = client.get("/start/nothing")

        assert response.status_code == 200
        assert response.get_json() == []
        assert adapter.updates == []

    def test_start_strict_label_policy(self, build_app):
        client, adapter, _ = build_app(
            [service_attrs("s1", "web", webhook_labels("api", replicas="abc"))],
            replicas_label_policy="strict",
        )

        response = client.get("/start/api")

        assert response.status_code == 400
        assert "abc" in response.get_json()["error"]
        assert adapter.updates == []

    def test_start_resolve_error(self, build_app):
        client, adapter, _ = build_app([service_attrs("s1", "web", webhook_labels("api"))])
        adapter.list_error = APIError("500 Server Error", explanation="swarm is not initialized")

        response = client.get("/start/api")

        assert response.status_code == 502
        assert "swarm is not initialized" in response.get_json()["error"]


@pytest.mark.unit
class TestStopEndpoint:
    """Test cases for GET /stop/<name>"""

    def test_stop_two_services(self, build_app):
        client, adapter, _ = build_app([
            service_attrs("s1", "web", webhook_labels("api"), replicas=2),
            service_attrs("s2", "worker", webhook_labels("api"), replicas=1),
        ])

        response = client.get("/stop/api")

        body = response.get_json()
        assert response.status_code == 200
        assert [entry["id"] for entry in body] == ["s1", "s2"]
        assert all(entry["replicas"] == 0 for entry in body)
        assert len(adapter.updates) == 2

    def test_stop_twice(self, build_app):
        client, adapter, _ = build_app([service_attrs("s1", "web", webhook_labels("api"))])

        assert client.get("/stop/api").status_code == 200
        assert client.get("/stop/api").status_code == 200
        assert adapter.replicas("s1") == 0

    def test_conflict_reported(self, build_app):
        client, adapter, _ = build_app([
            service_attrs("s1", "web", webhook_labels("api")),
            service_attrs("s2", "worker", webhook_labels("api")),
        ])
        adapter.update_errors["s2"] = ConflictError("s2", 10)

        response = client.get("/stop/api")

        body = response.get_json()
        assert response.status_code == 409
        assert body["error"] == "stop 'api' failed for 1 of 2 services"
        assert body["results"][0] == {"id": "s1", "name": "web", "replicas": 0, "warnings": []}
        assert "out of date" in body["results"][1]["error"]

    def test_docker_failure_reported(self, build_app):
        client, adapter, _ = build_app([service_attrs("s1", "web", webhook_labels("api"))])
        adapter.update_errors["s1"] = APIError("500 Server Error", explanation="node unavailable")

        response = client.get("/stop/api")

        assert response.status_code == 502
        assert "node unavailable" in response.get_json()["results"][0]["error"]


@pytest.mark.unit
class TestRestartEndpoint:
    """Test cases for GET /restart/<name>"""

    def test_restart(self, build_app):
        client, adapter, slept = build_app(
            [service_attrs("s1", "web", webhook_labels("api"), replicas=2, version=40)],
            restart_delay_ms=1500,
        )

        response = client.get("/restart/api")

        assert response.status_code == 200
        assert response.get_json() == [{"id": "s1", "name": "web", "replicas": 1, "warnings": []}]
        assert slept == [1.5]
        assert [u["version"] for u in adapter.updates] == [40, 41]
        assert adapter.replicas("s1") == 1


@pytest.mark.unit
class TestHealthEndpoint:
    """Test cases for GET /health"""

    def test_healthy_after_initial_refresh(self, build_app):
        client, _, _ = build_app([service_attrs("s1", "web", webhook_labels("api"))])

        data = client.get("/health").get_json()

        assert data["status"] == "healthy"
        assert data["cache"]["services_count"] == 1

    def test_degraded_after_failed_refresh(self, build_app):
        client, adapter, _ = build_app([])
        adapter.list_error = DockerException("socket unavailable")
        client.application.extensions["swarm_webhook"]["cache"]._tick()

        data = client.get("/health").get_json()

        assert data["status"] == "degraded"
        assert "socket unavailable" in data["warnings"][0]


@pytest.mark.unit
def test_initial_refresh_failure_aborts_startup():
    adapter = FakeSwarmAdapter([])
    adapter.list_error = DockerException("socket unavailable")
    with pytest.raises(DockerException):
        create_app(settings=Settings(), docker_adapter=adapter, start_background=False)
