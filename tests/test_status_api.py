import pytest
from fastapi.testclient import TestClient

from bloom.bot import Bloom
from bloom.managers.logging_manager import LoggingManager
from bloom_api.main import create_app
from tests.conftest import make_settings
from tests.fakes import FakeDriver, InMemorySessionStore


@pytest.fixture
def store():
    store = InMemorySessionStore()
    store.set_active("bot2")
    return store


@pytest.fixture
def bloom(tmp_path, store):
    return Bloom(
        make_settings(str(tmp_path)),
        store=store,
        driver=FakeDriver(),
        logging_manager=LoggingManager(bot_name="Bloom", log_dir=str(tmp_path / "logs")),
    )


@pytest.fixture
def client(bloom):
    return TestClient(create_app(bloom))


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == "pong"


def test_status_text(client):
    response = client.get("/status")

    assert response.status_code == 200
    assert response.text == "✅ Bloom bot is online"
    assert "X-Request-ID" in response.headers


def test_uptime(client):
    body = client.get("/uptime").json()

    assert set(body) >= {"days", "hours", "minutes", "seconds"}
    assert body["days"] == 0


def test_instances_overview(client):
    body = client.get("/instances").json()

    assert body["active_instance_id"] == "bot2"
    assert body["rotation_running"] is False
    assert body["hours_until_next_rotation"] is None
    assert [i["id"] for i in body["instances"]] == ["bot1", "bot2", "bot3"]
    bot2 = body["instances"][1]
    assert bot2["is_active_instance"] is True
    assert bot2["status"] == "idle"
    assert bot2["connected"] is False
    assert bot2["resources_cached"] is False


def test_root(client):
    body = client.get("/").json()

    assert body["status"] == "/status"
    assert body["health"] == "/health"
