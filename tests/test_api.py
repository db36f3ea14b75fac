import socket

import pytest

from api.server import app


@pytest.fixture
def client():
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


def test_rejects_empty_body(client) -> None:
    response = client.post("/api/scan", data="", content_type="application/json")
    assert response.status_code == 400


@pytest.mark.parametrize("body", [[1], "10.0.0.1", 80])
def test_rejects_non_object_body(client, body) -> None:
    response = client.post("/api/scan", json=body)
    assert response.status_code == 400
    assert "JSON object" in response.get_json()["error"]


def test_requires_hosts_and_ports(client) -> None:
    response = client.post("/api/scan", json={"hosts": "10.0.0.1"})
    assert response.status_code == 400
    assert "required" in response.get_json()["error"]


@pytest.mark.parametrize("body", [
    {"hosts": "10.0.0.999", "ports": "80"},
    {"hosts": "10.0.0.1", "ports": "81-80"},
    {"hosts": "10.0.0.1", "ports": "80", "sockets": 4096},
    {"hosts": "10.0.0.1", "ports": "80", "timeout": 1, "poll_interval_ms": 5000},
    {"hosts": "10.0.0.1", "ports": "80", "sockets": "many"},
])
def test_rejects_invalid_configuration(client, body) -> None:
    response = client.post("/api/scan", json=body)
    assert response.status_code == 400


def test_scans_loopback(client) -> None:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as listener:
        listener.bind(("127.0.0.1", 0))
        listener.listen(4)
        port = listener.getsockname()[1]

        response = client.post("/api/scan", json={
            "hosts": "127.0.0.1", "ports": str(port), "timeout": 1, "poll_interval_ms": 50,
        })

    assert response.status_code == 200
    summary = response.get_json()["summary"]
    assert summary["open_found"] == 1
    assert summary["open_ports"][0]["port"] == port
    assert summary["issued"] == summary["total"] == 1
