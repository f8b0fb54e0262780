from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from config.settings import ServerConfig
from indexer.errors import SnapshotLoadError
from server.http_api import create_app
from server.mcp_server import DocsMCPServer


@pytest.fixture
def client(mcp_server):
    with TestClient(create_app(mcp_server)) as test_client:
        yield test_client


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert data["docCount"] == 2
    assert data["name"] == "test-docs"


def test_health_reports_provider(client):
    provider = client.get("/health").json()["provider"]
    assert provider["healthy"] is True
    assert "2 documents" in provider["message"]


def test_unhealthy_provider_returns_503(client, mcp_server):
    with patch.object(mcp_server.provider, "health_check",
                      return_value={"healthy": False, "message": "index corrupted"}):
        r = client.get("/health")
    assert r.status_code == 503
    assert r.json()["status"] == "unhealthy"
    assert r.json()["provider"]["message"] == "index corrupted"


def test_health_before_startup(mcp_server):
    client = TestClient(create_app(mcp_server))
    r = client.get("/health")
    assert r.status_code == 503
    assert r.json()["initialized"] is False


def test_mcp_tool_call(client):
    r = client.post("/mcp", json={
        "jsonrpc": "2.0",
        "id": 7,
        "method": "tools/call",
        "params": {"name": "docs_search", "arguments": {"query": "OAuth", "limit": 3}},
    })
    assert r.status_code == 200
    data = r.json()
    assert data["id"] == 7
    assert "Authentication" in data["result"]["content"][0]["text"]


def test_mcp_notification_is_accepted(client):
    r = client.post("/mcp", json={"jsonrpc": "2.0", "method": "notifications/initialized"})
    assert r.status_code == 202


def test_mcp_rejects_batches(client):
    r = client.post("/mcp", json=[{"jsonrpc": "2.0", "id": 1, "method": "ping"}])
    assert r.status_code == 400


def test_mcp_invalid_json(client):
    r = client.post("/mcp", content="invalid json", headers={"content-type": "application/json"})
    assert r.status_code == 422


def test_metrics_endpoint(client):
    client.post("/mcp", json={
        "jsonrpc": "2.0", "id": 1, "method": "tools/call",
        "params": {"name": "docs_search", "arguments": {"query": "npm"}},
    })
    r = client.get("/metrics")
    assert r.status_code == 200
    assert "docs_mcp_tool_calls_total" in r.text
    assert "docs_mcp_documents_loaded" in r.text


def test_startup_fails_without_snapshot(tmp_path):
    server = DocsMCPServer(ServerConfig.from_output_dir(tmp_path))
    with pytest.raises(SnapshotLoadError):
        with TestClient(create_app(server)):
            pass
