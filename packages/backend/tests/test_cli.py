"""CLI tests — click commands against a mocked HTTP backend."""

import json

import httpx
import pytest
from click.testing import CliRunner

from cafe_orders.auth.jwt import verify_token
from cafe_orders.cli import main as cli

ORDER = {
    "id": "a" * 32,
    "table_number": 4,
    "customer_name": None,
    "line_items": [
        {"menu_item_id": "m1", "quantity": 2, "menu_item": {"name": "Flat White"}}
    ],
    "total": 9.5,
    "status": "preparing",
    "estimated_time_minutes": 15.0,
    "estimated_time_set_at": "2026-10-19T10:00:00Z",
    "created_at": "2026-10-19T09:55:00Z",
}


@pytest.fixture
def requests_seen(monkeypatch):
    """Route the CLI's HTTP client to an in-process mock backend."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/api/v1/staff/orders":
            return httpx.Response(200, json=[ORDER])
        if request.url.path.endswith("/missing/status"):
            return httpx.Response(404, json={"detail": "Order missing not found"})
        if request.method == "DELETE":
            return httpx.Response(200, json={"id": ORDER["id"]})
        return httpx.Response(200, json=ORDER)

    def fake_client(token=None):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        return httpx.AsyncClient(
            transport=httpx.MockTransport(handler),
            base_url="http://test",
            headers=headers,
        )

    monkeypatch.setattr(cli, "_client", fake_client)
    monkeypatch.setenv("CAFE_TOKEN", "tok")
    return seen


def test_orders_table(requests_seen):
    result = CliRunner().invoke(cli.main, ["orders"])
    assert result.exit_code == 0, result.output
    assert "2x Flat White" in result.output
    assert requests_seen[0].headers["Authorization"] == "Bearer tok"


def test_set_time_sends_minutes(requests_seen):
    result = CliRunner().invoke(cli.main, ["set-time", ORDER["id"], "15"])
    assert result.exit_code == 0, result.output
    request = requests_seen[0]
    assert request.method == "PUT"
    assert request.url.path == f"/api/v1/staff/orders/{ORDER['id']}/time"
    assert json.loads(request.content) == {"minutes": 15.0}


def test_set_status_rejects_pending_locally(requests_seen):
    result = CliRunner().invoke(cli.main, ["set-status", ORDER["id"], "pending"])
    assert result.exit_code != 0
    assert requests_seen == []


def test_set_status_reports_api_error(requests_seen):
    result = CliRunner().invoke(cli.main, ["set-status", "missing", "done"])
    assert result.exit_code == 1
    assert "404" in result.output


def test_delete_with_confirmation_flag(requests_seen):
    result = CliRunner().invoke(cli.main, ["delete", ORDER["id"], "--yes"])
    assert result.exit_code == 0, result.output
    assert requests_seen[0].method == "DELETE"


def test_staff_commands_need_a_token(monkeypatch):
    monkeypatch.delenv("CAFE_TOKEN", raising=False)
    result = CliRunner().invoke(cli.main, ["orders"])
    assert result.exit_code == 1


def test_issue_token():
    result = CliRunner().invoke(cli.main, ["issue-token", "alice", "--role", "admin"])
    assert result.exit_code == 0
    payload = verify_token(result.output.strip())
    assert payload["sub"] == "alice"
    assert payload["role"] == "admin"
