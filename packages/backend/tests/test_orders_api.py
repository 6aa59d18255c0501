"""Order API tests — customer and staff routes over HTTP.

Pattern: seed the menu through the `menu` fixture, then drive everything
through the API and check both responses and what the hub broadcast.
"""

import json

import pytest
from sqlalchemy.exc import OperationalError

ORDER = {
    "table_number": 4,
    "line_items": [{"menu_item_id": "m1", "quantity": 2}],
    "total": 9.50,
    "customer_name": "ana",
}


@pytest.fixture
async def order(client, menu):
    resp = await client.post("/api/v1/orders", json=ORDER)
    assert resp.status_code == 201
    return resp.json()


# ═══════════════════════════════════════════════════════════
# Customer routes
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_create_order(client, menu):
    resp = await client.post("/api/v1/orders", json=ORDER)
    assert resp.status_code == 201
    data = resp.json()
    assert data["status"] == "pending"
    assert data["table_number"] == 4
    assert data["total"] == 9.50
    assert data["estimated_time_minutes"] is None
    assert data["created_at"]
    assert data["line_items"] == [
        {
            "menu_item_id": "m1",
            "quantity": 2,
            "menu_item": {
                "id": "m1",
                "name": "Flat White",
                "description": "",
                "price": 4.75,
                "category": "coffee",
                "image_url": "",
                "created_at": data["line_items"][0]["menu_item"]["created_at"],
            },
        }
    ]


@pytest.mark.asyncio
async def test_create_order_unknown_item_400(client, menu):
    body = {**ORDER, "line_items": [{"menu_item_id": "ghost", "quantity": 1}]}
    resp = await client.post("/api/v1/orders", json=body)
    assert resp.status_code == 400
    assert "ghost" in resp.json()["detail"]

    staff_view = await client.get("/api/v1/staff/orders")
    assert staff_view.json() == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "patch",
    [
        {"line_items": []},
        {"line_items": [{"menu_item_id": "m1", "quantity": 0}]},
        {"total": -1},
        {"table_number": 0},
    ],
)
async def test_create_order_malformed_422(client, menu, patch):
    resp = await client.post("/api/v1/orders", json={**ORDER, **patch})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_get_order(client, order):
    resp = await client.get(f"/api/v1/orders/{order['id']}")
    assert resp.status_code == 200
    assert resp.json()["id"] == order["id"]


@pytest.mark.asyncio
async def test_get_order_404(client):
    resp = await client.get("/api/v1/orders/nope")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_customer_list_requires_name(client):
    resp = await client.get("/api/v1/orders")
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_customer_list_filters_by_name(client, menu):
    await client.post("/api/v1/orders", json=ORDER)
    await client.post("/api/v1/orders", json={**ORDER, "customer_name": "ben"})

    resp = await client.get("/api/v1/orders", params={"customer_name": "ben"})
    assert resp.status_code == 200
    assert [o["customer_name"] for o in resp.json()] == ["ben"]


@pytest.mark.asyncio
async def test_menu_listing(client, menu):
    resp = await client.get("/api/v1/menu")
    assert resp.status_code == 200
    assert {i["id"] for i in resp.json()} == {"m1", "m2"}

    resp = await client.get("/api/v1/menu", params={"ids": "m2"})
    assert [i["name"] for i in resp.json()] == ["Croissant"]


# ═══════════════════════════════════════════════════════════
# Staff routes
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_staff_lists_all_newest_first(client, menu):
    first = (await client.post("/api/v1/orders", json=ORDER)).json()
    second = (await client.post("/api/v1/orders", json={**ORDER, "customer_name": None})).json()

    resp = await client.get("/api/v1/staff/orders")
    assert [o["id"] for o in resp.json()] == [second["id"], first["id"]]


@pytest.mark.asyncio
async def test_set_time(client, order):
    resp = await client.put(
        f"/api/v1/staff/orders/{order['id']}/time", json={"minutes": 15}
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "preparing"
    assert data["estimated_time_minutes"] == 15
    assert data["estimated_time_set_at"]


@pytest.mark.asyncio
async def test_set_time_non_positive_422(client, order):
    resp = await client.put(
        f"/api/v1/staff/orders/{order['id']}/time", json={"minutes": 0}
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_set_time_404(client):
    resp = await client.put("/api/v1/staff/orders/nope/time", json={"minutes": 5})
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_set_status_done_clears_estimate(client, order):
    await client.put(f"/api/v1/staff/orders/{order['id']}/time", json={"minutes": 15})
    resp = await client.put(
        f"/api/v1/staff/orders/{order['id']}/status", json={"status": "done"}
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "done"
    assert data["estimated_time_minutes"] is None
    assert data["estimated_time_set_at"] is None


@pytest.mark.asyncio
async def test_set_status_pending_rejected(client, order):
    resp = await client.put(
        f"/api/v1/staff/orders/{order['id']}/status", json={"status": "pending"}
    )
    assert resp.status_code == 400
    assert "Invalid status" in resp.json()["detail"]

    current = (await client.get(f"/api/v1/orders/{order['id']}")).json()
    assert current["status"] == "pending"


@pytest.mark.asyncio
async def test_set_status_404(client):
    resp = await client.put("/api/v1/staff/orders/nope/status", json={"status": "done"})
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_delete_order(client, order):
    resp = await client.delete(f"/api/v1/staff/orders/{order['id']}")
    assert resp.status_code == 200
    assert resp.json() == {"id": order["id"]}

    assert (await client.get(f"/api/v1/orders/{order['id']}")).status_code == 404
    assert (await client.delete(f"/api/v1/staff/orders/{order['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_lifecycle_broadcasts(client, app, menu, recorder):
    hub = app.state.hub
    hub.subscribe(recorder)

    order_id = (await client.post("/api/v1/orders", json=ORDER)).json()["id"]
    await client.put(f"/api/v1/staff/orders/{order_id}/time", json={"minutes": 15})
    await client.put(f"/api/v1/staff/orders/{order_id}/status", json={"status": "done"})
    await client.put(f"/api/v1/staff/orders/{order_id}/status", json={"status": "ready"})
    await client.delete(f"/api/v1/staff/orders/{order_id}")
    await hub.flush()

    assert recorder.types == ["newOrder", "orderUpdate", "orderUpdate", "orderDeleted"]
    assert recorder.messages[-1]["data"] == {"id": order_id}


# ═══════════════════════════════════════════════════════════
# Non-finite numbers and store outages
# ═══════════════════════════════════════════════════════════


def _raw_json(body: dict) -> dict:
    """Request kwargs for a body that may hold NaN/Infinity literals."""
    return {
        "content": json.dumps(body),
        "headers": {"Content-Type": "application/json"},
    }


@pytest.mark.asyncio
@pytest.mark.parametrize("total", [float("inf"), float("nan")])
async def test_create_order_non_finite_total_422(client, app, menu, recorder, total):
    app.state.hub.subscribe(recorder)
    resp = await client.post("/api/v1/orders", **_raw_json({**ORDER, "total": total}))
    assert resp.status_code == 422

    await app.state.hub.flush()
    assert recorder.messages == []
    assert (await client.get("/api/v1/staff/orders")).json() == []


@pytest.mark.asyncio
async def test_set_time_infinite_422(client, order):
    resp = await client.put(
        f"/api/v1/staff/orders/{order['id']}/time",
        **_raw_json({"minutes": float("inf")}),
    )
    assert resp.status_code == 422
    assert (await client.get(f"/api/v1/orders/{order['id']}")).json()["status"] == "pending"


def _connection_lost():
    async def fail(*args, **kwargs):
        raise OperationalError("SELECT", {}, ConnectionError("connection refused"))

    return fail


@pytest.mark.asyncio
async def test_store_outage_503(client, db_session, menu, monkeypatch):
    monkeypatch.setattr(db_session, "execute", _connection_lost())
    resp = await client.get("/api/v1/staff/orders")
    assert resp.status_code == 503
    assert resp.json() == {"detail": "Order store is unavailable"}


@pytest.mark.asyncio
async def test_store_outage_on_create_503(client, app, db_session, menu, recorder, monkeypatch):
    app.state.hub.subscribe(recorder)
    monkeypatch.setattr(db_session, "commit", _connection_lost())

    resp = await client.post("/api/v1/orders", json=ORDER)
    assert resp.status_code == 503
    assert resp.json() == {"detail": "Order store is unavailable"}

    await app.state.hub.flush()
    assert recorder.messages == []
