import logging
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.api.deps import get_order_processor
from app.core.errors import PersistenceError
from app.main import app

from conftest import BURGER_ID, FRIES_ID

ORDERS_URL = "/api/v1/orders/"


@pytest_asyncio.fixture
async def client(services):
    # ASGITransport does not run the lifespan; wire the services by hand
    app.state.services = services
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def order_body(catalog):
    def _body(items=((BURGER_ID, 2, "12.99"),), **overrides):
        body = {
            "user_id": catalog.user.id,
            "restaurant_id": catalog.restaurant.id,
            "address_id": catalog.address.id,
            "items": [{"menu_item_id": i, "quantity": q, "price": p} for i, q, p in items],
            "payment_method": "CREDIT_CARD",
            "delivery_fee": "3.99",
            "tax": "1.04",
        }
        body.update(overrides)
        return body
    return _body


async def _place(client, order_body, **kwargs):
    response = await client.post(ORDERS_URL, json=order_body(**kwargs))
    assert response.status_code == 201, response.text
    return response.json()["data"]["order"]


class TestCreateOrder:

    @pytest.mark.asyncio
    async def test_create_order_success(self, client, order_body):
        response = await client.post(ORDERS_URL, json=order_body())

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        order = body["data"]["order"]
        assert order["order_number"].startswith("ORD-")
        assert order["status"] == "CONFIRMED"
        assert order["total_amount"] == "31.01"
        assert order["items"][0]["price_at_time"] == "12.99"
        payment = body["data"]["payment"]
        assert payment["amount"] == "31.01"
        assert payment["status"] == "COMPLETED"
        assert payment["transaction_id"].startswith("TXN-")

    @pytest.mark.asyncio
    async def test_create_order_logs_placement(self, client, order_body, catalog, caplog):
        caplog.set_level(logging.INFO, logger="app.api.v1.orders")

        order = await _place(client, order_body)

        record = next(r for r in caplog.records if r.name == "app.api.v1.orders")
        assert record.args == (order["order_number"], catalog.user.id)
        assert record.getMessage() == f"Order {order['order_number']} placed for user {catalog.user.id}."

    @pytest.mark.asyncio
    async def test_insufficient_stock_is_conflict(self, client, order_body, snapshot):
        before = await snapshot()

        response = await client.post(ORDERS_URL, json=order_body(items=((BURGER_ID, 5, "12.99"),)))

        assert response.status_code == 409
        error = response.json()["error"]
        assert error["code"] == "insufficient_stock"
        assert error["message"] == "Insufficient stock for item Classic Burger"
        assert error["details"]["available"] == 3
        assert await snapshot() == before

    @pytest.mark.asyncio
    async def test_unknown_address_is_bad_request(self, client, order_body):
        response = await client.post(ORDERS_URL, json=order_body(address_id=999))

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "reference_not_found"

    @pytest.mark.asyncio
    async def test_stale_price_is_bad_request(self, client, order_body):
        response = await client.post(ORDERS_URL, json=order_body(items=((FRIES_ID, 1, "2.99"),)))

        assert response.status_code == 400
        assert "has changed" in response.json()["error"]["message"]

    @pytest.mark.asyncio
    async def test_empty_items_rejected(self, client, order_body):
        response = await client.post(ORDERS_URL, json=order_body(items=()))

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "validation_error"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["delivery_fee", "tax", "discount"])
    async def test_oversized_fee_is_rejected(self, client, order_body, snapshot, field):
        before = await snapshot()

        response = await client.post(ORDERS_URL, json=order_body(**{field: "1e30"}))

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "validation_error"
        assert error["details"][0]["loc"][-1] == field
        assert await snapshot() == before

    @pytest.mark.asyncio
    async def test_fee_with_sub_cent_digits_is_rejected(self, client, order_body):
        response = await client.post(ORDERS_URL, json=order_body(tax="1.045"))

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_simulate_failure_needs_fault_injection(self, client, order_body, snapshot):
        before = await snapshot()

        response = await client.post(ORDERS_URL, json=order_body(simulate_failure=True))

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "http_error"
        assert await snapshot() == before

    @pytest.mark.asyncio
    async def test_simulate_failure_rolls_back(self, client, order_body, snapshot, monkeypatch):
        monkeypatch.setattr("app.core.config.ENABLE_FAULT_INJECTION", True)
        before = await snapshot()

        response = await client.post(ORDERS_URL, json=order_body(simulate_failure=True))

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "forced_failure"
        assert error["message"] == "Forced failure to demonstrate rollback"
        assert await snapshot() == before


class TestOrderQueries:

    @pytest.mark.asyncio
    async def test_get_order_detail(self, client, order_body):
        order = await _place(client, order_body)

        response = await client.get(f"{ORDERS_URL}{order['id']}")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["items"][0]["name"] == "Classic Burger"
        assert data["payment"]["amount"] == "31.01"
        assert [e["status"] for e in data["tracking"]] == ["PENDING", "CONFIRMED"]

    @pytest.mark.asyncio
    async def test_get_missing_order(self, client):
        response = await client.get(f"{ORDERS_URL}999")

        assert response.status_code == 404
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_tracking_endpoint(self, client, order_body):
        order = await _place(client, order_body)

        response = await client.get(f"{ORDERS_URL}{order['id']}/tracking")

        assert [e["notes"] for e in response.json()["data"]] == ["Order received", "Payment completed"]

    @pytest.mark.asyncio
    async def test_tracking_for_missing_order(self, client):
        response = await client.get(f"{ORDERS_URL}999/tracking")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_list_orders_paginates(self, client, order_body):
        for _ in range(3):
            await _place(client, order_body, items=((FRIES_ID, 1, "3.49"),))

        response = await client.get(ORDERS_URL, params={"page": 1, "limit": 2})

        body = response.json()
        assert len(body["data"]) == 2
        assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "total_pages": 2}

    @pytest.mark.asyncio
    async def test_list_orders_by_status(self, client, order_body):
        await _place(client, order_body)

        confirmed = await client.get(ORDERS_URL, params={"status": "CONFIRMED"})
        delivered = await client.get(ORDERS_URL, params={"status": "DELIVERED"})

        assert confirmed.json()["pagination"]["total"] == 1
        assert delivered.json()["pagination"]["total"] == 0


class TestOrderUpdates:

    @pytest.mark.asyncio
    async def test_patch_status(self, client, order_body):
        order = await _place(client, order_body)

        response = await client.patch(
            f"{ORDERS_URL}{order['id']}", json={"status": "PREPARING", "notes": "Kitchen started"}
        )

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "PREPARING"

    @pytest.mark.asyncio
    async def test_patch_backwards_is_conflict(self, client, order_body):
        order = await _place(client, order_body)
        await client.patch(f"{ORDERS_URL}{order['id']}", json={"status": "OUT_FOR_DELIVERY"})

        response = await client.patch(f"{ORDERS_URL}{order['id']}", json={"status": "PREPARING"})

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "invalid_status_transition"

    @pytest.mark.asyncio
    async def test_patch_unknown_status_value(self, client, order_body):
        order = await _place(client, order_body)

        response = await client.patch(f"{ORDERS_URL}{order['id']}", json={"status": "TELEPORTED"})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_cancel_then_cancel_again(self, client, order_body):
        order = await _place(client, order_body)

        first = await client.delete(f"{ORDERS_URL}{order['id']}")
        second = await client.delete(f"{ORDERS_URL}{order['id']}")

        assert first.status_code == 200
        assert first.json()["data"]["status"] == "CANCELLED"
        assert second.status_code == 409

    @pytest.mark.asyncio
    async def test_cancel_missing_order(self, client):
        response = await client.delete(f"{ORDERS_URL}999")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "not_found"


class TestInventoryRoutes:

    @pytest.mark.asyncio
    async def test_stock_level(self, client, catalog):
        response = await client.get(f"/api/v1/inventory/{BURGER_ID}")

        assert response.status_code == 200
        assert response.json()["available_qty"] == 3

    @pytest.mark.asyncio
    async def test_restock(self, client, catalog):
        response = await client.post(f"/api/v1/inventory/{BURGER_ID}/restock", json={"quantity": 5})

        assert response.status_code == 200
        assert response.json()["data"]["available_qty"] == 8

    @pytest.mark.asyncio
    async def test_add_restaurant_and_item(self, client, db):
        created = await client.post("/api/v1/inventory/restaurants", json={"name": "Taco Stand"})
        restaurant_id = created.json()["data"]["restaurant_id"]

        response = await client.post(
            f"/api/v1/inventory/restaurants/{restaurant_id}/items",
            json={"name": "Al Pastor", "price": "4.50", "initial_qty": 40},
        )

        assert response.status_code == 201
        assert response.json()["data"]["initial_stock"] == 40


@pytest.mark.asyncio
async def test_store_failure_maps_to_500():
    """Processor errors surface through the error envelope without touching the DB."""
    processor = MagicMock()
    processor.create_order = AsyncMock(side_effect=PersistenceError("Order could not be stored"))
    app.dependency_overrides[get_order_processor] = lambda: processor
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.post(ORDERS_URL, json={
                "user_id": 1,
                "restaurant_id": 1,
                "address_id": 1,
                "items": [{"menu_item_id": BURGER_ID, "quantity": 1}],
            })
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "persistence_error"
    processor.create_order.assert_awaited_once()
