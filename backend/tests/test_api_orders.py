# backend/tests/test_api_orders.py
import pytest


ORDER_PAYLOAD = {
    "customer_name": "  דנה כהן ",
    "customer_phone": "050-1234567",
    "items": [
        {"product_id": "1", "product_name": "קרם", "quantity": 2, "unit_price": 50},
        {"ref": "2", "productName": "סבון", "quantity": 0, "unitPrice": "10"},
    ],
}


async def _create_order(client, headers, payload=None):
    response = await client.post("/api/orders/", json=payload or ORDER_PAYLOAD, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def test_order_totals_are_computed_on_the_server(client, auth_headers, fake_redis):
    order = await _create_order(client, auth_headers())
    assert order["customer_name"] == "דנה כהן"
    assert order["client_id"] == "user-1"
    assert order["customer_email"] == "user-1@example.com"
    assert order["status"] == "pending"
    assert [item["quantity"] for item in order["items"]] == [2, 1]
    assert order["subtotal"] == 110.0
    assert order["tax"] == 18.7
    assert order["total_amount"] == 128.7
    assert fake_redis.published[-1][0] == "db_changes:public:orders"


async def test_company_tax_rate_is_used(client, auth_headers, admin_headers):
    await client.put("/api/settings/", json={"tax_rate": 18}, headers=admin_headers)
    order = await _create_order(client, auth_headers())
    assert order["tax"] == 19.8
    assert order["total_amount"] == 129.8


async def test_order_requires_authentication_and_items(client, auth_headers):
    assert (await client.post("/api/orders/", json=ORDER_PAYLOAD)).status_code == 401

    response = await client.post("/api/orders/", json={**ORDER_PAYLOAD, "items": []}, headers=auth_headers())
    assert response.status_code == 400
    assert response.json()["success"] is False

    no_ids = {**ORDER_PAYLOAD, "items": [{"quantity": 1}]}
    response = await client.post("/api/orders/", json=no_ids, headers=auth_headers())
    assert response.status_code == 400
    assert response.json()["error"] == "Order must contain at least one item"


async def test_users_only_see_their_own_orders(client, auth_headers, admin_headers):
    mine = await _create_order(client, auth_headers("user-1"))
    theirs = await _create_order(client, auth_headers("user-2"))

    listing = (await client.get("/api/orders/", headers=auth_headers("user-1"))).json()["data"]
    assert [o["id"] for o in listing["orders"]] == [mine["id"]]
    assert listing["pagination"]["total"] == 1

    response = await client.get(f"/api/orders/{theirs['id']}", headers=auth_headers("user-1"))
    assert response.status_code == 404

    everything = (await client.get("/api/orders/", headers=admin_headers)).json()["data"]
    assert everything["pagination"]["total"] == 2


async def test_status_flow_is_enforced(client, auth_headers, admin_headers):
    order = await _create_order(client, auth_headers())
    url = f"/api/orders/{order['id']}"

    response = await client.put(url, json={"status": "confirmed"}, headers=auth_headers())
    assert response.status_code == 403

    response = await client.put(url, json={"status": "confirmed"}, headers=admin_headers)
    assert response.json()["data"]["status"] == "confirmed"

    response = await client.put(url, json={"status": "delivered"}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Cannot change order status from 'confirmed' to 'delivered'"


async def test_customer_can_cancel_pending_order(client, auth_headers):
    order = await _create_order(client, auth_headers())
    response = await client.put(f"/api/orders/{order['id']}", json={"status": "cancelled"}, headers=auth_headers())
    assert response.json()["data"]["status"] == "cancelled"

    response = await client.put(f"/api/orders/{order['id']}", json={"notes": "מאוחר מדי"}, headers=auth_headers())
    assert response.status_code == 400


async def test_editing_items_recalculates_totals(client, auth_headers):
    order = await _create_order(client, auth_headers())
    response = await client.put(
        f"/api/orders/{order['id']}",
        json={"items": [{"product_id": "1", "quantity": 1, "unit_price": 100}]},
        headers=auth_headers(),
    )
    data = response.json()["data"]
    assert data["subtotal"] == 100.0
    assert data["total_amount"] == 117.0


async def test_filter_orders_by_status(client, auth_headers, admin_headers):
    first = await _create_order(client, auth_headers())
    await _create_order(client, auth_headers())
    await client.put(f"/api/orders/{first['id']}", json={"status": "confirmed"}, headers=admin_headers)

    response = await client.get("/api/orders/", params={"status": "confirmed"}, headers=admin_headers)
    assert [o["id"] for o in response.json()["data"]["orders"]] == [first["id"]]
    assert (await client.get("/api/orders/", params={"status": "lost"}, headers=admin_headers)).status_code == 400


async def test_only_admin_deletes_orders(client, auth_headers, admin_headers):
    order = await _create_order(client, auth_headers())
    assert (await client.delete(f"/api/orders/{order['id']}", headers=auth_headers())).status_code == 403
    response = await client.delete(f"/api/orders/{order['id']}", headers=admin_headers)
    assert response.json() == {"success": True, "data": {"id": order["id"]}, "message": "Order deleted"}
    assert (await client.get(f"/api/orders/{order['id']}", headers=admin_headers)).status_code == 404
