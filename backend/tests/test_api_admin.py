# backend/tests/test_api_admin.py
from datetime import datetime, timedelta, timezone

from storefront.crud import payment_crud
from storefront.db.models.order_model import Order
from storefront.db.models.product_model import Product

CSV_CONTENT = (
    'מק"ט,שם מוצר,גודל,מותג\n'
    '501,קרם עיניים,15ml,Pure\n'
    '502,"סרום ""זהב""",30ml,Gold\n'
    ',ללא מספר,10ml,Pure\n'
)


async def test_admin_routes_reject_other_roles(client, auth_headers):
    assert (await client.get("/api/admin/dashboard")).status_code == 401
    response = await client.get("/api/admin/dashboard", headers=auth_headers("c-1", "customer"))
    assert response.status_code == 403
    assert response.json() == {"success": False, "error": "Admin access required"}


async def test_client_management_crud(client, admin_headers):
    payload = {"email": "dana@shop.co.il", "name": "דנה", "business_name": "ספא דנה", "user_role": "customer"}
    created = await client.post("/api/admin/client-management", json=payload, headers=admin_headers)
    assert created.status_code == 201
    client_id = created.json()["data"]["id"]

    duplicate = await client.post("/api/admin/client-management", json={**payload, "email": "DANA@shop.co.il"}, headers=admin_headers)
    assert duplicate.status_code == 409

    await client.post("/api/admin/client-management", json={"email": "roni@shop.co.il", "name": "רוני"}, headers=admin_headers)
    found = (await client.get("/api/admin/client-management", params={"search": "ספא"}, headers=admin_headers)).json()["data"]
    assert [c["email"] for c in found["clients"]] == ["dana@shop.co.il"]
    assert found["pagination"]["total"] == 1

    updated = await client.put(f"/api/admin/client-management/{client_id}", json={"status": "suspended"}, headers=admin_headers)
    assert updated.json()["data"]["status"] == "suspended"

    suspended = (await client.get("/api/admin/client-management", params={"status": "suspended"}, headers=admin_headers)).json()["data"]
    assert suspended["pagination"]["total"] == 1

    deleted = await client.delete(f"/api/admin/client-management/{client_id}", headers=admin_headers)
    assert deleted.json()["message"] == "Client deleted"
    missing = await client.put(f"/api/admin/client-management/{client_id}", json={"name": "x"}, headers=admin_headers)
    assert missing.status_code == 404


async def test_invalid_client_email_is_400(client, admin_headers):
    response = await client.post("/api/admin/client-management", json={"email": "nope", "name": "x"}, headers=admin_headers)
    assert response.status_code == 400


async def test_bulk_status_reports_failures_per_order(client, db, admin_headers, fake_redis):
    db.add_all([
        Order(id="o-1", customer_name="א", items=[], status="pending"),
        Order(id="o-2", customer_name="ב", items=[], status="delivered"),
    ])
    await db.commit()

    response = await client.post(
        "/api/admin/orders/bulk-status",
        json={"order_ids": ["o-1", "o-2", "o-3"], "status": "confirmed"},
        headers=admin_headers,
    )
    data = response.json()["data"]
    assert data["updated"] == ["o-1"]
    assert data["errors"] == [
        {"id": "o-2", "error": "Cannot change order status from 'delivered' to 'confirmed'"},
        {"id": "o-3", "error": "Order not found"},
    ]
    assert len(fake_redis.published) == 1


async def test_csv_import_creates_and_updates_products(client, db, admin_headers):
    db.add(Product(ref="501", hebrew_name="ישן", qty=7))
    await db.commit()

    files = {"file": ("products.csv", CSV_CONTENT.encode("utf-8"), "text/csv")}
    preview = await client.post("/api/admin/products/import", params={"dry_run": "true"}, files=files, headers=admin_headers)
    assert preview.json()["data"]["preview"]["refs"] == ["501", "502"]

    files = {"file": ("products.csv", CSV_CONTENT.encode("utf-8"), "text/csv")}
    response = await client.post("/api/admin/products/import", files=files, headers=admin_headers)
    data = response.json()["data"]
    assert (data["created"], data["updated"]) == (1, 1)
    assert data["errors"] == ["שורה 4: חסר מספר מוצר (ref no)"]

    listing = (await client.get("/api/products/")).json()["data"]["products"]
    products = {p["ref"]: p for p in listing}
    assert products["501"]["hebrew_name"] == "קרם עיניים"
    assert products["501"]["qty"] == 7
    assert products["502"]["hebrew_name"] == 'סרום "זהב"'
    assert products["502"]["qty"] == 0


async def test_csv_import_requires_utf8(client, admin_headers):
    files = {"file": ("products.csv", "שם".encode("cp1255"), "text/csv")}
    response = await client.post("/api/admin/products/import", files=files, headers=admin_headers)
    assert response.status_code == 400


async def test_dashboard_counts(client, db, admin_headers):
    db.add_all([
        Order(customer_name="א", items=[], status="pending", total_amount=100),
        Order(customer_name="ב", items=[], status="cancelled", total_amount=50),
        Product(ref="1", qty=1),
    ])
    await db.commit()

    data = (await client.get("/api/admin/dashboard", headers=admin_headers)).json()["data"]
    assert data["orders_by_status"] == {"pending": 1, "cancelled": 1}
    assert data["total_orders"] == 2
    assert data["revenue"] == 100.0
    assert data["product_count"] == 1
    assert data["client_count"] == 0


async def test_payment_session_cleanup(client, db, admin_headers):
    await payment_crud.create_session(db, session_id="s-old", order_id="o", amount=10, status="created",
                                      expires_at=datetime.now(timezone.utc) - timedelta(hours=1))
    response = await client.post("/api/admin/payments/cleanup", headers=admin_headers)
    assert response.json()["data"] == {"expired": 1}
