"""HTTP tests for the storefront API."""
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from storefront.database import get_db
from storefront.main import app


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_header(token_for):
    def _header(user):
        return {"Authorization": f"Bearer {token_for(user)}"}
    return _header


def place(client, headers, customer_id, *items):
    return client.post(
        "/orders",
        json={
            "customer_id": customer_id,
            "items": [{"product_id": pid, "quantity": qty} for pid, qty in items],
            "shipping_address": "1 Main St",
            "payment_method": "Cash",
        },
        headers=headers,
    )


def test_health(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_requests_without_token_are_rejected(client):
    assert client.get("/orders").status_code in (401, 403)


def test_invalid_token_is_rejected(client):
    response = client.get("/orders", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_place_order(client, customer, make_product, auth_header, stock_of):
    product = make_product("Widget", "10.00", stock=5)

    response = place(client, auth_header(customer), customer.id, (product.id, 3))

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "Pending"
    assert body["customer_id"] == customer.id
    assert Decimal(body["total_amount"]) == Decimal("30.00")
    assert len(body["lines"]) == 1
    assert Decimal(body["lines"][0]["subtotal"]) == Decimal("30.00")
    assert stock_of(product.id) == 2


def test_customer_cannot_order_for_someone_else(client, customer, make_user, make_product, auth_header):
    other = make_user("bob")
    product = make_product("Widget", "10.00", stock=5)
    response = place(client, auth_header(customer), other.id, (product.id, 1))
    assert response.status_code == 403


def test_insufficient_stock_is_a_conflict(client, customer, make_product, auth_header, stock_of):
    product = make_product("Widget", "10.00", stock=2)

    response = place(client, auth_header(customer), customer.id, (product.id, 3))

    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["code"] == "InsufficientStock"
    assert detail["product_id"] == product.id
    assert stock_of(product.id) == 2


def test_unavailable_product_is_a_bad_request(client, customer, make_product, auth_header):
    product = make_product("Widget", "10.00", stock=5, is_active=False)
    response = place(client, auth_header(customer), customer.id, (product.id, 1))
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "ProductUnavailable"


def test_empty_order_is_a_bad_request(client, customer, auth_header):
    response = place(client, auth_header(customer), customer.id)
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "InvalidRequest"


def test_customer_cancels_own_order(client, customer, make_product, auth_header, stock_of):
    product = make_product("Widget", "10.00", stock=5)
    order_id = place(client, auth_header(customer), customer.id, (product.id, 3)).json()["id"]

    response = client.post(f"/orders/{order_id}/cancel", headers=auth_header(customer))

    assert response.status_code == 200
    assert response.json()["status"] == "Cancelled"
    assert stock_of(product.id) == 5

    again = client.post(f"/orders/{order_id}/cancel", headers=auth_header(customer))
    assert again.status_code == 409
    assert again.json()["detail"]["code"] == "IllegalTransition"
    assert stock_of(product.id) == 5


def test_order_access_is_limited_to_owner_and_staff(client, customer, make_user, support_agent, make_product, auth_header):
    other = make_user("bob")
    product = make_product("Widget", "10.00", stock=5)
    order_id = place(client, auth_header(customer), customer.id, (product.id, 1)).json()["id"]

    assert client.get(f"/orders/{order_id}", headers=auth_header(other)).status_code == 403
    assert client.get(f"/orders/{order_id}", headers=auth_header(support_agent)).status_code == 200
    assert client.get("/orders/999", headers=auth_header(support_agent)).status_code == 404


def test_customer_cannot_change_status(client, customer, make_product, auth_header):
    product = make_product("Widget", "10.00", stock=5)
    order_id = place(client, auth_header(customer), customer.id, (product.id, 1)).json()["id"]
    response = client.put(f"/orders/{order_id}/status", json={"status": "Processing"}, headers=auth_header(customer))
    assert response.status_code == 403


def test_staff_moves_order_through_fulfillment(client, customer, support_agent, make_product, auth_header):
    product = make_product("Widget", "10.00", stock=5)
    order_id = place(client, auth_header(customer), customer.id, (product.id, 1)).json()["id"]
    staff = auth_header(support_agent)

    for new_status in ("Processing", "Shipped"):
        response = client.put(f"/orders/{order_id}/status", json={"status": new_status}, headers=staff)
        assert response.status_code == 200
        assert response.json()["status"] == new_status

    cancel = client.post(f"/orders/{order_id}/cancel", headers=staff)
    assert cancel.status_code == 409

    unknown = client.put(f"/orders/{order_id}/status", json={"status": "Lost"}, headers=staff)
    assert unknown.status_code == 400

    timeline = client.get(f"/orders/{order_id}/timeline", headers=auth_header(customer))
    assert timeline.status_code == 200
    assert [event["new_value"] for event in timeline.json()] == ["Pending", "Processing", "Shipped"]


def test_shipping_address_update(client, customer, make_product, auth_header):
    product = make_product("Widget", "10.00", stock=5)
    order_id = place(client, auth_header(customer), customer.id, (product.id, 1)).json()["id"]

    response = client.put(
        f"/orders/{order_id}/shipping-address",
        json={"shipping_address": "2 Side St"},
        headers=auth_header(customer),
    )
    assert response.status_code == 200
    assert response.json()["shipping_address"] == "2 Side St"


def test_customer_lists_only_own_orders(client, customer, make_user, make_product, auth_header):
    other = make_user("bob")
    product = make_product("Widget", "10.00", stock=10)
    mine = place(client, auth_header(customer), customer.id, (product.id, 1)).json()["id"]
    place(client, auth_header(other), other.id, (product.id, 1))

    response = client.get("/orders", params={"customer_id": other.id}, headers=auth_header(customer))
    assert [order["id"] for order in response.json()] == [mine]


def test_customer_summary(client, customer, make_product, auth_header):
    product = make_product("Widget", "2.50", stock=10)
    place(client, auth_header(customer), customer.id, (product.id, 4))

    response = client.get(f"/customers/{customer.id}/summary", headers=auth_header(customer))

    assert response.status_code == 200
    body = response.json()
    assert body["order_count"] == 1
    assert Decimal(body["total_spent"]) == Decimal("10.00")


def test_analytics_is_staff_only(client, customer, owner, make_product, auth_header):
    product = make_product("Widget", "10.00", stock=5)
    place(client, auth_header(customer), customer.id, (product.id, 2))

    assert client.get("/orders/analytics", headers=auth_header(customer)).status_code == 403
    response = client.get("/orders/analytics", headers=auth_header(owner))
    assert response.status_code == 200
    body = response.json()
    assert body["total_orders"] == 1
    assert Decimal(body["total_revenue"]) == Decimal("20.00")
    assert body["status_breakdown"] == {"Pending": 1}
    assert len(body["recent_orders"]) == 1


def test_owner_creates_product_with_stock(client, owner, customer, auth_header):
    response = client.post(
        "/products",
        json={"name": "Lamp", "price": "24.99", "stock_quantity": 8, "minimum_stock": 2},
        headers=auth_header(owner),
    )
    assert response.status_code == 201
    product_id = response.json()["id"]

    stock = client.get(f"/inventory/{product_id}", headers=auth_header(owner))
    assert stock.status_code == 200
    assert stock.json()["stock_quantity"] == 8
    assert stock.json()["minimum_stock"] == 2

    entry = client.get(f"/catalog/{product_id}", headers=auth_header(customer))
    assert entry.status_code == 200
    assert Decimal(entry.json()["unit_price"]) == Decimal("24.99")

    forbidden = client.post("/products", json={"name": "X", "price": "1.00"}, headers=auth_header(customer))
    assert forbidden.status_code == 403


def test_deactivated_product_leaves_listing(client, owner, make_product, auth_header):
    product = make_product("Widget", "10.00", stock=5)

    response = client.delete(f"/products/{product.id}", headers=auth_header(owner))
    assert response.status_code == 204

    listing = client.get("/products", headers=auth_header(owner))
    assert product.id not in [p["id"] for p in listing.json()]
    assert client.get(f"/products/{product.id}", headers=auth_header(owner)).json()["is_active"] is False
    assert client.delete("/products/999", headers=auth_header(owner)).status_code == 404


def test_restock_and_low_stock(client, owner, make_product, auth_header):
    product = make_product("Widget", "10.00", stock=1, minimum_stock=5)
    headers = auth_header(owner)

    low = client.get("/inventory/low-stock", headers=headers)
    assert [record["product_id"] for record in low.json()] == [product.id]

    restocked = client.post(f"/inventory/{product.id}/restock", json={"quantity": 10}, headers=headers)
    assert restocked.status_code == 200
    assert restocked.json()["stock_quantity"] == 11
    assert client.get("/inventory/low-stock", headers=headers).json() == []

    assert client.post(f"/inventory/{product.id}/restock", json={"quantity": 0}, headers=headers).status_code == 422


def test_owner_registers_users(client, owner, auth_header):
    response = client.post(
        "/users",
        json={"username": "carol", "email": "carol@example.com", "role": "Customer"},
        headers=auth_header(owner),
    )
    assert response.status_code == 201
    assert response.json()["username"] == "carol"

    duplicate = client.post(
        "/users",
        json={"username": "carol", "email": "carol2@example.com"},
        headers=auth_header(owner),
    )
    assert duplicate.status_code == 400

    bad_role = client.post(
        "/users",
        json={"username": "dave", "email": "dave@example.com", "role": "Admin"},
        headers=auth_header(owner),
    )
    assert bad_role.status_code == 400


def test_product_update_rejects_null_for_required_fields(client, owner, make_product, auth_header):
    product = make_product("Widget", "10.00", stock=5)
    headers = auth_header(owner)

    for field in ("price", "name"):
        response = client.put(f"/products/{product.id}", json={field: None}, headers=headers)
        assert response.status_code == 422

    unchanged = client.get(f"/products/{product.id}", headers=headers).json()
    assert unchanged["name"] == "Widget"
    assert Decimal(unchanged["price"]) == Decimal("10.00")

    renamed = client.put(f"/products/{product.id}", json={"name": "Gadget", "description": None}, headers=headers)
    assert renamed.status_code == 200
    assert renamed.json()["name"] == "Gadget"
    assert Decimal(renamed.json()["price"]) == Decimal("10.00")


def test_duplicate_email_is_rejected(client, owner, auth_header):
    headers = auth_header(owner)
    first = client.post("/users", json={"username": "erin", "email": "dup@example.com"}, headers=headers)
    assert first.status_code == 201

    second = client.post("/users", json={"username": "frank", "email": "dup@example.com"}, headers=headers)
    assert second.status_code == 400
    assert second.json()["detail"] == "Email already registered"

    # The session is still usable after the rejection
    third = client.post("/users", json={"username": "frank", "email": "frank@example.com"}, headers=headers)
    assert third.status_code == 201


def test_stock_by_category_and_summary(client, owner, customer, make_product, auth_header):
    lamp = make_product("Lamp", "20.00", stock=0, minimum_stock=2, category_id=3)
    desk = make_product("Desk", "90.00", stock=1, minimum_stock=2, category_id=3)
    make_product("Chair", "40.00", stock=10, category_id=4)
    make_product("Stool", "15.00", stock=0, category_id=3, is_active=False)
    headers = auth_header(owner)

    by_category = client.get("/inventory/category/3", headers=headers)
    assert by_category.status_code == 200
    assert [record["product_id"] for record in by_category.json()] == [desk.id, lamp.id]

    summary = client.get("/inventory/summary", headers=headers)
    assert summary.json() == {"low_stock_count": 2, "out_of_stock_count": 1}

    assert client.get("/inventory/summary", headers=auth_header(customer)).status_code == 403
