from fastapi.testclient import TestClient

from main import app
from modules.order.service import order_service

from tests.conftest import SHIPPING, bearer


def _checkout_body(product, quantity=2, **extra):
    body = {
        "items": [{"productId": product.id, "quantity": quantity}],
        "shippingInfo": dict(SHIPPING),
        "paymentMethod": "credit_card",
    }
    body.update(extra)
    return body


# ==========================================
# Health / auth
# ==========================================

def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_orders_require_login(client):
    resp = client.get("/api/orders")
    assert resp.status_code == 401
    assert resp.json() == {"success": False, "message": "User not authenticated"}


def test_invalid_token_is_unauthenticated(client):
    resp = client.get("/api/orders", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


def test_admin_routes_forbidden_for_customers(client, user_headers):
    resp = client.get("/api/orders/admin/orders", headers=user_headers)
    assert resp.status_code == 403
    assert resp.json()["message"] == "Access denied"

    resp = client.post("/api/products", json={"name": "X", "category": "bars", "price": "1.00"},
                       headers=user_headers)
    assert resp.status_code == 403


# ==========================================
# Catalog
# ==========================================

def test_catalog_crud(client, admin_headers):
    resp = client.post("/api/products", headers=admin_headers, json={
        "name": "Ruby Bar", "category": "bars", "price": "6.40", "stock": 12,
        "keyFeatures": ["Ruby cocoa", "90g"], "imageUrl": "/img/ruby.png",
    })
    assert resp.status_code == 201
    product = resp.json()["data"]
    assert product["keyFeatures"] == ["Ruby cocoa", "90g"]
    assert product["price"] == 6.4
    assert product["inStock"] is True

    resp = client.put(f"/api/products/{product['id']}", headers=admin_headers, json={"stock": 20})
    assert resp.json()["data"]["stock"] == 20
    assert resp.json()["data"]["name"] == "Ruby Bar"

    listing = client.get("/api/products", params={"category": "bars"}).json()
    assert listing["count"] == 1

    resp = client.delete(f"/api/products/{product['id']}", headers=admin_headers)
    assert resp.json()["success"] is True
    assert client.get(f"/api/products/{product['id']}").status_code == 404


def test_product_validation_is_400(client, admin_headers):
    resp = client.post("/api/products", headers=admin_headers, json={
        "name": "Bad", "category": "bars", "price": "-1",
    })
    assert resp.status_code == 400
    assert resp.json()["success"] is False


# ==========================================
# Cart
# ==========================================

def test_cart_flow(client, user_headers, make_product):
    product = make_product(price="3.00", stock=5)

    resp = client.post("/api/cart/items", headers=user_headers, json={"productId": product.id, "quantity": 2})
    assert resp.status_code == 200
    cart = resp.json()["data"]
    assert cart["total"] == 6.0
    item_id = cart["items"][0]["id"]

    resp = client.put(f"/api/cart/items/{item_id}", headers=user_headers, json={"quantity": 3})
    assert resp.json()["data"]["itemCount"] == 3

    resp = client.post("/api/cart/items", headers=user_headers, json={"productId": product.id, "quantity": 5})
    assert resp.status_code == 409

    resp = client.delete("/api/cart", headers=user_headers)
    assert resp.json()["message"] == "Cart cleared successfully"
    assert client.get("/api/cart", headers=user_headers).json()["data"]["items"] == []


# ==========================================
# Orders
# ==========================================

def test_checkout_and_read_back(client, user_headers, make_product):
    product = make_product(price="10.00", stock=5)

    resp = client.post("/api/orders", headers=user_headers, json=_checkout_body(product))
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["totalAmount"] == 20.0
    assert body["orderNumber"].startswith("ORD-")

    listing = client.get("/api/orders", headers=user_headers).json()
    assert listing["count"] == 1
    assert listing["data"][0]["currentStatus"] == "pending"

    detail = client.get(f"/api/orders/{body['orderId']}", headers=user_headers).json()["data"]
    assert detail["items"][0]["name"] == product.name
    assert detail["items"][0]["line_total"] == 20.0
    assert [h["status"] for h in detail["statusHistory"]] == ["pending"]
    assert detail["transaction"]["transaction_id"] == body["transactionId"]


def test_checkout_missing_product_is_400(client, user_headers, make_product):
    product = make_product(stock=5)
    body = _checkout_body(product)
    body["items"].append({"productId": 999, "quantity": 1})

    resp = client.post("/api/orders", headers=user_headers, json=body)

    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Product with ID 999 not found"}


def test_checkout_insufficient_stock_is_409(client, user_headers, make_product):
    product = make_product(stock=1)
    resp = client.post("/api/orders", headers=user_headers, json=_checkout_body(product, quantity=2))
    assert resp.status_code == 409


def test_checkout_requires_shipping(client, user_headers, make_product):
    product = make_product(stock=5)
    body = _checkout_body(product)
    del body["shippingInfo"]
    assert client.post("/api/orders", headers=user_headers, json=body).status_code == 400


def test_other_users_order_is_not_found(client, db, user_headers, other_user, make_product):
    product = make_product(stock=5)
    order_id = client.post("/api/orders", headers=user_headers, json=_checkout_body(product)).json()["orderId"]

    resp = client.get(f"/api/orders/{order_id}", headers=bearer(other_user))
    assert resp.status_code == 404


def test_pay_checkout_order_conflicts(client, user_headers, make_product):
    product = make_product(stock=5)
    order_id = client.post("/api/orders", headers=user_headers, json=_checkout_body(product)).json()["orderId"]

    resp = client.post(f"/api/orders/{order_id}/pay", headers=user_headers, json={"paymentMethod": "card"})

    assert resp.status_code == 409
    assert resp.json()["message"] == "Payment already processed"


def test_pay_unpaid_order(client, user_headers, unpaid_order):
    resp = client.post(
        f"/api/orders/{unpaid_order.id}/pay", headers=user_headers,
        json={"paymentMethod": "card", "paymentDetails": {"card_number": "4000000000000002"}},
    )
    assert resp.status_code == 201
    assert resp.json()["data"]["card_last4"] == "0002"


# ==========================================
# Admin
# ==========================================

def test_admin_status_update_and_listing(client, user_headers, admin_headers, make_product):
    product = make_product(stock=5)
    order_id = client.post("/api/orders", headers=user_headers, json=_checkout_body(product)).json()["orderId"]

    resp = client.put(f"/api/orders/{order_id}/status", headers=admin_headers, json={"status": "processing"})
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "processing"

    resp = client.put(f"/api/orders/{order_id}/status", headers=admin_headers, json={"status": "pending"})
    assert resp.status_code == 409

    resp = client.put(f"/api/orders/{order_id}/status", headers=admin_headers, json={"status": "lost"})
    assert resp.status_code == 400

    resp = client.put("/api/orders/999/status", headers=admin_headers, json={"status": "shipped"})
    assert resp.status_code == 404

    orders = client.get("/api/orders/admin/orders", headers=admin_headers).json()["data"]
    assert orders[0]["user_email"] == "jane@example.com"
    assert orders[0]["status"] == "processing"


def test_admin_refund_flow(client, db, user_headers, admin_headers, make_product):
    product = make_product(stock=5)
    client.post("/api/orders", headers=user_headers, json=_checkout_body(product))

    txns = client.get("/api/orders/transactions/all", headers=admin_headers).json()["data"]
    assert len(txns) == 1
    txn_id = txns[0]["id"]

    detail = client.get(f"/api/orders/transactions/{txn_id}", headers=user_headers)
    assert detail.status_code == 200

    resp = client.post(f"/api/orders/transactions/{txn_id}/refund", headers=admin_headers,
                       json={"reason": "Damaged"})
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "refunded"

    resp = client.post(f"/api/orders/transactions/{txn_id}/refund", headers=admin_headers, json={})
    assert resp.status_code == 409
    assert resp.json()["message"] == "This transaction has already been refunded"

    db.refresh(product)
    assert product.stock == 5


def test_refund_requires_admin(client, user_headers):
    resp = client.post("/api/orders/transactions/1/refund", headers=user_headers, json={})
    assert resp.status_code == 403


# ==========================================
# Error mapping
# ==========================================

def test_unexpected_error_is_500_without_details(db, client, user_headers, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("database exploded")

    monkeypatch.setattr(order_service, "list_user_orders", boom)
    raw_client = TestClient(app, raise_server_exceptions=False)

    resp = raw_client.get("/api/orders", headers=user_headers)

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "message": "Something went wrong!"}
