"""Tests for the cart and order HTTP endpoints."""

import pytest

from models.book import Book


@pytest.fixture
def books(make_book):
    return {
        "a": make_book(title="Book A", price="10.00", stock=5),
        "b": make_book(title="Book B", price="5.00", stock=5),
    }


def _add(client, headers, book, quantity=1):
    return client.post("/api/cart/add", json={"bookId": book.id, "quantity": quantity}, headers=headers)


def _place(client, headers, address="12 Mabini St", method="Card"):
    return client.post(
        "/api/orders",
        json={"deliveryAddress": address, "paymentMethod": method},
        headers=headers,
    )


class TestAuth:
    def test_missing_token(self, client):
        response = client.get("/api/cart")
        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_garbage_token(self, client):
        response = client.get("/api/cart", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401
        assert response.json()["error"] == "UNAUTHORIZED"

    def test_inactive_user(self, client, make_user, headers_for):
        ghost = make_user(is_active=False)
        response = client.get("/api/cart", headers=headers_for(ghost))
        assert response.status_code == 401


class TestCartEndpoints:
    def test_get_creates_cart(self, client, headers, user):
        response = client.get("/api/cart", headers=headers)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["cart"]["userId"] == user.id
        assert body["cart"]["items"] == []
        assert body["cart"]["total"] == 0

    def test_add_item(self, client, headers, books):
        response = _add(client, headers, books["a"], 2)

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Item added to cart"
        line = body["cart"]["items"][0]
        assert line["bookId"] == books["a"].id
        assert line["title"] == "Book A"
        assert line["quantity"] == 2
        assert line["unitPrice"] == 10.0
        assert line["lineTotal"] == 20.0
        assert body["cart"]["total"] == 20.0
        assert body["cart"]["itemCount"] == 2

    def test_add_defaults_to_one(self, client, headers, books):
        response = client.post("/api/cart/add", json={"bookId": books["a"].id}, headers=headers)

        assert response.status_code == 200
        assert response.json()["cart"]["items"][0]["quantity"] == 1

    def test_add_missing_book_id(self, client, headers):
        response = client.post("/api/cart/add", json={"quantity": 1}, headers=headers)

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "VALIDATION_ERROR"
        assert "bookId" in body["message"]

    def test_add_zero_quantity(self, client, headers, books):
        response = _add(client, headers, books["a"], 0)
        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_add_unknown_book(self, client, headers):
        response = client.post("/api/cart/add", json={"bookId": 999}, headers=headers)

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "NOT_FOUND", "message": "Book not found"}

    def test_add_over_limit(self, client, headers, make_book):
        book = make_book(stock=100)
        assert _add(client, headers, book, 30).status_code == 200

        response = _add(client, headers, book, 30)

        assert response.status_code == 400
        assert response.json()["error"] == "QUANTITY_LIMIT"

    def test_add_over_stock(self, client, headers, books):
        response = _add(client, headers, books["a"], 6)

        assert response.status_code == 400
        assert response.json()["error"] == "INSUFFICIENT_STOCK"

    def test_update_item(self, client, headers, books):
        line_id = _add(client, headers, books["a"]).json()["cart"]["items"][0]["id"]

        response = client.put(f"/api/cart/update/{line_id}", json={"quantity": 4}, headers=headers)

        assert response.status_code == 200
        assert response.json()["cart"]["items"][0]["quantity"] == 4
        assert response.json()["cart"]["total"] == 40.0

    def test_update_invalid_quantity(self, client, headers, books):
        line_id = _add(client, headers, books["a"]).json()["cart"]["items"][0]["id"]

        response = client.put(f"/api/cart/update/{line_id}", json={"quantity": 0}, headers=headers)

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_update_unknown_line(self, client, headers, books):
        _add(client, headers, books["a"])

        response = client.put("/api/cart/update/999", json={"quantity": 2}, headers=headers)

        assert response.status_code == 404

    def test_remove_item(self, client, headers, books):
        _add(client, headers, books["a"])
        line_b = _add(client, headers, books["b"]).json()["cart"]["items"][1]["id"]

        response = client.delete(f"/api/cart/remove/{line_b}", headers=headers)

        assert response.status_code == 200
        items = response.json()["cart"]["items"]
        assert [it["bookId"] for it in items] == [books["a"].id]

    def test_remove_unknown_line(self, client, headers, books):
        _add(client, headers, books["a"])

        response = client.delete("/api/cart/remove/999", headers=headers)

        assert response.status_code == 200
        assert len(response.json()["cart"]["items"]) == 1

    def test_clear(self, client, headers, books):
        _add(client, headers, books["a"], 2)

        response = client.delete("/api/cart/clear", headers=headers)

        assert response.status_code == 200
        assert response.json()["cart"]["items"] == []
        assert response.json()["cart"]["total"] == 0


class TestOrderEndpoints:
    def test_place_order(self, client, headers, books, db):
        _add(client, headers, books["a"], 2)
        _add(client, headers, books["b"], 1)

        response = _place(client, headers)

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        order = body["order"]
        assert order["orderNumber"].startswith("AKLAT-")
        assert order["subtotal"] == 25.0
        assert order["shippingFee"] == 20.0
        assert order["deliveryFee"] == 10.0
        assert order["total"] == 55.0
        assert order["status"] == "pending"
        assert order["paymentMethod"] == "Card"
        assert [(it["title"], it["quantity"]) for it in order["items"]] == [("Book A", 2), ("Book B", 1)]

        assert client.get("/api/cart", headers=headers).json()["cart"]["items"] == []
        db.expire_all()
        assert db.get(Book, books["a"].id).stock == 3
        assert db.get(Book, books["b"].id).stock == 4

    def test_place_from_empty_cart(self, client, headers):
        response = _place(client, headers)

        assert response.status_code == 400
        assert response.json()["error"] == "EMPTY_CART"

    def test_missing_fields(self, client, headers, books):
        _add(client, headers, books["a"])

        response = client.post("/api/orders", json={"paymentMethod": "Card"}, headers=headers)

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_invalid_payment_method(self, client, headers, books):
        _add(client, headers, books["a"])

        response = _place(client, headers, method="IOU")

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid payment method"

    def test_insufficient_stock_names_book(self, client, headers, books, db):
        _add(client, headers, books["b"], 3)
        db.expire_all()
        book = db.get(Book, books["b"].id)
        book.stock = 2
        db.commit()

        response = _place(client, headers)

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "INSUFFICIENT_STOCK",
            "message": "Insufficient stock for Book B",
        }
        assert len(client.get("/api/cart", headers=headers).json()["cart"]["items"]) == 1

    def test_my_orders_newest_first(self, client, headers, books):
        ids = []
        for _ in range(2):
            _add(client, headers, books["a"])
            ids.append(_place(client, headers).json()["order"]["id"])

        response = client.get("/api/orders/my-orders", headers=headers)

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 2
        assert [o["id"] for o in body["orders"]] == list(reversed(ids))

    def test_get_order_access(self, client, headers, admin_headers, books, make_user, headers_for):
        _add(client, headers, books["a"])
        order_id = _place(client, headers).json()["order"]["id"]
        stranger = headers_for(make_user())

        assert client.get(f"/api/orders/{order_id}", headers=headers).status_code == 200
        assert client.get(f"/api/orders/{order_id}", headers=admin_headers).status_code == 200

        denied = client.get(f"/api/orders/{order_id}", headers=stranger)
        assert denied.status_code == 403
        assert denied.json()["error"] == "ACCESS_DENIED"

        assert client.get("/api/orders/424242", headers=headers).status_code == 404

    def test_status_update_admin_only(self, client, headers, admin_headers, books):
        _add(client, headers, books["a"])
        order_id = _place(client, headers).json()["order"]["id"]

        forbidden = client.put(f"/api/orders/{order_id}/status", json={"status": "processing"}, headers=headers)
        assert forbidden.status_code == 403

        response = client.put(f"/api/orders/{order_id}/status", json={"status": "processing"}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["order"]["status"] == "processing"

    def test_status_update_invalid(self, client, headers, admin_headers, books):
        _add(client, headers, books["a"])
        order_id = _place(client, headers).json()["order"]["id"]

        response = client.put(f"/api/orders/{order_id}/status", json={"status": "teleported"}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_status_terminal(self, client, headers, admin_headers, books):
        _add(client, headers, books["a"])
        order_id = _place(client, headers).json()["order"]["id"]
        for status in ("processing", "shipped", "delivered"):
            assert client.put(
                f"/api/orders/{order_id}/status", json={"status": status}, headers=admin_headers
            ).status_code == 200

        response = client.put(f"/api/orders/{order_id}/status", json={"status": "shipped"}, headers=admin_headers)
        assert response.status_code == 400

    def test_list_all_orders_admin_only(self, client, headers, admin_headers, books):
        _add(client, headers, books["a"])
        _place(client, headers)

        assert client.get("/api/orders", headers=headers).status_code == 403
        response = client.get("/api/orders", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["count"] == 1


class TestLogsAndHealth:
    def test_audit_log_records_cart_and_order_events(self, client, headers, admin_headers, books):
        _add(client, headers, books["a"])
        _place(client, headers)

        response = client.get("/api/logs", params={"resource": "orders"}, headers=admin_headers)

        assert response.status_code == 200
        actions = [item["action"] for item in response.json()["items"]]
        assert actions == ["ORDER_CREATE"]

        cart_events = client.get("/api/logs", params={"action": "cart_add"}, headers=admin_headers).json()
        assert cart_events["total"] == 1

    def test_order_audit_entry_carries_client_ip(self, client, headers, admin_headers, books):
        _add(client, headers, books["a"])
        _place(client, headers)

        items = client.get("/api/logs", params={"action": "order_create"}, headers=admin_headers).json()["items"]

        assert len(items) == 1
        assert items[0]["ip"] == "testclient"

    def test_logs_admin_only(self, client, headers):
        assert client.get("/api/logs", headers=headers).status_code == 403

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["database"] == "connected"
