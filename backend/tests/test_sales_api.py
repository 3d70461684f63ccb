"""
HTTP tests for the sales and inventory blueprints.

Verifies:
- Requests without a resolvable identity return 401
- Domain errors map to status codes with {"error", "code", "details"}
- The full lifecycle over HTTP keeps the ledger consistent
"""

import pytest


class TestIdentity:
    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/sales"),
            ("POST", "/api/sales"),
            ("GET", "/api/sales/1"),
            ("POST", "/api/sales/1/confirm"),
            ("POST", "/api/sales/validate-stock"),
            ("GET", "/api/inventory/1"),
        ],
    )
    def test_missing_identity_returns_401(self, client, db_session, method, path):
        resp = client.open(path, method=method, json={})
        assert resp.status_code == 401

    @pytest.mark.parametrize("raw", ["²", "12a", "-3"])
    def test_malformed_identity_returns_401(self, client, db_session, raw):
        resp = client.get("/api/sales", headers={"X-User-Id": raw})
        assert resp.status_code == 401
        assert resp.get_json()["code"] == "AuthenticationRequired"

    def test_unknown_user_returns_401(self, client, db_session):
        resp = client.get("/api/sales", headers={"X-User-Id": "424242"})
        assert resp.status_code == 401

    def test_inactive_user_returns_401(self, client, db_session):
        from comercial.models import User, UserRole

        user = User(name="Gone", email="gone@comercial.test", role=UserRole.ADMIN, is_active=False)
        db_session.add(user)
        db_session.commit()

        resp = client.get("/api/sales", headers={"X-User-Id": str(user.id)})
        assert resp.status_code == 401


class TestSaleLifecycleApi:
    def test_full_lifecycle(self, client, seller_headers, customer, make_product):
        product = make_product("P-1", price_cents=1000, stock=5, min_stock=2)

        resp = client.post("/api/sales", json={"customer_id": customer.id}, headers=seller_headers)
        assert resp.status_code == 201
        sale = resp.get_json()["sale"]
        assert sale["status"] == "DRAFT"
        assert sale["allowed_transitions"] == ["PENDING", "CANCELLED"]
        sale_id = sale["id"]

        resp = client.post(
            f"/api/sales/{sale_id}/items",
            json={"product_id": product.id, "quantity": 5},
            headers=seller_headers,
        )
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["item"]["total_cents"] == 5000
        assert body["sale"]["subtotal_cents"] == 5000

        resp = client.post(f"/api/sales/{sale_id}/submit", headers=seller_headers)
        assert resp.status_code == 200
        assert resp.get_json()["sale"]["status"] == "PENDING"

        resp = client.post(f"/api/sales/{sale_id}/confirm", headers=seller_headers)
        assert resp.status_code == 200
        assert resp.get_json()["sale"]["status"] == "CONFIRMED"

        resp = client.get(f"/api/inventory/{product.id}", headers=seller_headers)
        assert resp.get_json()["quantity_on_hand"] == 0
        assert resp.get_json()["inventory"]["is_out_of_stock"] is True

        resp = client.post(f"/api/sales/{sale_id}/cancel", json={"reason": "Pedido duplicado"}, headers=seller_headers)
        assert resp.status_code == 200
        assert resp.get_json()["sale"]["cancel_reason"] == "Pedido duplicado"

        resp = client.get(f"/api/inventory/{product.id}", headers=seller_headers)
        assert resp.get_json()["quantity_on_hand"] == 5

        resp = client.get(f"/api/inventory/{product.id}/movements", headers=seller_headers)
        types = [m["type"] for m in resp.get_json()["movements"]]
        assert sorted(types) == ["IN", "OUT"]

    def test_create_with_items_and_get(self, client, seller_headers, customer, make_product):
        p1 = make_product("P-1", price_cents=1000)
        p2 = make_product("P-2", price_cents=250)

        resp = client.post(
            "/api/sales",
            json={
                "customer_id": customer.id,
                "items": [
                    {"product_id": p1.id, "quantity": 2},
                    {"product_id": p2.id, "quantity": 4, "discount_cents": 100},
                ],
                "tax_cents": 150,
            },
            headers=seller_headers,
        )
        assert resp.status_code == 201
        sale_id = resp.get_json()["sale"]["id"]

        resp = client.get(f"/api/sales/{sale_id}", headers=seller_headers)
        sale = resp.get_json()["sale"]
        assert len(sale["items"]) == 2
        assert sale["subtotal_cents"] == 2000 + 900
        assert sale["total_cents"] == 2900 + 150
        assert sale["sale_number"].startswith("VD")

    def test_percentage_discount_endpoint(self, client, seller_headers, customer, make_product):
        product = make_product("P-1", price_cents=999)
        resp = client.post(
            "/api/sales",
            json={"customer_id": customer.id, "items": [{"product_id": product.id, "quantity": 1}]},
            headers=seller_headers,
        )
        sale_id = resp.get_json()["sale"]["id"]

        resp = client.post(
            f"/api/sales/{sale_id}/discount",
            json={"discount_type": "PERCENTAGE", "discount_value": 12.5},
            headers=seller_headers,
        )
        assert resp.status_code == 200
        assert resp.get_json()["sale"]["discount_cents"] == 125
        assert resp.get_json()["sale"]["total_cents"] == 874


class TestErrorMapping:
    def test_validation_error_is_400(self, client, seller_headers, customer):
        resp = client.post(
            "/api/sales",
            json={"customer_id": customer.id, "items": [{"product_id": 1, "quantity": 0}]},
            headers=seller_headers,
        )
        assert resp.status_code == 400
        body = resp.get_json()
        assert body["code"] == "ValidationError"
        assert body["details"]["item_index"] == 0

    def test_float_quantity_rejected(self, client, seller_headers, customer):
        resp = client.post(
            "/api/sales",
            json={"customer_id": customer.id, "items": [{"product_id": 1, "quantity": 1.5}]},
            headers=seller_headers,
        )
        assert resp.status_code == 400

    def test_unknown_sale_is_404(self, client, seller_headers):
        resp = client.get("/api/sales/999999", headers=seller_headers)
        assert resp.status_code == 404
        assert resp.get_json()["code"] == "SaleNotFound"

    def test_foreign_sale_is_403(self, client, seller_headers, other_seller_headers, customer):
        resp = client.post("/api/sales", json={"customer_id": customer.id}, headers=seller_headers)
        sale_id = resp.get_json()["sale"]["id"]

        resp = client.get(f"/api/sales/{sale_id}", headers=other_seller_headers)
        assert resp.status_code == 403
        assert resp.get_json()["code"] == "PermissionDeniedError"

    def test_invalid_transition_is_409(self, client, seller_headers, customer):
        resp = client.post("/api/sales", json={"customer_id": customer.id}, headers=seller_headers)
        sale_id = resp.get_json()["sale"]["id"]

        resp = client.post(f"/api/sales/{sale_id}/complete", headers=seller_headers)
        assert resp.status_code == 409
        body = resp.get_json()
        assert body["code"] == "InvalidStateTransition"
        assert body["details"]["current_status"] == "DRAFT"
        assert body["details"]["allowed_statuses"] == ["CONFIRMED"]

    def test_empty_sale_is_400(self, client, seller_headers, customer):
        resp = client.post("/api/sales", json={"customer_id": customer.id}, headers=seller_headers)
        sale_id = resp.get_json()["sale"]["id"]
        client.post(f"/api/sales/{sale_id}/submit", headers=seller_headers)

        resp = client.post(f"/api/sales/{sale_id}/confirm", headers=seller_headers)
        assert resp.status_code == 400
        assert resp.get_json()["code"] == "EmptySale"

    def test_duplicate_item_is_409(self, client, seller_headers, customer, make_product):
        product = make_product("P-1")
        resp = client.post(
            "/api/sales",
            json={"customer_id": customer.id, "items": [{"product_id": product.id, "quantity": 1}]},
            headers=seller_headers,
        )
        sale_id = resp.get_json()["sale"]["id"]

        resp = client.post(
            f"/api/sales/{sale_id}/items",
            json={"product_id": product.id, "quantity": 1},
            headers=seller_headers,
        )
        assert resp.status_code == 409
        assert resp.get_json()["code"] == "DuplicateItem"

    def test_remove_missing_item_is_404(self, client, seller_headers, customer):
        resp = client.post("/api/sales", json={"customer_id": customer.id}, headers=seller_headers)
        sale_id = resp.get_json()["sale"]["id"]

        resp = client.delete(f"/api/sales/{sale_id}/items/31337", headers=seller_headers)
        assert resp.status_code == 404
        assert resp.get_json()["code"] == "ItemNotFound"

    def test_update_item_requires_a_field(self, client, seller_headers, customer, make_product):
        product = make_product("P-1")
        resp = client.post(
            "/api/sales",
            json={"customer_id": customer.id, "items": [{"product_id": product.id, "quantity": 1}]},
            headers=seller_headers,
        )
        sale = resp.get_json()["sale"]
        item_id = sale["items"][0]["id"]

        resp = client.patch(f"/api/sales/{sale['id']}/items/{item_id}", json={}, headers=seller_headers)
        assert resp.status_code == 400

    def test_cancel_reason_length_limited(self, client, seller_headers, customer):
        resp = client.post("/api/sales", json={"customer_id": customer.id}, headers=seller_headers)
        sale_id = resp.get_json()["sale"]["id"]

        resp = client.post(f"/api/sales/{sale_id}/cancel", json={"reason": "x" * 201}, headers=seller_headers)
        assert resp.status_code == 400


class TestListAndHealth:
    def test_list_filters_and_pagination(self, client, seller_headers, customer):
        for _ in range(3):
            client.post("/api/sales", json={"customer_id": customer.id}, headers=seller_headers)

        resp = client.get("/api/sales?status=draft&per_page=2", headers=seller_headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert len(body["sales"]) == 2
        assert body["pagination"]["total"] == 3
        assert body["pagination"]["has_next"] is True

    def test_list_rejects_oversized_page(self, client, seller_headers):
        resp = client.get("/api/sales?per_page=101", headers=seller_headers)
        assert resp.status_code == 400

    def test_validate_stock_endpoint(self, client, seller_headers, make_product):
        product = make_product("P-1", stock=2)
        resp = client.post(
            "/api/sales/validate-stock",
            json={"items": [{"product_id": product.id, "quantity": 3}]},
            headers=seller_headers,
        )
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["is_valid"] is False
        assert body["results"][0]["shortfall"] == 1

    def test_health(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.get_json()["checks"]["database"]["status"] == "healthy"
