import pytest
from fastapi.testclient import TestClient

from catalog_api.main import app
from catalog_api.services import products as product_service


@pytest.fixture
def category_id(client, manager_headers):
    resp = client.post("/api/categories", json={"name": "Books"}, headers=manager_headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


@pytest.fixture
def product(client, manager_headers, category_id):
    resp = client.post(
        "/api/products",
        json={"name": "SQL Basics", "price": "29.99", "stock": 5, "sku": "BOO001", "category_id": category_id},
        headers=manager_headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestAuth:
    def test_health_is_public(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_reads_need_a_token(self, client):
        assert client.get("/api/products").status_code == 401

    def test_bad_token(self, client):
        resp = client.get("/api/products", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401

    def test_bad_password(self, client):
        resp = client.post("/api/auth/login", json={"username": "manager", "password": "wrong"})
        assert resp.status_code == 401

    def test_form_token_and_me(self, client):
        resp = client.post("/api/auth/token", data={"username": "viewer", "password": "viewer123"})
        assert resp.status_code == 200
        token = resp.json()["access_token"]
        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.json()["role"] == "viewer"

    def test_viewer_can_read_but_not_write(self, client, viewer_headers):
        assert client.get("/api/categories", headers=viewer_headers).status_code == 200
        resp = client.post("/api/categories", json={"name": "X"}, headers=viewer_headers)
        assert resp.status_code == 403


class TestProductsApi:
    def test_create_serializes_money_as_string(self, product):
        assert product["price"] == "29.99"
        assert product["category"]["name"] == "Books"
        assert product["supplier"] is None

    def test_page(self, client, manager_headers, product):
        body = client.get("/api/products?page=0&size=10", headers=manager_headers).json()
        assert body["total_elements"] == 1
        assert body["total_pages"] == 1
        assert body["number_of_elements"] == 1
        assert body["content"][0]["sku"] == "BOO001"

    def test_bad_page_is_400(self, client, manager_headers):
        resp = client.get("/api/products?page=-1", headers=manager_headers)
        assert resp.status_code == 400
        assert resp.json()["code"] == "VALIDATION_ERROR"

    def test_filters(self, client, manager_headers, product, category_id):
        by_cat = client.get(f"/api/products?category_id={category_id}", headers=manager_headers).json()
        assert [p["id"] for p in by_cat] == [product["id"]]

        found = client.get("/api/products?search=sql", headers=manager_headers).json()
        assert len(found) == 1

        priced = client.get("/api/products?min_price=30&max_price=40", headers=manager_headers).json()
        assert priced == []

    def test_not_found_body(self, client, manager_headers):
        resp = client.get("/api/products/999", headers=manager_headers)
        assert resp.status_code == 404
        body = resp.json()
        assert body["status"] == 404
        assert body["error"] == "Not Found"
        assert body["code"] == "PRODUCT_NOT_FOUND"
        assert body["path"] == "/api/products/999"
        assert "timestamp" in body

    def test_duplicate_sku_is_409(self, client, manager_headers, product, category_id):
        resp = client.post(
            "/api/products",
            json={"name": "Other", "price": "1.00", "sku": "BOO001", "category_id": category_id},
            headers=manager_headers,
        )
        assert resp.status_code == 409
        assert resp.json()["code"] == "DUPLICATE_SKU"

    def test_schema_violation_is_400(self, client, manager_headers, category_id):
        resp = client.post(
            "/api/products",
            json={"name": "", "price": "-1", "category_id": category_id},
            headers=manager_headers,
        )
        assert resp.status_code == 400
        fields = {e["field"] for e in resp.json()["errors"]}
        assert {"name", "price"} <= fields

    def test_stock_endpoints(self, client, manager_headers, product):
        pid = product["id"]
        resp = client.patch(f"/api/products/{pid}/stock", json={"quantity": 3}, headers=manager_headers)
        assert resp.json()["stock"] == 8

        resp = client.patch(f"/api/products/{pid}/stock/decrease", json={"quantity": 10}, headers=manager_headers)
        assert resp.status_code == 422
        assert resp.json()["code"] == "INSUFFICIENT_STOCK"

        resp = client.patch(f"/api/products/{pid}/stock/decrease", json={"quantity": 8}, headers=manager_headers)
        assert resp.json()["stock"] == 0

    def test_with_category_and_transfer(self, client, manager_headers, category_id):
        resp = client.post(
            "/api/products/with-category",
            json={"name": "Hose", "price": "9.00", "category_name": "Garden"},
            headers=manager_headers,
        )
        assert resp.status_code == 201
        garden_id = resp.json()["category"]["id"]

        resp = client.post(
            "/api/products/transfer",
            json={"from_category_id": garden_id, "to_category_id": category_id},
            headers=manager_headers,
        )
        assert resp.json() == {"moved": 1}

    def test_delete(self, client, manager_headers, product):
        assert client.delete(f"/api/products/{product['id']}", headers=manager_headers).status_code == 204
        assert client.get(f"/api/products/{product['id']}", headers=manager_headers).status_code == 404

    def test_update_requires_stock(self, client, manager_headers, product, category_id):
        pid = product["id"]
        body = {"name": "SQL Basics 2e", "price": "31.00", "category_id": category_id}

        resp = client.put(f"/api/products/{pid}", json=body, headers=manager_headers)
        assert resp.status_code == 400
        assert "stock" in {e["field"] for e in resp.json()["errors"]}
        assert client.get(f"/api/products/{pid}", headers=manager_headers).json()["stock"] == 5

        resp = client.put(f"/api/products/{pid}", json={**body, "stock": 7}, headers=manager_headers)
        assert resp.status_code == 200
        assert (resp.json()["name"], resp.json()["stock"], resp.json()["sku"]) == ("SQL Basics 2e", 7, "BOO001")

    def test_stats_routes(self, client, manager_headers, product):
        assert client.get("/api/products/count", headers=manager_headers).json() == {"count": 1}
        by_cat = client.get("/api/products/stats/by-category", headers=manager_headers).json()
        assert by_cat == [{"category_name": "Books", "product_count": 1}]
        avg = client.get("/api/products/stats/avg-price", headers=manager_headers).json()
        assert avg[0]["average_price"] == "29.99"
        assert len(client.get("/api/products/never-ordered", headers=manager_headers).json()) == 1
        assert len(client.get("/api/products/top?limit=3", headers=manager_headers).json()) == 1
        assert len(client.get("/api/products/slow", headers=manager_headers).json()) == 1


class TestOrdersApi:
    def test_order_lifecycle(self, client, manager_headers, product):
        resp = client.post(
            "/api/orders",
            json={"customer_name": "Ann", "customer_email": "ann@example.com", "items": {str(product["id"]): 2}},
            headers=manager_headers,
        )
        assert resp.status_code == 201, resp.text
        order = resp.json()
        assert order["status"] == "PENDING"
        assert order["total_amount"] == "59.98"
        assert order["items"][0]["unit_price"] == "29.99"

        oid = order["id"]
        resp = client.patch(f"/api/orders/{oid}/status", json={"status": "SHIPPED"}, headers=manager_headers)
        assert resp.status_code == 409
        assert resp.json()["code"] == "INVALID_STATE_TRANSITION"

        for status in ["CONFIRMED", "SHIPPED", "DELIVERED"]:
            resp = client.patch(f"/api/orders/{oid}/status", json={"status": status}, headers=manager_headers)
            assert resp.status_code == 200

        revenue = client.get("/api/orders/stats/revenue", headers=manager_headers).json()
        assert revenue == {"status": "DELIVERED", "total_revenue": "59.98"}

        items = client.get(f"/api/orders/{oid}/items", headers=manager_headers).json()
        assert items[0]["quantity"] == 2

        by_status = client.get("/api/orders?status=DELIVERED", headers=manager_headers).json()
        assert [o["id"] for o in by_status] == [oid]

        # product is now on an order
        resp = client.delete(f"/api/products/{product['id']}", headers=manager_headers)
        assert resp.status_code == 409
        assert resp.json()["code"] == "PRODUCT_IN_USE"

        assert client.delete(f"/api/orders/{oid}", headers=manager_headers).status_code == 204
        assert client.get("/api/orders/count", headers=manager_headers).json() == {"count": 0}

    def test_insufficient_stock(self, client, manager_headers, product):
        resp = client.post(
            "/api/orders",
            json={"customer_name": "Ann", "items": {str(product["id"]): 6}},
            headers=manager_headers,
        )
        assert resp.status_code == 422
        assert "SQL Basics" in resp.json()["message"]

    def test_empty_order_is_400(self, client, manager_headers):
        resp = client.post("/api/orders", json={"customer_name": "Ann", "items": {}}, headers=manager_headers)
        assert resp.status_code == 400

    def test_unknown_status_filter(self, client, manager_headers):
        resp = client.get("/api/orders?status=LOST", headers=manager_headers)
        assert resp.status_code == 400


class TestCatalogApi:
    def test_category_delete_cascades(self, client, manager_headers, product, category_id):
        got = client.get(f"/api/categories/{category_id}/products", headers=manager_headers).json()
        assert [p["id"] for p in got["products"]] == [product["id"]]

        assert client.delete(f"/api/categories/{category_id}", headers=manager_headers).status_code == 204
        assert client.get(f"/api/products/{product['id']}", headers=manager_headers).status_code == 404

    def test_duplicate_category_is_409(self, client, manager_headers, category_id):
        resp = client.post("/api/categories", json={"name": "books"}, headers=manager_headers)
        assert resp.status_code == 409

    def test_supplier_delete_unlinks(self, client, manager_headers, category_id):
        sup = client.post(
            "/api/suppliers", json={"name": "ACME", "email": "sales@acme.com"}, headers=manager_headers
        ).json()
        prod = client.post(
            "/api/products",
            json={"name": "Mouse", "price": "5.00", "category_id": category_id, "supplier_id": sup["id"]},
            headers=manager_headers,
        ).json()
        assert prod["supplier"]["name"] == "ACME"

        assert client.delete(f"/api/suppliers/{sup['id']}", headers=manager_headers).status_code == 204
        again = client.get(f"/api/products/{prod['id']}", headers=manager_headers).json()
        assert again["supplier"] is None


def test_unexpected_error_is_generic_500(db, manager_headers, monkeypatch):
    def boom(_db):
        raise RuntimeError("database exploded")

    monkeypatch.setattr(product_service, "count_products", boom)
    client = TestClient(app, raise_server_exceptions=False)

    resp = client.get("/api/products/count", headers=manager_headers)

    assert resp.status_code == 500
    body = resp.json()
    assert body["code"] == "INTERNAL_ERROR"
    assert "exploded" not in body["message"]
