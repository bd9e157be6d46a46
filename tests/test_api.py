"""HTTP tests for the admin API routes."""

import pytest

import database

API = "/api/admin"


def add_user(client, name="Alice", email="alice@shop.io", phone="555-0100"):
    return client.post(f"{API}/users", json={"name": name, "email": email, "phone": phone})


class TestUserRoutes:
    def test_create_returns_201(self, client) -> None:
        response = add_user(client)

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "User added successfully"
        assert body["user"]["id"]

    def test_duplicate_email_returns_409(self, client) -> None:
        add_user(client)

        response = add_user(client, name="Twin")

        assert response.status_code == 409
        assert response.json() == {"message": "User with this email already exists"}
        assert client.get(f"{API}/users").json()["pagination"]["totalUsers"] == 1

    def test_missing_field_returns_400(self, client) -> None:
        response = client.post(f"{API}/users", json={"name": "Alice", "phone": "555-0100"})

        assert response.status_code == 400
        assert response.json() == {"message": "Missing required field: email"}

    def test_unknown_field_returns_400(self, client) -> None:
        response = client.post(
            f"{API}/users",
            json={"name": "Alice", "email": "alice@shop.io", "phone": "555-0100", "role": "admin"},
        )

        assert response.status_code == 400
        assert response.json() == {"message": "Unrecognized field: role"}

    def test_list_with_search_and_paging(self, client) -> None:
        for n in range(12):
            add_user(client, name=f"User {n}", email=f"user{n}@shop.io")
        add_user(client, name="Zed", email="zed@shop.io")

        page = client.get(f"{API}/users", params={"page": 2, "limit": 5}).json()
        found = client.get(f"{API}/users", params={"search": "zed"}).json()

        assert len(page["users"]) == 5
        assert page["pagination"]["currentPage"] == 2
        assert page["pagination"]["totalPages"] == 3
        assert page["pagination"]["hasPrev"] is True
        assert [u["name"] for u in found["users"]] == ["Zed"]

    def test_invalid_page_returns_400(self, client) -> None:
        response = client.get(f"{API}/users", params={"page": 0})

        assert response.status_code == 400
        assert response.json() == {"message": "Missing or invalid required field: page"}

    def test_update_and_delete(self, client) -> None:
        user_id = add_user(client).json()["user"]["id"]

        updated = client.put(f"{API}/users/{user_id}", json={"name": "Alice B"})
        deleted = client.delete(f"{API}/users/{user_id}")
        missing = client.delete(f"{API}/users/{user_id}")

        assert updated.status_code == 200
        assert updated.json()["user"]["name"] == "Alice B"
        assert deleted.status_code == 200
        assert deleted.json()["user"]["name"] == "Alice B"
        assert missing.status_code == 404
        assert missing.json() == {"message": "User not found"}


class TestCatalogScenario:
    """Category -> product -> order -> dashboard, end to end."""

    def test_drinks_scenario(self, client) -> None:
        category = client.post(
            f"{API}/categories",
            json={"name": "Drinks", "description": "Beverages and refreshments"},
        )
        assert category.status_code == 201
        category_id = category.json()["category"]["id"]

        product = client.post(
            f"{API}/products",
            json={"productName": "Cola", "categoryId": category_id, "price": 2.5, "status": "active"},
        )
        assert product.status_code == 201
        product_id = product.json()["product"]["id"]

        order = client.post(
            f"{API}/orders",
            json={"userId": "5f1d7f1e2b3c4d5e6f708192", "productId": product_id, "quantity": 2, "totalAmount": 5.0},
        )
        assert order.status_code == 201
        assert order.json()["message"] == "Order placed successfully"
        assert order.json()["order"]["items"][0]["unitPrice"] == 2.5

        dashboard = client.get(f"{API}/dashboard")
        assert dashboard.status_code == 200
        body = dashboard.json()
        assert body["totalProducts"] == 1
        assert body["totalOrders"] == 1
        assert body["totalRevenue"] == 5.0

        listed = client.get(f"{API}/products").json()["products"]
        assert listed[0]["categoryName"] == "Drinks"

    def test_duplicate_category_returns_409(self, client) -> None:
        client.post(f"{API}/categories", json={"name": "Drinks", "description": "Beverages"})

        response = client.post(f"{API}/categories", json={"name": "Drinks", "description": "Again"})

        assert response.status_code == 409

    def test_invalid_product_status_returns_400(self, client) -> None:
        response = client.post(
            f"{API}/products",
            json={"productName": "Cola", "categoryId": "c1", "price": 2.5, "status": "archived"},
        )

        assert response.status_code == 400
        assert response.json() == {"message": "Missing or invalid required field: status"}

    def test_update_deleted_product_returns_404(self, client) -> None:
        product_id = client.post(
            f"{API}/products",
            json={"productName": "Cola", "categoryId": "c1", "price": 2.5, "status": "active"},
        ).json()["product"]["id"]
        client.delete(f"{API}/products/{product_id}")

        response = client.put(f"{API}/products/{product_id}", json={"status": "inactive"})

        assert response.status_code == 404
        assert response.json() == {"message": "Product not found"}

    def test_get_unknown_category_returns_404(self, client) -> None:
        response = client.get(f"{API}/categories/not-an-id")

        assert response.status_code == 404


class TestOrderRoutes:
    def test_empty_body_reports_user_id(self, client) -> None:
        response = client.post(f"{API}/orders", json={})

        assert response.status_code == 400
        assert response.json() == {"message": "Missing required field: userId"}

    def test_all_invalid_reports_user_id_only(self, client) -> None:
        response = client.post(
            f"{API}/orders",
            json={"userId": None, "productId": None, "quantity": 0, "totalAmount": 0},
        )

        assert response.status_code == 400
        assert response.json() == {"message": "Missing required field: userId"}

    def test_zero_total_is_rejected(self, client) -> None:
        response = client.post(
            f"{API}/orders",
            json={"userId": "u1", "productId": "p1", "quantity": 1, "totalAmount": 0},
        )

        assert response.status_code == 400
        assert response.json() == {"message": "Missing or invalid required field: totalAmount"}

    def test_bad_later_field_does_not_mask_missing_user_id(self, client) -> None:
        response = client.post(
            f"{API}/orders",
            json={"userId": None, "productId": None, "quantity": "abc", "totalAmount": 0},
        )

        assert response.status_code == 400
        assert response.json() == {"message": "Missing required field: userId"}

    @pytest.mark.parametrize("total", ["NaN", "Infinity", "-Infinity", "1e999"])
    def test_non_finite_total_is_rejected(self, client, db, total) -> None:
        body = '{"userId": "u1", "productId": "p1", "quantity": 1, "totalAmount": %s}' % total

        response = client.post(f"{API}/orders", content=body, headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert response.json() == {"message": "Missing or invalid required field: totalAmount"}
        assert db["order"].count_documents({}) == 0
        assert client.get(f"{API}/dashboard").status_code == 200

    @pytest.mark.parametrize("price", ["NaN", "Infinity", "1e999"])
    def test_non_finite_product_price_is_rejected(self, client, db, price) -> None:
        body = '{"productName": "Cola", "categoryId": "c1", "price": %s, "status": "active"}' % price

        response = client.post(f"{API}/products", content=body, headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert response.json() == {"message": "Missing or invalid required field: price"}
        assert db["product"].count_documents({}) == 0

    def test_list_orders(self, client) -> None:
        client.post(f"{API}/orders", json={"userId": "u1", "productId": "p1", "quantity": 1, "totalAmount": 3})

        body = client.get(f"{API}/orders").json()

        assert len(body["orders"]) == 1
        assert body["pagination"]["totalOrders"] == 1

    def test_dashboard_without_orders(self, client) -> None:
        add_user(client)

        body = client.get(f"{API}/dashboard").json()

        assert body["totalUsers"] == 1
        assert body["totalOrders"] == 0
        assert body["totalRevenue"] == 0


class TestDatabaseNotConfigured:
    @pytest.fixture
    def unconfigured_client(self, monkeypatch):
        from fastapi.testclient import TestClient

        from main import app

        monkeypatch.setattr(database, "db", None)
        return TestClient(app)

    def test_data_routes_return_500(self, unconfigured_client) -> None:
        response = unconfigured_client.get(f"{API}/dashboard")

        assert response.status_code == 500
        assert response.json() == {"message": "Database not configured"}

    def test_root_still_answers(self, unconfigured_client) -> None:
        assert unconfigured_client.get("/").status_code == 200


class TestDiagnostics:
    def test_database_error_is_reported_and_logged(self, monkeypatch, caplog) -> None:
        from unittest.mock import MagicMock

        from fastapi.testclient import TestClient

        from main import app

        broken = MagicMock()
        broken.list_collection_names.side_effect = RuntimeError("server unreachable")
        monkeypatch.setattr(database, "db", broken)

        with caplog.at_level("WARNING", logger="main"):
            body = TestClient(app).get("/test").json()

        assert body["database"].startswith("⚠️ Connected but Error")
        record = next(r for r in caplog.records if r.name == "main")
        assert record.msg == "Database check failed: %s"
        assert "server unreachable" in record.getMessage()
