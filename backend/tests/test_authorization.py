"""
Authorization tests.

Verifies:
- Unauthenticated requests return 401
- PEGAWAI (staff) is denied owner-only operations (403)
- PEGAWAI can do day-to-day catalog and sales work
- OWNER can perform privileged operations
"""

from decimal import Decimal

import pytest

from app.models import Product


# =============================================================================
# UNAUTHENTICATED ACCESS — 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/admin/users"),
            ("POST", "/api/admin/users"),
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("GET", "/api/suppliers"),
            ("GET", "/api/menus"),
            ("GET", "/api/transactions"),
            ("GET", "/api/sales"),
            ("POST", "/api/sales/corrections"),
            ("GET", "/api/notifications/low-stock"),
            ("GET", "/api/dashboard/metrics"),
            ("GET", "/api/auth/me"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/products", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401


# =============================================================================
# STAFF DENIED OWNER-ONLY OPERATIONS — 403
# =============================================================================


class TestStaffDeniedOwnerOnly:
    """PEGAWAI role cannot perform privileged operations."""

    def test_cannot_list_users(self, client, staff_headers):
        resp = client.get("/api/admin/users", headers=staff_headers)
        assert resp.status_code == 403
        assert resp.json["required_roles"] == ["OWNER"]

    def test_cannot_create_user(self, client, staff_headers):
        resp = client.post(
            "/api/admin/users",
            json={"username": "x", "email": "x@x.com", "password": "P@ssw0rd123!"},
            headers=staff_headers,
        )
        assert resp.status_code == 403

    def test_cannot_update_product(self, client, owner, staff_headers, make_product):
        rice = make_product(owner, "Beras")
        resp = client.put(f"/api/products/{rice.id}", json={"name": "Evil"}, headers=staff_headers)
        assert resp.status_code == 403

    def test_cannot_delete_product(self, client, owner, staff_headers, make_product):
        rice = make_product(owner, "Beras")
        resp = client.delete(f"/api/products/{rice.id}", headers=staff_headers)
        assert resp.status_code == 403

    def test_cannot_manage_suppliers(self, client, staff_headers):
        resp = client.post("/api/suppliers", json={"name": "Evil", "category": "x"}, headers=staff_headers)
        assert resp.status_code == 403

    def test_cannot_record_purchases(self, client, staff_headers):
        resp = client.get("/api/transactions", headers=staff_headers)
        assert resp.status_code == 403

    def test_cannot_create_menu(self, client, staff_headers):
        resp = client.post("/api/menus", json={"code": "X", "name": "X"}, headers=staff_headers)
        assert resp.status_code == 403


# =============================================================================
# STAFF DAY-TO-DAY WORK
# =============================================================================


class TestStaffAllowed:
    def test_can_create_product(self, client, db_session, owner, staff_headers):
        resp = client.post(
            "/api/products",
            json={"name": "Kecap", "category": "Bumbu", "unit": "ml", "price": 20, "quantity": 500},
            headers=staff_headers,
        )
        assert resp.status_code == 201
        assert resp.json["product"]["unit"] == "ML"
        assert resp.json["product"]["user_id"] == owner.id

    def test_can_record_sale(self, client, db_session, owner, staff_headers, make_product):
        rice = make_product(owner, "Beras", quantity=5)
        resp = client.post(
            "/api/sales",
            json={"name": "Jual", "product_id": rice.id, "quantity": 2, "transaction_date": "2026-02-01"},
            headers=staff_headers,
        )
        assert resp.status_code == 201
        assert db_session.query(Product.quantity).filter_by(id=rice.id).scalar() == 3

    def test_oversell_is_409(self, client, owner, staff_headers, make_product):
        rice = make_product(owner, "Beras", quantity=1)
        resp = client.post(
            "/api/sales",
            json={"name": "Jual", "product_id": rice.id, "quantity": 2, "transaction_date": "2026-02-01"},
            headers=staff_headers,
        )
        assert resp.status_code == 409

    def test_can_list_menus(self, client, staff_headers, make_menu):
        make_menu("NG01", "Nasi Goreng")
        resp = client.get("/api/menus", headers=staff_headers)
        assert resp.status_code == 200
        assert resp.json["count"] == 1


# =============================================================================
# OWNER PRIVILEGED OPERATIONS
# =============================================================================


class TestOwnerAllowed:
    def test_purchase_roundtrip(self, client, db_session, owner, owner_headers, make_product):
        rice = make_product(owner, "Beras", quantity=0)
        resp = client.post(
            "/api/transactions",
            json={
                "name": "Beli beras", "product_id": rice.id, "quantity": 25,
                "total_amount": 300000, "status": "COMPLETED",
                "payment_method": "TRANSFER", "transaction_date": "2026-02-01T10:00:00Z",
            },
            headers=owner_headers,
        )
        assert resp.status_code == 201
        tx_id = resp.json["transaction"]["id"]
        assert db_session.query(Product.quantity).filter_by(id=rice.id).scalar() == 25

        resp = client.delete(f"/api/transactions/{tx_id}", headers=owner_headers)
        assert resp.status_code == 200
        assert db_session.query(Product.quantity).filter_by(id=rice.id).scalar() == 0

    def test_unknown_purchase_field_rejected(self, client, owner_headers):
        resp = client.put("/api/transactions/1", json={"user_id": 2}, headers=owner_headers)
        assert resp.status_code == 400

    def test_product_quantity_not_editable(self, client, owner, owner_headers, make_product):
        rice = make_product(owner, "Beras", quantity=3)
        resp = client.put(f"/api/products/{rice.id}", json={"quantity": 100}, headers=owner_headers)
        assert resp.status_code == 400

    def test_can_create_menu_with_recipe(self, client, owner, owner_headers, make_product):
        rice = make_product(owner, "Beras", quantity=3)
        resp = client.post(
            "/api/menus",
            json={"code": "NG01", "name": "Nasi Goreng",
                  "recipes": [{"product_id": rice.id, "qty_per_portion": 150}]},
            headers=owner_headers,
        )
        assert resp.status_code == 201
        assert Decimal(resp.json["menu"]["recipes"][0]["qty_per_portion"]) == 150

    def test_duplicate_menu_code_conflicts(self, client, owner_headers, make_menu):
        make_menu("NG01", "Nasi Goreng")
        resp = client.post("/api/menus", json={"code": "ng01", "name": "Other"}, headers=owner_headers)
        assert resp.status_code == 409
