# Overview: Pytest coverage for owner scoping across catalogs.

"""
Owner Isolation Tests

SECURITY TESTS: one owner's catalog is invisible to another owner.

Verifies that:
1. Staff accounts resolve to the designated (most recent active) OWNER
2. Products, suppliers and ledger rows of another owner read as "not found"
3. Stock changes against a foreign product never touch it
"""

import pytest

from app.models import Product, Supplier
from app.models.auth import ROLE_OWNER, ROLE_STAFF
from app.services import products_service, stock_service, ledger_service
from app.services.errors import NotFoundError
from app.services.tenant_service import resolve_owner_scope, scope_for_owner, get_designated_owner

from conftest import auth_headers, session_token


class TestOwnerScopeResolution:
    """Test tenant_service helper functions."""

    def test_owner_scopes_to_itself(self, owner):
        scope = resolve_owner_scope(owner)
        assert scope.owner_id == owner.id
        assert scope.owner_ids == (owner.id,)

    def test_staff_scopes_to_owner_with_fallback(self, owner, staff):
        scope = resolve_owner_scope(staff)
        assert scope.actor_id == staff.id
        assert scope.owner_id == owner.id
        assert scope.owner_ids == (owner.id, staff.id)

    def test_most_recent_owner_is_designated(self, owner, make_user):
        newer = make_user("owner2", ROLE_OWNER)
        assert get_designated_owner().id == newer.id

    def test_inactive_owner_is_skipped(self, owner, make_user):
        make_user("owner2", ROLE_OWNER, is_active=False)
        assert get_designated_owner().id == owner.id

    def test_staff_without_any_owner(self, make_user):
        lonely = make_user("lonely", ROLE_STAFF)
        scope = resolve_owner_scope(lonely)
        assert scope.owner_id == lonely.id


class TestCrossOwnerAccess:
    @pytest.fixture
    def other(self, make_user):
        return make_user("stranger", ROLE_OWNER)

    def test_foreign_product_not_found(self, owner_scope, other, make_product):
        foreign = make_product(other, "Foreign", quantity=5)
        with pytest.raises(NotFoundError):
            products_service.find_owned_product(owner_scope, foreign.id)

    def test_foreign_product_not_listed(self, owner, owner_scope, other, make_product):
        make_product(owner, "Mine")
        make_product(other, "Foreign")

        names = [p["name"] for p in products_service.list_products(owner_scope)["items"]]
        assert names == ["Mine"]

    def test_sale_on_foreign_product_leaves_it_alone(self, db_session, owner_scope, other, make_product):
        foreign = make_product(other, "Foreign", quantity=5)

        with pytest.raises(NotFoundError):
            stock_service.record_manual_sale(
                owner_scope, product_id=foreign.id, quantity=1,
                transaction_date="2026-01-01", name="x",
            )
        assert db_session.query(Product.quantity).filter_by(id=foreign.id).scalar() == 5

    def test_foreign_supplier_rejected_on_purchase(self, db_session, owner, owner_scope, other, make_product):
        rice = make_product(owner, "Beras")
        supplier = Supplier(user_id=other.id, name="Toko Lain", category="Bahan")
        db_session.add(supplier)
        db_session.commit()

        with pytest.raises(NotFoundError):
            stock_service.record_purchase(
                owner_scope, product_id=rice.id, supplier_id=supplier.id, quantity=1,
                total_amount=1, payment_method="CASH", status="COMPLETED",
                transaction_date="2026-01-01", name="x",
            )

    def test_foreign_ledger_rows_hidden(self, owner_scope, other, make_product):
        foreign = make_product(other, "Foreign", quantity=5)
        other_scope = scope_for_owner(other.id)
        row = stock_service.record_manual_sale(
            other_scope, product_id=foreign.id, quantity=1,
            transaction_date="2026-01-01", name="x",
        )

        with pytest.raises(NotFoundError):
            ledger_service.find_owned_stock_out(owner_scope, row.id)
        with pytest.raises(NotFoundError):
            stock_service.delete_manual_sale(owner_scope, row.id)

    def test_product_detail_endpoint_returns_404(self, client, owner_headers, other, make_product):
        foreign = make_product(other, "Foreign")
        resp = client.get(f"/api/products/{foreign.id}", headers=owner_headers)
        assert resp.status_code == 404

    def test_staff_sees_designated_owner_catalog(self, client, owner, staff, make_product):
        make_product(owner, "Beras")
        resp = client.get("/api/products", headers=auth_headers(session_token(staff)))
        assert resp.status_code == 200
        assert [p["name"] for p in resp.json["items"]] == ["Beras"]
