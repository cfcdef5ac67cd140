# Overview: Pytest coverage for product, supplier and menu catalog services.

import pytest

from app.models import Product, StockInTransaction, StockOutTransaction
from app.services import products_service, recipe_service, stock_service, supplier_service
from app.services.errors import NotFoundError, ValidationFailedError
from app.services.tenant_service import scope_for_owner
from app.validation import (
    ConflictError,
    PRODUCT_POLICY,
    PRODUCT_UPDATE_POLICY,
    ValidationError,
    enforce_rules_product,
    validate_payload,
)


class TestProductValidation:
    def test_unit_is_normalized(self):
        patch = validate_payload(
            model=Product,
            payload={"name": "Gula", "category": "Bahan", "unit": "kg"},
            policy=PRODUCT_POLICY,
            partial=False,
        )
        enforce_rules_product(patch)
        assert patch["unit"] == "KG"

    @pytest.mark.parametrize(
        "payload",
        [
            {"name": "Gula", "category": "Bahan", "unit": "LITER"},
            {"name": "Gula", "category": "Bahan", "unit": "KG", "price": -1},
            {"name": "Gula", "category": "Bahan", "unit": "KG", "quantity": -5},
            {"name": "Gula", "category": "Bahan", "unit": "KG", "low_stock": -1},
        ],
    )
    def test_rule_violations(self, payload):
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        with pytest.raises(ValidationError):
            enforce_rules_product(patch)

    def test_missing_required(self):
        with pytest.raises(ValidationError):
            validate_payload(model=Product, payload={"name": "Gula"}, policy=PRODUCT_POLICY, partial=False)

    def test_quantity_rejected_on_update(self):
        with pytest.raises(ValidationError):
            validate_payload(model=Product, payload={"quantity": 3}, policy=PRODUCT_UPDATE_POLICY, partial=True)


class TestProductLifecycle:
    def test_create_sets_initial_quantity(self, owner, owner_scope):
        product = products_service.create_product(
            owner_scope, patch={"name": "Gula", "category": "Bahan", "unit": "KG", "quantity": 7},
        )
        assert product.user_id == owner.id
        assert product.quantity == 7

    def test_create_with_foreign_supplier(self, owner_scope, make_user):
        stranger = make_user("stranger", "OWNER")
        foreign = supplier_service.create_supplier(
            scope_for_owner(stranger.id), patch={"name": "Toko", "category": "Bahan"},
        )
        with pytest.raises(NotFoundError):
            products_service.create_product(
                owner_scope,
                patch={"name": "Gula", "category": "Bahan", "unit": "KG", "supplier_id": foreign.id},
            )

    def test_delete_unused_product(self, db_session, owner, owner_scope, make_product):
        sugar = make_product(owner, "Gula")
        products_service.delete_product(owner_scope, sugar.id)
        assert db_session.get(Product, sugar.id) is None

    def test_delete_with_history_conflicts(self, owner, owner_scope, make_product):
        sugar = make_product(owner, "Gula", quantity=3)
        stock_service.record_manual_sale(
            owner_scope, product_id=sugar.id, quantity=1, transaction_date="2026-01-01", name="x",
        )
        with pytest.raises(ConflictError):
            products_service.delete_product(owner_scope, sugar.id)

    def test_delete_used_in_recipe_conflicts(self, owner, owner_scope, make_product, make_menu):
        sugar = make_product(owner, "Gula")
        make_menu("ES01", "Es Teh", [(sugar, "10")])
        with pytest.raises(ConflictError):
            products_service.delete_product(owner_scope, sugar.id)


class TestSuppliers:
    def test_delete_supplier_detaches_references(self, db_session, owner, owner_scope, make_product):
        supplier = supplier_service.create_supplier(owner_scope, patch={"name": "Toko Ani", "category": "Bahan"})
        rice = make_product(owner, "Beras")
        products_service.update_product(owner_scope, rice.id, patch={"supplier_id": supplier.id})
        stock_service.record_purchase(
            owner_scope, product_id=rice.id, supplier_id=supplier.id, quantity=5,
            total_amount=50000, payment_method="CASH", status="COMPLETED",
            transaction_date="2026-01-01", name="Beli",
        )

        supplier_service.delete_supplier(owner_scope, supplier.id)

        assert db_session.get(Product, rice.id).supplier_id is None
        assert db_session.query(StockInTransaction).one().supplier_id is None
        assert db_session.get(Product, rice.id).quantity == 5


class TestMenus:
    def test_create_menu_and_replace_recipe(self, owner, owner_scope, make_product):
        rice = make_product(owner, "Beras")
        egg = make_product(owner, "Telur", unit="PCS")
        menu = recipe_service.create_menu(
            owner_scope, code="NG01", name="Nasi Goreng",
            recipes=[{"product_id": rice.id, "qty_per_portion": "150"}],
        )
        assert len(menu.recipes) == 1

        menu = recipe_service.set_recipe(owner_scope, menu.id, [
            {"product_id": egg.id, "qty_per_portion": 2},
            {"product_id": rice.id, "qty_per_portion": "0.5"},
        ])
        assert sorted(r.product_id for r in menu.recipes) == sorted([rice.id, egg.id])

    @pytest.mark.parametrize("qty", [0, -1, "abc", None])
    def test_bad_recipe_quantity(self, owner, owner_scope, make_product, qty):
        rice = make_product(owner, "Beras")
        with pytest.raises(ValidationFailedError):
            recipe_service.create_menu(
                owner_scope, code="NG01", name="Nasi Goreng",
                recipes=[{"product_id": rice.id, "qty_per_portion": qty}],
            )

    def test_duplicate_product_in_recipe(self, owner, owner_scope, make_product):
        rice = make_product(owner, "Beras")
        with pytest.raises(ValidationFailedError):
            recipe_service.create_menu(
                owner_scope, code="NG01", name="Nasi Goreng",
                recipes=[{"product_id": rice.id, "qty_per_portion": 1}, {"product_id": rice.id, "qty_per_portion": 2}],
            )

    def test_delete_menu_keeps_sales_history(self, db_session, owner, owner_scope, make_product, make_menu):
        rice = make_product(owner, "Beras", quantity=500)
        menu = make_menu("NG01", "Nasi Goreng", [(rice, "150")])
        stock_service.record_recipe_sale(owner_scope, menu_id=menu.id, portions=1)

        recipe_service.delete_menu(menu.id)

        row = db_session.query(StockOutTransaction).one()
        assert row.menu_id is None
        assert row.quantity == 150
