# Overview: Pytest coverage for purchase (stock-in) stock effects.

"""
Purchase Stock Effect Tests

Only COMPLETED purchases count toward stock. Creating, editing and deleting
a purchase must move Product.quantity by exactly the change in effect.
"""

import pytest

from app.models import Product, StockInTransaction
from app.services import stock_service
from app.services.errors import InsufficientStockError, NotFoundError, ValidationFailedError
from app.services.stock_service import compute_delta


def _quantity(db_session, product_id: int) -> int:
    return db_session.query(Product.quantity).filter_by(id=product_id).scalar()


def _purchase(scope, product, *, quantity=10, status="COMPLETED", **extra):
    return stock_service.record_purchase(
        scope,
        product_id=product.id,
        quantity=quantity,
        total_amount=quantity * 1000,
        payment_method="CASH",
        status=status,
        transaction_date="2026-03-01",
        name="Beli beras",
        **extra,
    )


class TestComputeDelta:
    """Pure delta between two purchase states."""

    @pytest.mark.parametrize(
        "old_status,new_status,old_qty,new_qty,expected",
        [
            (None, "COMPLETED", 0, 10, 10),
            (None, "PENDING", 0, 10, 0),
            ("PENDING", "COMPLETED", 10, 10, 10),
            ("COMPLETED", "CANCELLED", 10, 10, -10),
            ("COMPLETED", "COMPLETED", 10, 4, -6),
            ("COMPLETED", "COMPLETED", 4, 10, 6),
            ("COMPLETED", None, 7, 0, -7),
            ("CANCELLED", None, 7, 0, 0),
            ("PENDING", "CANCELLED", 3, 9, 0),
        ],
    )
    def test_delta(self, old_status, new_status, old_qty, new_qty, expected):
        assert compute_delta(old_status, new_status, old_qty, new_qty) == expected


class TestRecordPurchase:
    def test_completed_purchase_adds_stock(self, db_session, owner, owner_scope, make_product):
        rice = make_product(owner, "Beras", quantity=5)
        row = _purchase(owner_scope, rice, quantity=10)

        assert row.id is not None
        assert row.user_id == owner.id
        assert _quantity(db_session, rice.id) == 15

    def test_pending_purchase_leaves_stock(self, db_session, owner, owner_scope, make_product):
        rice = make_product(owner, "Beras", quantity=5)
        _purchase(owner_scope, rice, quantity=10, status="pending")

        assert _quantity(db_session, rice.id) == 5

    def test_rejects_product_of_other_owner(self, db_session, owner_scope, make_user, make_product):
        stranger = make_user("stranger", "OWNER")
        foreign = make_product(stranger, "Foreign", quantity=1)

        with pytest.raises(NotFoundError):
            _purchase(owner_scope, foreign)
        assert db_session.query(StockInTransaction).count() == 0

    def test_rejects_bad_status(self, owner, owner_scope, make_product):
        rice = make_product(owner, "Beras")
        with pytest.raises(ValidationFailedError):
            _purchase(owner_scope, rice, status="SHIPPED")

    def test_rejects_negative_quantity(self, owner, owner_scope, make_product):
        rice = make_product(owner, "Beras")
        with pytest.raises(ValidationFailedError):
            _purchase(owner_scope, rice, quantity=-1)

    def test_rejects_quantity_above_limit(self, db_session, owner, owner_scope, make_product):
        rice = make_product(owner, "Beras")
        with pytest.raises(ValidationFailedError) as exc:
            _purchase(owner_scope, rice, quantity=10**20)
        assert "cannot exceed" in str(exc.value)
        assert db_session.query(StockInTransaction).count() == 0

    def test_oversized_quantity_is_400_over_http(self, client, owner, owner_headers, make_product):
        rice = make_product(owner, "Beras")
        resp = client.post(
            "/api/transactions",
            json={
                "name": "Beli beras", "product_id": rice.id, "quantity": 10**20,
                "total_amount": 1, "status": "COMPLETED",
                "payment_method": "CASH", "transaction_date": "2026-03-01",
            },
            headers=owner_headers,
        )
        assert resp.status_code == 400
        assert "quantity" in resp.json["error"]


class TestUpdatePurchase:
    def test_status_to_completed_applies_quantity(self, db_session, owner, owner_scope, make_product):
        rice = make_product(owner, "Beras", quantity=0)
        row = _purchase(owner_scope, rice, quantity=8, status="PENDING")

        stock_service.update_purchase(owner_scope, row.id, status="COMPLETED")
        assert _quantity(db_session, rice.id) == 8

    def test_pending_completed_cancelled_round_trip(self, db_session, owner, owner_scope, make_product):
        rice = make_product(owner, "Beras", quantity=3)
        row = _purchase(owner_scope, rice, quantity=8, status="PENDING")
        assert _quantity(db_session, rice.id) == 3

        stock_service.update_purchase(owner_scope, row.id, status="COMPLETED")
        assert _quantity(db_session, rice.id) == 11

        stock_service.update_purchase(owner_scope, row.id, status="CANCELLED")
        assert _quantity(db_session, rice.id) == 3
        assert db_session.get(StockInTransaction, row.id).status == "CANCELLED"

    def test_quantity_change_moves_difference(self, db_session, owner, owner_scope, make_product):
        rice = make_product(owner, "Beras", quantity=0)
        row = _purchase(owner_scope, rice, quantity=10)

        stock_service.update_purchase(owner_scope, row.id, quantity=4)
        assert _quantity(db_session, rice.id) == 4

        stock_service.update_purchase(owner_scope, row.id, quantity=12)
        assert _quantity(db_session, rice.id) == 12

    def test_product_change_moves_stock_between_products(self, db_session, owner, owner_scope, make_product):
        rice = make_product(owner, "Beras", quantity=0)
        sugar = make_product(owner, "Gula", quantity=2)
        row = _purchase(owner_scope, rice, quantity=10)

        stock_service.update_purchase(owner_scope, row.id, product_id=sugar.id)

        assert _quantity(db_session, rice.id) == 0
        assert _quantity(db_session, sugar.id) == 12

    def test_cancelling_consumed_purchase_is_rejected(self, db_session, owner, owner_scope, make_product):
        rice = make_product(owner, "Beras", quantity=0)
        row = _purchase(owner_scope, rice, quantity=10)
        stock_service.record_manual_sale(
            owner_scope, product_id=rice.id, quantity=7,
            transaction_date="2026-03-02", name="Jual",
        )

        with pytest.raises(InsufficientStockError):
            stock_service.update_purchase(owner_scope, row.id, status="CANCELLED")

        assert _quantity(db_session, rice.id) == 3
        assert db_session.get(StockInTransaction, row.id).status == "COMPLETED"

    def test_unknown_field_rejected(self, owner, owner_scope, make_product):
        rice = make_product(owner, "Beras")
        row = _purchase(owner_scope, rice)
        with pytest.raises(ValidationFailedError):
            stock_service.update_purchase(owner_scope, row.id, user_id=999)


class TestDeletePurchase:
    def test_delete_completed_reverses_stock(self, db_session, owner, owner_scope, make_product):
        rice = make_product(owner, "Beras", quantity=1)
        row = _purchase(owner_scope, rice, quantity=10)

        stock_service.delete_purchase(owner_scope, row.id)

        assert _quantity(db_session, rice.id) == 1
        assert db_session.query(StockInTransaction).count() == 0

    def test_delete_pending_keeps_stock(self, db_session, owner, owner_scope, make_product):
        rice = make_product(owner, "Beras", quantity=1)
        row = _purchase(owner_scope, rice, quantity=10, status="PENDING")

        stock_service.delete_purchase(owner_scope, row.id)
        assert _quantity(db_session, rice.id) == 1

    def test_delete_missing_purchase(self, owner_scope):
        with pytest.raises(NotFoundError):
            stock_service.delete_purchase(owner_scope, 12345)
