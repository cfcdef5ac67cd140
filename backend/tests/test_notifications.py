# Overview: Pytest coverage for low-stock status derivation and notification dedup.

import pytest

from app.models import Notification, Product
from app.services import notification_service
from app.services.notification_service import derive_stock_status, build_message


class TestDeriveStockStatus:
    @pytest.mark.parametrize(
        "quantity,threshold,expected",
        [
            (0, 10, "out"),
            (0, None, "out"),
            (-1, 0, "out"),
            (5, 10, "critical"),
            (1, 3, "critical"),
            (2, 3, "warning"),
            (9, 10, "warning"),
            (10, 10, None),
            (50, None, None),
            (3, 0, None),
        ],
    )
    def test_status(self, quantity, threshold, expected):
        assert derive_stock_status(quantity, threshold) == expected

    def test_messages(self):
        assert build_message("Beras", "out") == "Your Beras stock is out of stock"
        assert build_message("Beras", "critical") == "Your Beras stock is critically low"
        assert build_message("Beras", "warning") == "Your Beras stock is running low"


class TestLowStockNotifications:
    def test_only_low_products_are_reported(self, db_session, owner, make_product):
        make_product(owner, "Beras", quantity=100, low_stock=10)
        low = make_product(owner, "Gula", quantity=4, low_stock=10)
        out = make_product(owner, "Garam", quantity=0)

        items = notification_service.get_low_stock_notifications(owner.id)

        by_product = {i["product_id"]: i for i in items}
        assert set(by_product) == {low.id, out.id}
        assert by_product[low.id]["status"] == "critical"
        assert by_product[low.id]["severity"] == "CRITICAL"
        assert by_product[low.id]["threshold"] == 10
        assert by_product[out.id]["status"] == "out"
        assert by_product[out.id]["threshold"] == 0
        assert by_product[out.id]["notified_at"].endswith("Z")

    def test_repeated_reads_reuse_rows(self, db_session, owner, make_product):
        make_product(owner, "Gula", quantity=8, low_stock=10)

        first = notification_service.get_low_stock_notifications(owner.id)
        second = notification_service.get_low_stock_notifications(owner.id)

        assert [i["notification_id"] for i in first] == [i["notification_id"] for i in second]
        assert [i["notified_at"] for i in first] == [i["notified_at"] for i in second]
        assert db_session.query(Notification).count() == 1

    def test_status_change_creates_new_row(self, db_session, owner, make_product):
        sugar = make_product(owner, "Gula", quantity=8, low_stock=10)
        first = notification_service.get_low_stock_notifications(owner.id)

        db_session.query(Product).filter_by(id=sugar.id).update({Product.quantity: 2})
        db_session.commit()
        second = notification_service.get_low_stock_notifications(owner.id)

        assert first[0]["status"] == "warning"
        assert second[0]["status"] == "critical"
        assert second[0]["notification_id"] != first[0]["notification_id"]
        assert db_session.query(Notification).count() == 2

    def test_rename_refreshes_message(self, db_session, owner, make_product):
        sugar = make_product(owner, "Gula", quantity=0)
        first = notification_service.get_low_stock_notifications(owner.id)

        db_session.query(Product).filter_by(id=sugar.id).update({Product.name: "Gula Pasir"})
        db_session.commit()
        second = notification_service.get_low_stock_notifications(owner.id)

        assert second[0]["notification_id"] == first[0]["notification_id"]
        assert second[0]["message"] == "Your Gula Pasir stock is out of stock"

    def test_concurrent_first_read_reuses_the_committed_row(self, db_session, owner, make_product, monkeypatch):
        sugar = make_product(owner, "Gula", quantity=0)
        winner = Notification(
            user_id=owner.id, product_id=sugar.id, type="LOW_STOCK", status="out",
            severity="CRITICAL", message="Your Gula stock is out of stock",
        )
        db_session.add(winner)
        db_session.commit()
        winner_id = winner.id

        # First lookup misses the row another request committed in the meantime
        real_load = notification_service._load_existing
        calls = []

        def stale_then_real(owner_id, product_ids):
            calls.append(owner_id)
            if len(calls) == 1:
                return {}
            return real_load(owner_id, product_ids)

        monkeypatch.setattr(notification_service, "_load_existing", stale_then_real)

        items = notification_service.get_low_stock_notifications(owner.id)

        assert len(calls) == 2
        assert [i["notification_id"] for i in items] == [winner_id]
        assert db_session.query(Notification).count() == 1

    def test_other_owner_products_excluded(self, db_session, owner, make_user, make_product):
        stranger = make_user("stranger", "OWNER")
        make_product(stranger, "Foreign", quantity=0)

        assert notification_service.get_low_stock_notifications(owner.id) == []

    def test_endpoint_for_staff(self, client, owner, staff_headers, make_product):
        make_product(owner, "Gula", quantity=0)

        resp = client.get("/api/notifications/low-stock", headers=staff_headers)

        assert resp.status_code == 200
        assert resp.json["count"] == 1
        assert resp.json["items"][0]["stock_name"] == "Gula"
