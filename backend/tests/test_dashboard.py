# Overview: Pytest coverage for dashboard aggregates.

from datetime import datetime

import pytest

from app.models import StockInTransaction, StockOutTransaction
from app.services import dashboard_service, notification_service
from app.services.notification_service import derive_stock_status
from app.time_utils import utcnow


def _stock_in(db_session, owner, product, quantity, status, when):
    db_session.add(StockInTransaction(
        user_id=owner.id, product_id=product.id, name="Beli", quantity=quantity,
        total_amount=0, status=status, payment_method="CASH", transaction_date=when,
    ))


def _stock_out(db_session, owner, product, quantity, when, source="MANUAL"):
    db_session.add(StockOutTransaction(
        user_id=owner.id, product_id=product.id, name="Jual", quantity=quantity,
        source=source, transaction_date=when,
    ))


class TestMonthlyActivity:
    def test_twelve_months_completed_only(self, db_session, owner, make_product):
        rice = make_product(owner, "Beras", quantity=100)
        _stock_in(db_session, owner, rice, 10, "COMPLETED", datetime(2025, 1, 5))
        _stock_in(db_session, owner, rice, 7, "PENDING", datetime(2025, 1, 6))
        _stock_in(db_session, owner, rice, 3, "COMPLETED", datetime(2025, 3, 31, 23, 59))
        _stock_out(db_session, owner, rice, 4, datetime(2025, 1, 20))
        _stock_out(db_session, owner, rice, 2, datetime(2025, 1, 21), source="CSV")
        _stock_out(db_session, owner, rice, 9, datetime(2024, 12, 31))
        db_session.commit()

        items = dashboard_service.get_monthly_stock_activity(owner.id, 2025)

        assert len(items) == 12
        assert items[0] == {"month": "January", "stock_in": 10, "stock_out": 6}
        assert items[2] == {"month": "March", "stock_in": 3, "stock_out": 0}
        assert items[11] == {"month": "December", "stock_in": 0, "stock_out": 0}

    def test_other_owner_excluded(self, db_session, owner, make_user, make_product):
        stranger = make_user("stranger", "OWNER")
        foreign = make_product(stranger, "Foreign", quantity=10)
        _stock_out(db_session, stranger, foreign, 5, datetime(2025, 6, 1))
        db_session.commit()

        items = dashboard_service.get_monthly_stock_activity(owner.id, 2025)
        assert sum(i["stock_out"] for i in items) == 0


class TestAvailableYears:
    def test_data_years_plus_upcoming(self, db_session, owner, make_product):
        rice = make_product(owner, "Beras", quantity=10)
        _stock_out(db_session, owner, rice, 1, datetime(2019, 2, 1))
        db_session.commit()

        years = dashboard_service.get_available_transaction_years(owner.id)
        current = utcnow().year

        assert years[0] == 2019
        assert years[-1] == current + 3
        assert years == sorted(set(years))


class TestMetricsAndLevels:
    def test_metrics(self, db_session, owner, make_product):
        make_product(owner, "Beras", quantity=10, low_stock=5, price=12)
        make_product(owner, "Gula", quantity=2, low_stock=10, price=15)
        make_product(owner, "Garam", quantity=0, price=5)

        metrics = dashboard_service.get_dashboard_metrics(owner.id)

        assert metrics["product_count"] == 3
        assert metrics["total_units"] == 12
        assert metrics["total_stock_value"] == 10 * 12 + 2 * 15
        assert metrics["alerts"] == {"out": 1, "critical": 1, "warning": 0}
        assert metrics["low_stock_count"] == 2

    def test_stock_levels_lowest_first(self, db_session, owner, make_product):
        make_product(owner, "Beras", quantity=10, low_stock=5)
        make_product(owner, "Gula", quantity=4, low_stock=5)

        items = dashboard_service.get_stock_levels(owner.id)

        assert [i["stock_name"] for i in items] == ["Gula", "Beras"]
        assert [i["status"] for i in items] == ["warning", "ok"]

    def test_activity_endpoint(self, client, owner_headers):
        resp = client.get("/api/dashboard/activity?year=2025", headers=owner_headers)
        assert resp.status_code == 200
        assert resp.json["year"] == 2025
        assert len(resp.json["items"]) == 12


THRESHOLD_TABLE = [
    # (quantity, low_stock)
    (0, 10),
    (0, None),
    (1, 3),
    (2, 3),
    (3, 0),
    (5, 10),
    (9, 10),
    (10, 10),
    (50, None),
]


class TestSharedClassifier:
    """Stock levels and low-stock alerts agree on every product's status."""

    @pytest.fixture
    def shelf(self, owner, make_product):
        return [
            make_product(owner, f"Bahan {i}", quantity=qty, low_stock=threshold)
            for i, (qty, threshold) in enumerate(THRESHOLD_TABLE)
        ]

    def test_stock_levels_match_classifier(self, db_session, owner, shelf):
        levels = {i["product_id"]: i["status"] for i in dashboard_service.get_stock_levels(owner.id)}

        for product in shelf:
            expected = derive_stock_status(product.quantity, product.low_stock) or "ok"
            assert levels[product.id] == expected, product.name

    def test_alerts_cover_exactly_the_flagged_levels(self, db_session, owner, shelf):
        levels = dashboard_service.get_stock_levels(owner.id)
        alerts = notification_service.get_low_stock_notifications(owner.id)

        flagged = {i["product_id"]: i["status"] for i in levels if i["status"] != "ok"}
        assert {a["product_id"]: a["status"] for a in alerts} == flagged

    def test_metrics_alert_counts_match_alerts(self, db_session, owner, shelf):
        alerts = notification_service.get_low_stock_notifications(owner.id)
        metrics = dashboard_service.get_dashboard_metrics(owner.id)

        for status in ("out", "critical", "warning"):
            assert metrics["alerts"][status] == sum(1 for a in alerts if a["status"] == status)
