# Overview: Service-layer dashboard aggregates; read-only queries over products and the stock ledger.

from __future__ import annotations

from sqlalchemy import extract, func

from ..extensions import db
from ..models import Product, Supplier, StockInTransaction, StockOutTransaction
from ..models.inventory import PURCHASE_COMPLETED
from .notification_service import derive_stock_status, STATUS_OUT, STATUS_CRITICAL, STATUS_WARNING
from app.time_utils import utcnow, year_bounds

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

# Future years offered by the activity year picker
FUTURE_YEARS = 3


def _monthly_totals(model, owner_id: int, year: int, *extra_filters) -> dict[int, int]:
    start, end = year_bounds(year)
    month = extract("month", model.transaction_date)
    rows = (
        db.session.query(month.label("month"), func.coalesce(func.sum(model.quantity), 0))
        .filter(
            model.user_id == owner_id,
            model.transaction_date >= start,
            model.transaction_date < end,
            *extra_filters,
        )
        .group_by(month)
        .all()
    )
    return {int(m): int(total) for m, total in rows}


def get_monthly_stock_activity(owner_id: int, year: int) -> list[dict]:
    """
    Twelve entries {month, stock_in, stock_out} for a calendar year.

    stock_in sums COMPLETED purchases only; stock_out sums every stock-out row.
    """
    stock_in = _monthly_totals(
        StockInTransaction, owner_id, year, StockInTransaction.status == PURCHASE_COMPLETED
    )
    stock_out = _monthly_totals(StockOutTransaction, owner_id, year)

    return [
        {
            "month": name,
            "stock_in": stock_in.get(i, 0),
            "stock_out": stock_out.get(i, 0),
        }
        for i, name in enumerate(MONTH_NAMES, start=1)
    ]


def get_available_transaction_years(owner_id: int) -> list[int]:
    """Years with ledger data plus the current year and the next three, ascending."""
    current_year = utcnow().year
    years = set(range(current_year, current_year + FUTURE_YEARS + 1))

    for model in (StockInTransaction, StockOutTransaction):
        year = extract("year", model.transaction_date)
        for (y,) in db.session.query(year).filter(model.user_id == owner_id).distinct():
            if y is not None:
                years.add(int(y))

    return sorted(years)


def get_dashboard_metrics(owner_id: int) -> dict:
    """Headline numbers for the dashboard cards."""
    products = db.session.query(Product.quantity, Product.low_stock, Product.price).filter(
        Product.user_id == owner_id
    ).all()

    alerts = {STATUS_OUT: 0, STATUS_CRITICAL: 0, STATUS_WARNING: 0}
    total_value = 0
    total_units = 0
    for quantity, low_stock, price in products:
        total_value += (price or 0) * (quantity or 0)
        total_units += quantity or 0
        status = derive_stock_status(quantity, low_stock)
        if status is not None:
            alerts[status] += 1

    supplier_count = db.session.query(func.count(Supplier.id)).filter(Supplier.user_id == owner_id).scalar()

    return {
        "product_count": len(products),
        "supplier_count": int(supplier_count or 0),
        "total_units": total_units,
        "total_stock_value": total_value,
        "alerts": alerts,
        "low_stock_count": sum(alerts.values()),
    }


def get_stock_levels(owner_id: int, limit: int | None = None) -> list[dict]:
    """
    Products with their derived stock status, lowest stock first.

    Uses the same classifier as the low-stock notifications.
    """
    query = (
        db.session.query(Product)
        .filter(Product.user_id == owner_id)
        .order_by(Product.quantity.asc(), Product.name.asc(), Product.id.asc())
    )
    if limit:
        query = query.limit(limit)

    return [
        {
            "product_id": p.id,
            "stock_name": p.name,
            "category": p.category,
            "unit": p.unit,
            "quantity": p.quantity,
            "threshold": p.low_stock,
            "status": derive_stock_status(p.quantity, p.low_stock) or "ok",
        }
        for p in query.all()
    ]
