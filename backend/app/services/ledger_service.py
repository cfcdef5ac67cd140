# Overview: Service-layer operations for the stock ledger; encapsulates database work on transaction rows.

"""
Stock Ledger Invariants

- Two row kinds: StockInTransaction (purchases) and StockOutTransaction
  (sales, recipe deductions, write-offs).
- Functions here only add, find and list rows. They never touch
  Product.quantity and never commit; stock_service owns the unit of work.
- Rows are stamped with scope.owner_id. Lookups accept any id in
  scope.owner_ids.
"""

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..models import StockInTransaction, StockOutTransaction
from .concurrency import lock_for_update
from .errors import NotFoundError
from .pagination import paginate
from .tenant_service import OwnerScope


def add_stock_in(
    scope: OwnerScope,
    *,
    product_id: int,
    supplier_id: int | None,
    name: str,
    quantity: int,
    total_amount: int,
    status: str,
    payment_method: str,
    transaction_date: datetime,
) -> StockInTransaction:
    row = StockInTransaction(
        user_id=scope.owner_id,
        product_id=product_id,
        supplier_id=supplier_id,
        name=name,
        quantity=quantity,
        total_amount=total_amount,
        status=status,
        payment_method=payment_method,
        transaction_date=transaction_date,
    )
    db.session.add(row)
    db.session.flush()
    return row


def find_owned_stock_in(scope: OwnerScope, transaction_id: int, *, lock: bool = False) -> StockInTransaction:
    query = db.session.query(StockInTransaction).filter(
        StockInTransaction.id == transaction_id,
        StockInTransaction.user_id.in_(scope.owner_ids),
    )
    if lock:
        query = lock_for_update(query)
    row = query.first()
    if row is None:
        raise NotFoundError("Transaction not found")
    return row


def list_stock_in(
    owner_id: int,
    *,
    status: str | None = None,
    product_id: int | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """Purchases of an owner, newest business date first."""
    query = db.session.query(StockInTransaction).filter(StockInTransaction.user_id == owner_id)
    if status:
        query = query.filter(StockInTransaction.status == status)
    if product_id is not None:
        query = query.filter(StockInTransaction.product_id == product_id)
    query = query.order_by(StockInTransaction.transaction_date.desc(), StockInTransaction.id.desc())
    return paginate(query, page=page, per_page=per_page, serialize=lambda r: r.to_dict())


def add_stock_out(
    scope: OwnerScope,
    *,
    product_id: int,
    name: str,
    quantity: int,
    transaction_date: datetime,
    source: str,
    menu_id: int | None = None,
    note: str | None = None,
    batch_ref: str | None = None,
) -> StockOutTransaction:
    row = StockOutTransaction(
        user_id=scope.owner_id,
        product_id=product_id,
        menu_id=menu_id,
        name=name,
        quantity=quantity,
        source=source,
        batch_ref=batch_ref,
        transaction_date=transaction_date,
        note=note,
    )
    db.session.add(row)
    db.session.flush()
    return row


def bulk_add_stock_out(rows: list[dict]) -> int:
    """
    Insert many stock-out rows in one executemany.

    Each dict carries the StockOutTransaction column values (user_id
    included). Returns the number of rows inserted.
    """
    if not rows:
        return 0
    db.session.execute(db.insert(StockOutTransaction), rows)
    return len(rows)


def find_owned_stock_out(scope: OwnerScope, transaction_id: int, *, lock: bool = False) -> StockOutTransaction:
    query = db.session.query(StockOutTransaction).filter(
        StockOutTransaction.id == transaction_id,
        StockOutTransaction.user_id.in_(scope.owner_ids),
    )
    if lock:
        query = lock_for_update(query)
    row = query.first()
    if row is None:
        raise NotFoundError("Sale not found")
    return row


def list_stock_out(
    owner_id: int,
    *,
    source: str | None = None,
    batch_ref: str | None = None,
    product_id: int | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """Stock-out rows of an owner, newest business date first."""
    query = db.session.query(StockOutTransaction).filter(StockOutTransaction.user_id == owner_id)
    if source:
        query = query.filter(StockOutTransaction.source == source)
    if batch_ref:
        query = query.filter(StockOutTransaction.batch_ref == batch_ref)
    if product_id is not None:
        query = query.filter(StockOutTransaction.product_id == product_id)
    query = query.order_by(StockOutTransaction.transaction_date.desc(), StockOutTransaction.id.desc())
    return paginate(query, page=page, per_page=per_page, serialize=lambda r: r.to_dict())
