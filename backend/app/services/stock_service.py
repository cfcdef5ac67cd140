# Overview: Service-layer stock engine; every quantity change and its ledger row commit together.

"""
Stock Adjustment Service

WHY: Product.quantity is a running balance maintained by deltas. Every
operation here is exactly one atomic unit: ledger rows and quantity
changes commit together or not at all.

INVARIANTS:
- Only COMPLETED purchases count toward stock. Moving a purchase into or
  out of COMPLETED applies the matching delta in the same unit.
- Every stock-out row took its quantity off the product when inserted.
- No operation leaves a product below zero. Decrements are conditional
  UPDATEs (products_service.adjust_quantity), so concurrent writers are
  covered as well.
- Deltas on the same product are netted before they are applied, so a
  valid end state is never rejected because of an intermediate step.

Each unit runs through run_with_retry (rollback on any failure, retry on
lock conflicts) inside timed_transaction (DEFAULT_TX_TIMEOUT_SECONDS, or
SALES_CSV_TX_TIMEOUT_SECONDS for CSV uploads).
"""

from __future__ import annotations

import logging
import uuid
from collections import OrderedDict
from datetime import datetime
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import StockInTransaction, StockOutTransaction
from ..models.inventory import (
    PURCHASE_COMPLETED,
    PURCHASE_STATUSES,
    PAYMENT_METHODS,
    SOURCE_MANUAL,
    SOURCE_CSV,
    SOURCE_RECIPE_SALE,
    SOURCE_ADJUSTMENT,
)
from ..validation import MAX_QUANTITY, MAX_TOTAL_AMOUNT, coerce_int, coerce_datetime_field
from . import ledger_service, products_service, recipe_service
from .concurrency import run_with_retry, timed_transaction
from .errors import NotFoundError, ValidationFailedError
from .sales_csv_parser import parse_sales_csv, round_half_away
from .tenant_service import OwnerScope
from app.time_utils import utcnow

logger = logging.getLogger(__name__)

CORRECTION_REASONS = ("DAMAGED", "EXPIRED", "LOST", "OTHER")
EDITABLE_SALE_SOURCES = (SOURCE_MANUAL, SOURCE_ADJUSTMENT)
MAX_NOTE_LENGTH = 250
_UNSET = object()


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def compute_delta(old_status: str | None, new_status: str | None, old_qty: int, new_qty: int) -> int:
    """
    Stock delta for a purchase moving from (old_status, old_qty) to
    (new_status, new_qty).

    old_status None means the row is being created; new_status None means
    it is being deleted. Only COMPLETED rows have a stock effect.
    """
    old_effect = old_qty if old_status == PURCHASE_COMPLETED else 0
    new_effect = new_qty if new_status == PURCHASE_COMPLETED else 0
    return new_effect - old_effect


def deduction_for(qty_per_portion: Decimal, portions: int) -> int:
    """Stock taken for one recipe line: at least 1, rounded half away from zero."""
    deduction = max(1, round_half_away(Decimal(qty_per_portion) * portions))
    if deduction > MAX_QUANTITY:
        raise ValidationFailedError(f"Stock usage cannot exceed {MAX_QUANTITY} per entry")
    return deduction


def merge_notes(row_note: str | None, general_note: str | None) -> str | None:
    parts = [n.strip() for n in (row_note, general_note) if n and n.strip()]
    if not parts:
        return None
    return " | ".join(parts)[:MAX_NOTE_LENGTH]


# ---------------------------------------------------------------------------
# Input normalization
# ---------------------------------------------------------------------------

def _name(value, field: str = "name") -> str:
    if value is None or not str(value).strip():
        raise ValidationFailedError(f"{field} is required")
    value = str(value).strip()
    if len(value) > 255:
        raise ValidationFailedError(f"{field} exceeds max length 255")
    return value


def _non_negative_int(value, field: str, maximum: int = MAX_QUANTITY) -> int:
    if value is None:
        raise ValidationFailedError(f"{field} is required")
    n = coerce_int(field, value)
    if n < 0:
        raise ValidationFailedError(f"{field} must be >= 0")
    if n > maximum:
        raise ValidationFailedError(f"{field} cannot exceed {maximum}")
    return n


def _positive_int(value, field: str, maximum: int = MAX_QUANTITY) -> int:
    if value is None:
        raise ValidationFailedError(f"{field} is required")
    n = coerce_int(field, value)
    if n <= 0:
        raise ValidationFailedError(f"{field} must be > 0")
    if n > maximum:
        raise ValidationFailedError(f"{field} cannot exceed {maximum}")
    return n


def _choice(value, field: str, allowed) -> str:
    if value is None:
        raise ValidationFailedError(f"{field} is required")
    normalized = str(value).strip().upper()
    if normalized not in allowed:
        raise ValidationFailedError(f"Invalid {field} value")
    return normalized


def _date(value, field: str = "transaction_date", *, default_now: bool = False) -> datetime:
    if value is None or (isinstance(value, str) and not value.strip()):
        if default_now:
            return utcnow()
        raise ValidationFailedError(f"{field} is required")
    return coerce_datetime_field(field, value)


def _optional_id(value, field: str) -> int | None:
    if value is None or value == "":
        return None
    return coerce_int(field, value)


def _note(value) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    if not value:
        return None
    if len(value) > MAX_NOTE_LENGTH:
        raise ValidationFailedError(f"note exceeds max length {MAX_NOTE_LENGTH}")
    return value


def _apply_deltas(scope: OwnerScope, deltas: dict[int, int]) -> None:
    """
    Apply netted per-product deltas. Increments go first; decrements run
    in product id order and raise InsufficientStockError on a miss.
    """
    for product_id in sorted(pid for pid, d in deltas.items() if d > 0):
        products_service.adjust_quantity(scope, product_id, deltas[product_id])
    for product_id in sorted(pid for pid, d in deltas.items() if d < 0):
        products_service.adjust_quantity(scope, product_id, deltas[product_id])


def _add_delta(deltas: dict[int, int], product_id: int, delta: int) -> None:
    deltas[product_id] = deltas.get(product_id, 0) + delta


def _check_usage(usage: dict[int, int]) -> None:
    for product_id, total in usage.items():
        if total > MAX_QUANTITY:
            raise ValidationFailedError(f"Stock usage for product {product_id} cannot exceed {MAX_QUANTITY}")


def _validate_menu(menu_id) -> int | None:
    menu_id = _optional_id(menu_id, "menu_id")
    if menu_id is not None:
        recipe_service.get_menu(menu_id)
    return menu_id


# ---------------------------------------------------------------------------
# Purchases (stock-in)
# ---------------------------------------------------------------------------

def record_purchase(
    scope: OwnerScope,
    *,
    product_id,
    quantity,
    total_amount,
    payment_method,
    status,
    transaction_date,
    name,
    supplier_id=None,
) -> StockInTransaction:
    """
    Record a purchase; a COMPLETED purchase adds its quantity to the product.

    Args:
        scope: Owner scope of the caller
        product_id: Product receiving the stock (must be inside scope)
        quantity: Units received (>= 0, base unit)
        total_amount: Amount paid (>= 0, whole currency units)
        payment_method: CASH | TRANSFER | OTHER
        status: PENDING | COMPLETED | CANCELLED
        transaction_date: Business date (datetime or ISO-8601 string)
        name: Transaction label
        supplier_id: Optional supplier (must be inside scope)

    Returns:
        Created StockInTransaction

    Raises:
        ValidationFailedError: Bad field value
        NotFoundError: Product or supplier outside scope
    """
    product_id = coerce_int("product_id", product_id)
    supplier_id = _optional_id(supplier_id, "supplier_id")
    quantity = _non_negative_int(quantity, "quantity")
    total_amount = _non_negative_int(total_amount, "total_amount", MAX_TOTAL_AMOUNT)
    payment_method = _choice(payment_method, "payment_method", PAYMENT_METHODS)
    status = _choice(status, "status", PURCHASE_STATUSES)
    transaction_date = _date(transaction_date)
    name = _name(name)

    def _op():
        with timed_transaction() as unit:
            products_service.find_owned_product(scope, product_id, lock=True)
            if supplier_id is not None:
                products_service.find_owned_supplier(scope, supplier_id)

            row = ledger_service.add_stock_in(
                scope,
                product_id=product_id,
                supplier_id=supplier_id,
                name=name,
                quantity=quantity,
                total_amount=total_amount,
                status=status,
                payment_method=payment_method,
                transaction_date=transaction_date,
            )
            products_service.adjust_quantity(
                scope, product_id, compute_delta(None, status, 0, quantity)
            )
            unit.check()
            db.session.commit()
            return row

    return run_with_retry(_op)


def update_purchase(scope: OwnerScope, transaction_id: int, **fields) -> StockInTransaction:
    """
    Update a purchase and move stock by the difference in effect.

    Unspecified fields keep their values. supplier_id=None clears the
    supplier. The old effect is reversed and the new one applied in one
    unit, netted per product.

    Raises:
        ValidationFailedError: Bad field value or unknown field
        NotFoundError: Transaction, product or supplier outside scope
        InsufficientStockError: Reversal would take a product below zero
    """
    allowed = {"name", "product_id", "supplier_id", "quantity", "total_amount",
               "status", "payment_method", "transaction_date"}
    unknown = sorted(set(fields) - allowed)
    if unknown:
        raise ValidationFailedError(f"Field not allowed: {unknown[0]}")

    changes: dict = {}
    if "name" in fields:
        changes["name"] = _name(fields["name"])
    if "product_id" in fields:
        changes["product_id"] = coerce_int("product_id", fields["product_id"])
    if "supplier_id" in fields:
        changes["supplier_id"] = _optional_id(fields["supplier_id"], "supplier_id")
    if "quantity" in fields:
        changes["quantity"] = _non_negative_int(fields["quantity"], "quantity")
    if "total_amount" in fields:
        changes["total_amount"] = _non_negative_int(fields["total_amount"], "total_amount", MAX_TOTAL_AMOUNT)
    if "status" in fields:
        changes["status"] = _choice(fields["status"], "status", PURCHASE_STATUSES)
    if "payment_method" in fields:
        changes["payment_method"] = _choice(fields["payment_method"], "payment_method", PAYMENT_METHODS)
    if "transaction_date" in fields:
        changes["transaction_date"] = _date(fields["transaction_date"])

    def _op():
        with timed_transaction() as unit:
            row = ledger_service.find_owned_stock_in(scope, transaction_id, lock=True)

            old_product_id, old_status, old_qty = row.product_id, row.status, row.quantity
            new_product_id = changes.get("product_id", old_product_id)
            new_status = changes.get("status", old_status)
            new_qty = changes.get("quantity", old_qty)

            if new_product_id != old_product_id:
                products_service.find_owned_product(scope, new_product_id, lock=True)
            if changes.get("supplier_id") is not None:
                products_service.find_owned_supplier(scope, changes["supplier_id"])

            deltas: dict[int, int] = {}
            if new_product_id == old_product_id:
                _add_delta(deltas, old_product_id, compute_delta(old_status, new_status, old_qty, new_qty))
            else:
                _add_delta(deltas, old_product_id, compute_delta(old_status, None, old_qty, 0))
                _add_delta(deltas, new_product_id, compute_delta(None, new_status, 0, new_qty))

            for key, value in changes.items():
                setattr(row, key, value)
            db.session.flush()

            _apply_deltas(scope, deltas)
            unit.check()
            db.session.commit()
            return row

    return run_with_retry(_op)


def delete_purchase(scope: OwnerScope, transaction_id: int) -> None:
    """Delete a purchase, reversing its stock effect if it was COMPLETED."""
    def _op():
        with timed_transaction() as unit:
            row = ledger_service.find_owned_stock_in(scope, transaction_id, lock=True)
            delta = compute_delta(row.status, None, row.quantity, 0)
            product_id = row.product_id

            db.session.delete(row)
            db.session.flush()

            products_service.adjust_quantity(scope, product_id, delta)
            unit.check()
            db.session.commit()

    run_with_retry(_op)


# ---------------------------------------------------------------------------
# Stock-out entries
# ---------------------------------------------------------------------------

def record_manual_sale(
    scope: OwnerScope,
    *,
    product_id,
    quantity,
    transaction_date,
    name,
    menu_id=None,
    note=None,
) -> StockOutTransaction:
    """
    Record a manual sale and take its quantity off the product.

    Raises:
        ValidationFailedError: Bad field value
        NotFoundError: Product outside scope, or unknown menu
        InsufficientStockError: Not enough stock
    """
    product_id = coerce_int("product_id", product_id)
    quantity = _positive_int(quantity, "quantity")
    transaction_date = _date(transaction_date)
    name = _name(name)
    note = _note(note)

    def _op():
        with timed_transaction() as unit:
            checked_menu_id = _validate_menu(menu_id)
            products_service.find_owned_product(scope, product_id, lock=True)
            products_service.adjust_quantity(scope, product_id, -quantity)

            row = ledger_service.add_stock_out(
                scope,
                product_id=product_id,
                menu_id=checked_menu_id,
                name=name,
                quantity=quantity,
                transaction_date=transaction_date,
                source=SOURCE_MANUAL,
                note=note,
            )
            unit.check()
            db.session.commit()
            return row

    return run_with_retry(_op)


def _find_editable_sale(scope: OwnerScope, transaction_id: int) -> StockOutTransaction:
    row = ledger_service.find_owned_stock_out(scope, transaction_id, lock=True)
    if row.source not in EDITABLE_SALE_SOURCES:
        raise ValidationFailedError(
            f"{row.source} entries cannot be edited or deleted; only manual entries can"
        )
    return row


def update_manual_sale(scope: OwnerScope, transaction_id: int, **fields) -> StockOutTransaction:
    """
    Update a manual stock-out entry.

    The old quantity is restored and the new quantity taken, netted per
    product. Only MANUAL and ADJUSTMENT rows can be edited.

    Raises:
        ValidationFailedError: Bad field value, or a CSV / recipe row
        NotFoundError: Entry, product or menu not found
        InsufficientStockError: Not enough stock for the new quantity
    """
    allowed = {"name", "product_id", "menu_id", "quantity", "transaction_date", "note"}
    unknown = sorted(set(fields) - allowed)
    if unknown:
        raise ValidationFailedError(f"Field not allowed: {unknown[0]}")

    changes: dict = {}
    if "name" in fields:
        changes["name"] = _name(fields["name"])
    if "product_id" in fields:
        changes["product_id"] = coerce_int("product_id", fields["product_id"])
    if "quantity" in fields:
        changes["quantity"] = _positive_int(fields["quantity"], "quantity")
    if "transaction_date" in fields:
        changes["transaction_date"] = _date(fields["transaction_date"])
    if "note" in fields:
        changes["note"] = _note(fields["note"])
    menu_id = fields.get("menu_id", _UNSET)

    def _op():
        with timed_transaction() as unit:
            row = _find_editable_sale(scope, transaction_id)
            if menu_id is not _UNSET:
                changes["menu_id"] = _validate_menu(menu_id)

            old_product_id, old_qty = row.product_id, row.quantity
            new_product_id = changes.get("product_id", old_product_id)
            new_qty = changes.get("quantity", old_qty)

            if new_product_id != old_product_id:
                products_service.find_owned_product(scope, new_product_id, lock=True)

            deltas: dict[int, int] = {}
            _add_delta(deltas, old_product_id, old_qty)
            _add_delta(deltas, new_product_id, -new_qty)

            for key, value in changes.items():
                setattr(row, key, value)
            db.session.flush()

            _apply_deltas(scope, deltas)
            unit.check()
            db.session.commit()
            return row

    return run_with_retry(_op)


def delete_manual_sale(scope: OwnerScope, transaction_id: int) -> None:
    """Delete a MANUAL or ADJUSTMENT entry and put its quantity back."""
    def _op():
        with timed_transaction() as unit:
            row = _find_editable_sale(scope, transaction_id)
            product_id, quantity = row.product_id, row.quantity

            db.session.delete(row)
            db.session.flush()

            products_service.adjust_quantity(scope, product_id, quantity)
            unit.check()
            db.session.commit()

    run_with_retry(_op)


def record_stock_correction(
    scope: OwnerScope,
    *,
    product_id,
    quantity,
    reason,
    note=None,
    transaction_date=None,
) -> StockOutTransaction:
    """
    Write off stock (damaged, expired, lost, other) as an ADJUSTMENT entry.

    The reason is kept at the front of the note.
    """
    product_id = coerce_int("product_id", product_id)
    quantity = _positive_int(quantity, "quantity")
    reason = _choice(reason, "reason", CORRECTION_REASONS)
    transaction_date = _date(transaction_date, default_now=True)
    note = merge_notes(reason, _note(note))

    def _op():
        with timed_transaction() as unit:
            products_service.find_owned_product(scope, product_id, lock=True)
            products_service.adjust_quantity(scope, product_id, -quantity)

            row = ledger_service.add_stock_out(
                scope,
                product_id=product_id,
                name=f"ADJUSTMENT-{reason}",
                quantity=quantity,
                transaction_date=transaction_date,
                source=SOURCE_ADJUSTMENT,
                note=note,
            )
            unit.check()
            db.session.commit()
            return row

    return run_with_retry(_op)


def record_recipe_sale(
    scope: OwnerScope,
    *,
    menu_id,
    portions,
    transaction_date=None,
) -> list[StockOutTransaction]:
    """
    Sell `portions` of a menu: one RECIPE_SALE row per recipe line, with
    the same deduction rule as CSV uploads.

    Raises:
        NotFoundError: Unknown menu, or a recipe product outside scope
        ValidationFailedError: Menu has no usable recipe lines
        InsufficientStockError: Not enough stock for any product
    """
    menu_id = coerce_int("menu_id", menu_id)
    portions = _positive_int(portions, "portions")
    transaction_date = _date(transaction_date, default_now=True)

    def _op():
        with timed_transaction() as unit:
            menu = recipe_service.get_menu(menu_id)
            lines = [line for line in recipe_service.recipe_lines(menu) if line.qty_per_portion > 0]
            if not lines:
                raise ValidationFailedError(f'Menu "{menu.name}" has no recipe')

            usage: dict[int, int] = OrderedDict()
            for line in lines:
                _add_delta(usage, line.product_id, deduction_for(line.qty_per_portion, portions))
            _check_usage(usage)

            owned = products_service.find_owned_products(scope, usage.keys(), lock=True)
            for product_id in usage:
                if product_id not in owned:
                    raise NotFoundError(f"Product {product_id} not found")

            _apply_deltas(scope, {pid: -qty for pid, qty in usage.items()})

            rows = [
                ledger_service.add_stock_out(
                    scope,
                    product_id=line.product_id,
                    menu_id=menu.id,
                    name=f"RECIPE-{menu.code}",
                    quantity=deduction_for(line.qty_per_portion, portions),
                    transaction_date=transaction_date,
                    source=SOURCE_RECIPE_SALE,
                    note=f"Menu {menu.code} x{portions}",
                )
                for line in lines
            ]
            unit.check()
            db.session.commit()
            return rows

    return run_with_retry(_op)


# ---------------------------------------------------------------------------
# CSV sales upload
# ---------------------------------------------------------------------------

def process_sales_csv(
    scope: OwnerScope,
    raw_csv_text: str,
    general_note: str | None = None,
    *,
    now: datetime | None = None,
) -> dict:
    """
    Deduct stock for every sold menu in an uploaded sales sheet.

    Steps:
    1. Parse the sheet (fail fast, errors name the line).
    2. Resolve all menu references in one query.
    3. Expand each row through its recipe; aggregate deductions per product.
    4. In one unit (SALES_CSV_TX_TIMEOUT_SECONDS): check ownership,
       decrement each product once, bulk insert one row per
       (sheet row x recipe line) sharing one batch_ref.

    Returns:
        {"created_count", "batch_ref", "product_count"}

    Raises:
        ValidationFailedError: Bad sheet, menu without recipe, nothing to deduct
        NotFoundError: Unknown menu reference or product outside scope
        InsufficientStockError: Not enough stock for any product
        TransactionTimeoutError: The unit ran past its timeout
    """
    rows = parse_sales_csv(raw_csv_text, now=now)
    general_note = (general_note or "").strip() or None

    index = recipe_service.resolve_menus(
        codes=[r.menu_reference for r in rows if r.match_by == recipe_service.MATCH_BY_CODE],
        names=[r.menu_reference for r in rows if r.match_by == recipe_service.MATCH_BY_NAME],
    )

    batch_ref = uuid.uuid4().hex
    batch_label = batch_ref[:8]
    entries: list[dict] = []
    usage: dict[int, int] = OrderedDict()

    for row in rows:
        menu = index.lookup(row.menu_reference, row.match_by)
        if menu is None:
            label = f'code "{row.menu_reference}"' if row.match_by == recipe_service.MATCH_BY_CODE else f'"{row.menu_reference}"'
            raise NotFoundError(f"Menu with {label} not found (line {row.line})")
        lines = recipe_service.recipe_lines(menu)
        if not lines:
            raise ValidationFailedError(f'Menu "{menu.name}" has no recipe (line {row.line})')

        note = merge_notes(row.note, general_note)
        for line in lines:
            if line.qty_per_portion <= 0:
                continue
            deduction = deduction_for(line.qty_per_portion, row.quantity)
            _add_delta(usage, line.product_id, deduction)
            entries.append({
                "user_id": scope.owner_id,
                "product_id": line.product_id,
                "menu_id": menu.id,
                "name": f"UPLOAD-{batch_label}-{menu.code}-{row.line}",
                "quantity": deduction,
                "source": SOURCE_CSV,
                "batch_ref": batch_ref,
                "transaction_date": row.transaction_date,
                "note": note,
            })

    if not entries:
        raise ValidationFailedError("No stock is used by the uploaded sales")
    _check_usage(usage)

    timeout = current_app.config.get("SALES_CSV_TX_TIMEOUT_SECONDS", 20)

    def _op():
        with timed_transaction(timeout) as unit:
            owned = products_service.find_owned_products(scope, usage.keys(), lock=True)
            for product_id in usage:
                if product_id not in owned:
                    raise NotFoundError(f"Product {product_id} not found or not owned by you")

            _apply_deltas(scope, {pid: -qty for pid, qty in usage.items()})
            created = ledger_service.bulk_add_stock_out(entries)

            unit.check()
            db.session.commit()
            return created

    created_count = run_with_retry(_op)
    logger.info(
        "Sales CSV batch %s: %d rows, %d stock-out entries, %d products (owner %s)",
        batch_ref, len(rows), created_count, len(usage), scope.owner_id,
    )
    return {
        "created_count": created_count,
        "batch_ref": batch_ref,
        "product_count": len(usage),
    }
