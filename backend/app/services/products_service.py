# backend/app/services/products_service.py
"""
Products Service (stock catalog)

Every lookup is scoped by an OwnerScope: a product outside scope.owner_ids
is reported as not found, never as forbidden.

QUANTITY: Product.quantity is only changed through adjust_quantity, which
pushes the arithmetic into a single UPDATE statement. Negative deltas are
conditional on the current quantity so concurrent writers cannot take a
product below zero. adjust_quantity never commits; the caller owns the
unit of work.
"""
from __future__ import annotations

from ..extensions import db
from ..models import Product, Supplier, StockInTransaction, StockOutTransaction, Recipe, Notification
from ..validation import ConflictError
from .concurrency import lock_for_update
from .errors import NotFoundError, InsufficientStockError
from .pagination import paginate
from .tenant_service import OwnerScope
from app.time_utils import utcnow

PRODUCT_MUTABLE_FIELDS = {"name", "category", "unit", "price", "low_stock", "supplier_id"}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def find_owned_product(scope: OwnerScope, product_id: int, *, lock: bool = False) -> Product:
    """
    Load a product inside the caller's scope.

    Args:
        scope: Owner scope of the caller
        product_id: Product ID
        lock: Load with SELECT ... FOR UPDATE

    Raises:
        NotFoundError: If the product is missing or owned by someone else
    """
    query = db.session.query(Product).filter(
        Product.id == product_id,
        Product.user_id.in_(scope.owner_ids),
    )
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None:
        raise NotFoundError("Product not found")
    return product


def find_owned_products(scope: OwnerScope, product_ids, *, lock: bool = False) -> dict[int, Product]:
    """Batch variant of find_owned_product; ids outside scope are simply absent."""
    ids = set(product_ids)
    if not ids:
        return {}
    query = db.session.query(Product).filter(
        Product.id.in_(ids),
        Product.user_id.in_(scope.owner_ids),
    )
    if lock:
        query = lock_for_update(query)
    return {p.id: p for p in query.all()}


def find_owned_supplier(scope: OwnerScope, supplier_id: int) -> Supplier:
    supplier = db.session.query(Supplier).filter(
        Supplier.id == supplier_id,
        Supplier.user_id.in_(scope.owner_ids),
    ).first()
    if supplier is None:
        raise NotFoundError("Selected supplier not found")
    return supplier


def adjust_quantity(scope: OwnerScope, product_id: int, delta: int) -> None:
    """
    Apply a quantity delta as one SQL-side UPDATE.

    For delta < 0 the UPDATE only matches while quantity >= -delta. When no
    row matches, a follow-up read tells a missing product apart from
    insufficient stock.

    Raises:
        NotFoundError: If the product is not inside the scope
        InsufficientStockError: If the product would go below zero
    """
    if delta == 0:
        return

    query = db.session.query(Product).filter(
        Product.id == product_id,
        Product.user_id.in_(scope.owner_ids),
    )
    if delta < 0:
        query = query.filter(Product.quantity >= -delta)

    updated = query.update(
        {
            Product.quantity: Product.quantity + delta,
            Product.updated_at: utcnow(),
        },
        synchronize_session="fetch",
    )
    if updated:
        return

    row = db.session.query(Product.name, Product.quantity).filter(
        Product.id == product_id,
        Product.user_id.in_(scope.owner_ids),
    ).first()
    if row is None:
        raise NotFoundError("Product not found")
    raise InsufficientStockError(
        f"Insufficient stock for {row.name}: available {row.quantity}, requested {-delta}"
    )


def list_products(
    scope: OwnerScope,
    *,
    search: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Scoped product listing with optional name/category search and pagination.

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.
    """
    query = db.session.query(Product).filter(Product.user_id.in_(scope.owner_ids))
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(db.or_(Product.name.ilike(pattern), Product.category.ilike(pattern)))
    query = query.order_by(Product.name.asc(), Product.id.asc())
    return paginate(query, page=page, per_page=per_page, serialize=lambda p: p.to_dict())


def get_product_detail(scope: OwnerScope, product_id: int) -> dict:
    """Product with its supplier name and ledger row counts."""
    product = find_owned_product(scope, product_id)
    data = product.to_dict()
    data["supplier_name"] = product.supplier.name if product.supplier else None
    data["stock_in_count"] = db.session.query(StockInTransaction).filter_by(product_id=product.id).count()
    data["stock_out_count"] = db.session.query(StockOutTransaction).filter_by(product_id=product.id).count()
    return data


def create_product(scope: OwnerScope, *, patch: dict) -> Product:
    """
    Create product from a validated patch dict.

    The product is owned by scope.owner_id. The initial quantity is taken
    from the patch (default 0); afterwards only the stock engine changes it.

    Raises:
        NotFoundError: If supplier_id is not inside the scope
    """
    if patch.get("supplier_id") is not None:
        find_owned_supplier(scope, patch["supplier_id"])

    p = Product(user_id=scope.owner_id, quantity=patch.get("quantity") or 0)
    apply_product_patch(p, patch)

    db.session.add(p)
    db.session.commit()
    return p


def update_product(scope: OwnerScope, product_id: int, *, patch: dict) -> Product:
    """
    Update catalog fields of a product. quantity is not writable here.

    Raises:
        NotFoundError: If product or supplier is not inside the scope
    """
    p = find_owned_product(scope, product_id)
    if patch.get("supplier_id") is not None:
        find_owned_supplier(scope, patch["supplier_id"])

    apply_product_patch(p, patch)
    db.session.commit()
    return p


def delete_product(scope: OwnerScope, product_id: int) -> None:
    """
    Hard-delete a product that has no history.

    Raises:
        NotFoundError: If the product is not inside the scope
        ConflictError: If stock-in, stock-out or recipe rows reference it
    """
    p = find_owned_product(scope, product_id)

    referenced = (
        db.session.query(StockInTransaction.id).filter_by(product_id=p.id).first()
        or db.session.query(StockOutTransaction.id).filter_by(product_id=p.id).first()
    )
    if referenced:
        raise ConflictError("Product has transaction history and cannot be deleted")
    if db.session.query(Recipe.id).filter_by(product_id=p.id).first():
        raise ConflictError("Product is used in a menu recipe and cannot be deleted")

    db.session.query(Notification).filter_by(product_id=p.id).delete(synchronize_session=False)
    db.session.delete(p)
    db.session.commit()


def list_products_for_low_stock(owner_id: int) -> list[Product]:
    """All products of an owner, most recently changed first."""
    return (
        db.session.query(Product)
        .filter(Product.user_id == owner_id)
        .order_by(Product.updated_at.desc(), Product.id.desc())
        .all()
    )
