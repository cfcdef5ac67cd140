# Overview: Service-layer operations for suppliers; encapsulates business logic and database work.

"""
Supplier Service

Suppliers are owned by the catalog owner (scope.owner_id) and resolved
through scope.owner_ids, the same way products are.

Deleting a supplier detaches it from products and purchase rows; the
purchase history itself is kept.
"""

from ..extensions import db
from ..models import Supplier, Product, StockInTransaction
from .errors import NotFoundError
from .pagination import paginate
from .tenant_service import OwnerScope

SUPPLIER_MUTABLE_FIELDS = {"name", "category", "whatsapp_number", "address", "status"}


def get_supplier(scope: OwnerScope, supplier_id: int) -> Supplier:
    """
    Get a supplier inside the caller's scope.

    Raises:
        NotFoundError: If supplier not found or owned by someone else
    """
    supplier = db.session.query(Supplier).filter(
        Supplier.id == supplier_id,
        Supplier.user_id.in_(scope.owner_ids),
    ).first()
    if not supplier:
        raise NotFoundError("Supplier not found")
    return supplier


def list_suppliers(
    scope: OwnerScope,
    *,
    status: str | None = None,
    search: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    query = db.session.query(Supplier).filter(Supplier.user_id.in_(scope.owner_ids))
    if status:
        query = query.filter(Supplier.status == status.upper())
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(db.or_(Supplier.name.ilike(pattern), Supplier.category.ilike(pattern)))
    query = query.order_by(Supplier.name.asc(), Supplier.id.asc())
    return paginate(query, page=page, per_page=per_page, serialize=lambda s: s.to_dict())


def create_supplier(scope: OwnerScope, *, patch: dict) -> Supplier:
    """Create a supplier from a validated patch dict."""
    supplier = Supplier(user_id=scope.owner_id, status="ACTIVE")
    for k, v in patch.items():
        if k in SUPPLIER_MUTABLE_FIELDS:
            setattr(supplier, k, v)

    db.session.add(supplier)
    db.session.commit()
    return supplier


def update_supplier(scope: OwnerScope, supplier_id: int, *, patch: dict) -> Supplier:
    supplier = get_supplier(scope, supplier_id)
    for k, v in patch.items():
        if k in SUPPLIER_MUTABLE_FIELDS:
            setattr(supplier, k, v)

    db.session.commit()
    return supplier


def delete_supplier(scope: OwnerScope, supplier_id: int) -> None:
    supplier = get_supplier(scope, supplier_id)

    db.session.query(Product).filter(Product.supplier_id == supplier.id).update(
        {Product.supplier_id: None}, synchronize_session=False
    )
    db.session.query(StockInTransaction).filter(StockInTransaction.supplier_id == supplier.id).update(
        {StockInTransaction.supplier_id: None}, synchronize_session=False
    )
    db.session.delete(supplier)
    db.session.commit()
