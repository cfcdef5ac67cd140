from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z

UNITS = ("GRAM", "KG", "ML", "PCS")

PURCHASE_PENDING = "PENDING"
PURCHASE_COMPLETED = "COMPLETED"
PURCHASE_CANCELLED = "CANCELLED"
PURCHASE_STATUSES = (PURCHASE_PENDING, PURCHASE_COMPLETED, PURCHASE_CANCELLED)

PAYMENT_METHODS = ("CASH", "TRANSFER", "OTHER")

SOURCE_MANUAL = "MANUAL"
SOURCE_CSV = "CSV"
SOURCE_RECIPE_SALE = "RECIPE_SALE"
SOURCE_ADJUSTMENT = "ADJUSTMENT"
STOCK_OUT_SOURCES = (SOURCE_MANUAL, SOURCE_CSV, SOURCE_RECIPE_SALE, SOURCE_ADJUSTMENT)

SUPPLIER_STATUSES = ("ACTIVE", "INACTIVE")


class Product(db.Model):
    """
    Stock-keeping unit owned by a tenant (user_id).

    QUANTITY: stored in the unit's base measure (grams, millilitres, pieces).
    Only services.stock_service changes it after creation; every change goes
    through products_service.adjust_quantity as a SQL-side delta.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_owner_name", "user_id", "name"),
        db.Index("ix_products_owner_updated", "user_id", "updated_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(128), nullable=False)
    unit = db.Column(db.String(8), nullable=False, default="PCS")

    # Whole currency units (no fractional part)
    price = db.Column(db.Integer, nullable=False, default=0)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    low_stock = db.Column(db.Integer, nullable=True)

    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    owner = db.relationship("User", backref=db.backref("products", lazy=True))
    supplier = db.relationship("Supplier", backref=db.backref("products", lazy=True))

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} qty={self.quantity} owner={self.user_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "category": self.category,
            "unit": self.unit,
            "price": self.price,
            "quantity": self.quantity,
            "low_stock": self.low_stock,
            "supplier_id": self.supplier_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Supplier(db.Model):
    __tablename__ = "suppliers"
    __table_args__ = (
        db.Index("ix_suppliers_owner_status", "user_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(128), nullable=False)
    whatsapp_number = db.Column(db.String(32), nullable=True)
    address = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(16), nullable=False, default="ACTIVE")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def __repr__(self) -> str:
        return f"<Supplier id={self.id} name={self.name!r} owner={self.user_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "category": self.category,
            "whatsapp_number": self.whatsapp_number,
            "address": self.address,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockInTransaction(db.Model):
    """
    Purchase (stock-in) record.

    LIFECYCLE: status may move freely between PENDING, COMPLETED and
    CANCELLED. Only COMPLETED rows count toward Product.quantity; every
    transition into or out of COMPLETED applies the matching delta in the
    same DB transaction as the row change.
    """
    __tablename__ = "stock_in_transactions"
    __table_args__ = (
        db.Index("ix_stock_in_owner_date", "user_id", "transaction_date"),
        db.Index("ix_stock_in_owner_status", "user_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)

    name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    total_amount = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default=PURCHASE_PENDING)
    payment_method = db.Column(db.String(16), nullable=False, default="CASH")

    transaction_date = db.Column(db.DateTime(timezone=True), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    product = db.relationship("Product")
    supplier = db.relationship("Supplier")

    def __repr__(self) -> str:
        return f"<StockInTransaction id={self.id} product={self.product_id} qty={self.quantity} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "product_id": self.product_id,
            "supplier_id": self.supplier_id,
            "name": self.name,
            "quantity": self.quantity,
            "total_amount": self.total_amount,
            "status": self.status,
            "payment_method": self.payment_method,
            "transaction_date": to_utc_z(self.transaction_date),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockOutTransaction(db.Model):
    """
    Stock-out record (sale, recipe deduction or write-off).

    Every row is effective immediately: its quantity was taken off the
    product when the row was inserted. `source` records where the row came
    from; rows of one CSV upload share a batch_ref.
    """
    __tablename__ = "stock_out_transactions"
    __table_args__ = (
        db.Index("ix_stock_out_owner_date", "user_id", "transaction_date"),
        db.Index("ix_stock_out_owner_source", "user_id", "source"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    menu_id = db.Column(db.Integer, db.ForeignKey("menus.id"), nullable=True, index=True)

    name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    source = db.Column(db.String(16), nullable=False, default=SOURCE_MANUAL)
    batch_ref = db.Column(db.String(64), nullable=True, index=True)

    transaction_date = db.Column(db.DateTime(timezone=True), nullable=False)
    note = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    product = db.relationship("Product")
    menu = db.relationship("Menu")

    def __repr__(self) -> str:
        return f"<StockOutTransaction id={self.id} product={self.product_id} qty={self.quantity} source={self.source}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "product_id": self.product_id,
            "menu_id": self.menu_id,
            "name": self.name,
            "quantity": self.quantity,
            "source": self.source,
            "batch_ref": self.batch_ref,
            "transaction_date": to_utc_z(self.transaction_date),
            "note": self.note,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
