from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z


class Menu(db.Model):
    """Sellable item. Its bill of materials lives in Recipe rows."""
    __tablename__ = "menus"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), nullable=False, unique=True, index=True)
    name = db.Column(db.String(255), nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    recipes = db.relationship(
        "Recipe",
        backref="menu",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="Recipe.id",
    )

    def __repr__(self) -> str:
        return f"<Menu id={self.id} code={self.code!r} name={self.name!r}>"

    def to_dict(self, include_recipes: bool = False) -> dict:
        data = {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "created_at": to_utc_z(self.created_at),
        }
        if include_recipes:
            data["recipes"] = [r.to_dict() for r in self.recipes]
        return data


class Recipe(db.Model):
    """Per-portion quantity of one product consumed by a menu."""
    __tablename__ = "recipes"
    __table_args__ = (
        db.UniqueConstraint("menu_id", "product_id", name="uq_recipes_menu_product"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    menu_id = db.Column(db.Integer, db.ForeignKey("menus.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    qty_per_portion = db.Column(db.Numeric(12, 3), nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "menu_id": self.menu_id,
            "product_id": self.product_id,
            "qty_per_portion": str(self.qty_per_portion),
        }
