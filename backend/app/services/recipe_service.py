# Overview: Service-layer operations for menus and recipes; resolves sold menus to product lines.

"""
Recipe Service

Menus are shared across the installation; their recipe lines point at
products. Resolution is case-insensitive on both code and name and runs as
one batch query per CSV upload.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Menu, Recipe, Product, StockOutTransaction
from ..validation import ConflictError
from .errors import NotFoundError, ValidationFailedError
from .tenant_service import OwnerScope

MATCH_BY_CODE = "code"
MATCH_BY_NAME = "name"


@dataclass
class MenuIndex:
    """Batch lookup result keyed by lower-cased code and name."""
    by_code: dict[str, Menu] = field(default_factory=dict)
    by_name: dict[str, Menu] = field(default_factory=dict)

    def lookup(self, reference: str, match_by: str) -> Menu | None:
        key = reference.strip().lower()
        if match_by == MATCH_BY_CODE:
            return self.by_code.get(key)
        return self.by_name.get(key)


@dataclass(frozen=True)
class RecipeLine:
    product_id: int
    qty_per_portion: Decimal


def resolve_menus(codes, names) -> MenuIndex:
    """
    Load every menu matching one of the codes or names in a single query.

    Recipe lines are loaded with the menus (selectin).
    """
    code_keys = {c.strip().lower() for c in codes if c and c.strip()}
    name_keys = {n.strip().lower() for n in names if n and n.strip()}

    index = MenuIndex()
    filters = []
    if code_keys:
        filters.append(func.lower(Menu.code).in_(code_keys))
    if name_keys:
        filters.append(func.lower(Menu.name).in_(name_keys))
    if not filters:
        return index

    menus = db.session.query(Menu).filter(db.or_(*filters)).order_by(Menu.id.asc()).all()
    for menu in menus:
        index.by_code.setdefault(menu.code.lower(), menu)
        index.by_name.setdefault(menu.name.lower(), menu)
    return index


def recipe_lines(menu: Menu) -> list[RecipeLine]:
    return [
        RecipeLine(product_id=r.product_id, qty_per_portion=Decimal(r.qty_per_portion))
        for r in menu.recipes
    ]


def get_menu(menu_id: int) -> Menu:
    menu = db.session.query(Menu).filter_by(id=menu_id).first()
    if menu is None:
        raise NotFoundError("Menu not found")
    return menu


def list_menus(*, search: str | None = None) -> list[Menu]:
    query = db.session.query(Menu)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(db.or_(Menu.code.ilike(pattern), Menu.name.ilike(pattern)))
    return query.order_by(Menu.name.asc(), Menu.id.asc()).all()


def _normalize_lines(scope: OwnerScope, lines) -> list[tuple[int, Decimal]]:
    """
    Validate recipe input: [{"product_id", "qty_per_portion"}, ...].

    Products must be inside the scope. A product may appear only once.
    """
    if lines is None:
        return []
    if not isinstance(lines, list):
        raise ValidationFailedError("recipes must be a list")

    seen: set[int] = set()
    normalized = []
    for i, line in enumerate(lines, start=1):
        if not isinstance(line, dict):
            raise ValidationFailedError(f"recipe line {i} must be an object")
        product_id = line.get("product_id")
        if not isinstance(product_id, int) or isinstance(product_id, bool):
            raise ValidationFailedError(f"recipe line {i}: product_id must be an integer")
        try:
            qty = Decimal(str(line.get("qty_per_portion")))
        except (InvalidOperation, ValueError):
            raise ValidationFailedError(f"recipe line {i}: qty_per_portion must be a number")
        if not qty.is_finite() or qty <= 0:
            raise ValidationFailedError(f"recipe line {i}: qty_per_portion must be > 0")
        if product_id in seen:
            raise ValidationFailedError(f"recipe line {i}: product {product_id} is listed twice")
        seen.add(product_id)
        normalized.append((product_id, qty))

    if seen:
        found = {
            pid for (pid,) in db.session.query(Product.id).filter(
                Product.id.in_(seen), Product.user_id.in_(scope.owner_ids)
            )
        }
        missing = sorted(seen - found)
        if missing:
            raise NotFoundError(f"Product {missing[0]} not found")
    return normalized


def create_menu(scope: OwnerScope, *, code: str, name: str, recipes=None) -> Menu:
    """
    Create a menu with optional recipe lines.

    Raises:
        ValidationFailedError: Blank code/name or bad recipe lines
        ConflictError: Code already used (case-insensitive)
        NotFoundError: A recipe product is outside the scope
    """
    code = (code or "").strip()
    name = (name or "").strip()
    if not code:
        raise ValidationFailedError("code is required")
    if not name:
        raise ValidationFailedError("name is required")
    if len(code) > 64:
        raise ValidationFailedError("code exceeds max length 64")

    if db.session.query(Menu.id).filter(func.lower(Menu.code) == code.lower()).first():
        raise ConflictError(f"Menu code '{code}' already exists")

    lines = _normalize_lines(scope, recipes)

    menu = Menu(code=code, name=name)
    db.session.add(menu)
    db.session.flush()
    for product_id, qty in lines:
        db.session.add(Recipe(menu_id=menu.id, product_id=product_id, qty_per_portion=qty))

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"Menu code '{code}' already exists")
    return menu


def set_recipe(scope: OwnerScope, menu_id: int, lines) -> Menu:
    """Replace all recipe lines of a menu."""
    if lines is None:
        raise ValidationFailedError("recipes is required")
    menu = get_menu(menu_id)
    normalized = _normalize_lines(scope, lines)

    menu.recipes.clear()
    db.session.flush()
    for product_id, qty in normalized:
        menu.recipes.append(Recipe(product_id=product_id, qty_per_portion=qty))

    db.session.commit()
    return menu


def delete_menu(menu_id: int) -> None:
    """
    Delete a menu and its recipe lines. Sales rows keep their history with
    menu_id cleared.
    """
    menu = get_menu(menu_id)
    db.session.query(StockOutTransaction).filter(StockOutTransaction.menu_id == menu.id).update(
        {StockOutTransaction.menu_id: None}, synchronize_session=False
    )
    db.session.delete(menu)
    db.session.commit()
