# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/app/routes/products.py
"""
Product catalog routes.

All operations are scoped to the caller's OwnerScope (g.owner_scope).
- List, detail and create: OWNER or PEGAWAI
- Update and delete: OWNER only

quantity can be set on create only; afterwards it moves through purchases
and sales.
"""
from flask import Blueprint, request, g, current_app
from ..services import products_service
from ..services.errors import StockError
from ..models import Product
from ..models.auth import ROLE_OWNER, ROLE_STAFF
from ..validation import (
    PRODUCT_POLICY,
    PRODUCT_UPDATE_POLICY,
    validate_payload,
    enforce_rules_product,
)
from ..decorators import require_auth, require_any_role

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_any_role(ROLE_OWNER, ROLE_STAFF)
def list_products():
    """
    List products with optional search and pagination.

    Query params:
    - q: str (optional) - name/category contains
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    return products_service.list_products(
        g.owner_scope,
        search=request.args.get("q"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@products_bp.get("/<int:product_id>")
@require_auth
@require_any_role(ROLE_OWNER, ROLE_STAFF)
def get_product_route(product_id: int):
    try:
        return {"product": products_service.get_product_detail(g.owner_scope, product_id)}
    except StockError as e:
        return {"error": str(e)}, e.status_code


@products_bp.post("")
@require_auth
@require_any_role(ROLE_OWNER, ROLE_STAFF)
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        created = products_service.create_product(g.owner_scope, patch=patch)
    except StockError as e:
        return {"error": str(e)}, e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return {"error": "Internal server error"}, 500

    return {"product": created.to_dict()}, 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_any_role(ROLE_OWNER)
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_UPDATE_POLICY, partial=True)
        enforce_rules_product(patch)
        updated = products_service.update_product(g.owner_scope, product_id, patch=patch)
    except StockError as e:
        return {"error": str(e)}, e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product %s", product_id)
        return {"error": "Internal server error"}, 500

    return {"product": updated.to_dict()}, 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_any_role(ROLE_OWNER)
def delete_product_route(product_id: int):
    try:
        products_service.delete_product(g.owner_scope, product_id)
    except StockError as e:
        return {"error": str(e)}, e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete product %s", product_id)
        return {"error": "Internal server error"}, 500

    return {"ok": True}, 200
