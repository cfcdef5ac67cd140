# Overview: Flask API routes for suppliers; parses input and returns JSON responses.

from flask import Blueprint, request, g, current_app

from ..decorators import require_auth, require_any_role
from ..models import Supplier
from ..models.auth import ROLE_OWNER
from ..services import supplier_service
from ..services.errors import StockError
from ..validation import SUPPLIER_POLICY, validate_payload, enforce_rules_supplier


suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@suppliers_bp.get("")
@require_auth
@require_any_role(ROLE_OWNER)
def list_suppliers_route():
    return supplier_service.list_suppliers(
        g.owner_scope,
        status=request.args.get("status"),
        search=request.args.get("q"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@suppliers_bp.get("/<int:supplier_id>")
@require_auth
@require_any_role(ROLE_OWNER)
def get_supplier_route(supplier_id: int):
    try:
        supplier = supplier_service.get_supplier(g.owner_scope, supplier_id)
    except StockError as e:
        return {"error": str(e)}, e.status_code
    return {"supplier": supplier.to_dict()}


@suppliers_bp.post("")
@require_auth
@require_any_role(ROLE_OWNER)
def create_supplier_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=False)
        enforce_rules_supplier(patch)
        supplier = supplier_service.create_supplier(g.owner_scope, patch=patch)
    except StockError as e:
        return {"error": str(e)}, e.status_code
    except Exception:
        current_app.logger.exception("Failed to create supplier")
        return {"error": "Internal server error"}, 500
    return {"supplier": supplier.to_dict()}, 201


@suppliers_bp.put("/<int:supplier_id>")
@require_auth
@require_any_role(ROLE_OWNER)
def update_supplier_route(supplier_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=True)
        enforce_rules_supplier(patch)
        supplier = supplier_service.update_supplier(g.owner_scope, supplier_id, patch=patch)
    except StockError as e:
        return {"error": str(e)}, e.status_code
    except Exception:
        current_app.logger.exception("Failed to update supplier %s", supplier_id)
        return {"error": "Internal server error"}, 500
    return {"supplier": supplier.to_dict()}


@suppliers_bp.delete("/<int:supplier_id>")
@require_auth
@require_any_role(ROLE_OWNER)
def delete_supplier_route(supplier_id: int):
    try:
        supplier_service.delete_supplier(g.owner_scope, supplier_id)
    except StockError as e:
        return {"error": str(e)}, e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete supplier %s", supplier_id)
        return {"error": "Internal server error"}, 500
    return {"ok": True}
