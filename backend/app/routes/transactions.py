# Overview: Flask API routes for purchase (stock-in) transactions; parses input and returns JSON responses.

"""
Purchase Routes (OWNER only)

A COMPLETED purchase adds its quantity to the product. Changing status,
quantity or product moves stock by the difference; deleting reverses it.
"""

from flask import Blueprint, request, g, current_app

from ..decorators import require_auth, require_any_role
from ..models.auth import ROLE_OWNER
from ..services import ledger_service, stock_service
from ..services.errors import StockError


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")

PURCHASE_FIELDS = (
    "name", "product_id", "supplier_id", "quantity", "total_amount",
    "status", "payment_method", "transaction_date",
)


@transactions_bp.get("")
@require_auth
@require_any_role(ROLE_OWNER)
def list_transactions_route():
    return ledger_service.list_stock_in(
        g.owner_scope.owner_id,
        status=(request.args.get("status") or "").upper() or None,
        product_id=request.args.get("product_id", type=int),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@transactions_bp.get("/<int:transaction_id>")
@require_auth
@require_any_role(ROLE_OWNER)
def get_transaction_route(transaction_id: int):
    try:
        row = ledger_service.find_owned_stock_in(g.owner_scope, transaction_id)
    except StockError as e:
        return {"error": str(e)}, e.status_code
    return {"transaction": row.to_dict()}


@transactions_bp.post("")
@require_auth
@require_any_role(ROLE_OWNER)
def create_transaction_route():
    """
    Record a purchase.

    Body: name, product_id, supplier_id (optional), quantity, total_amount,
    status (PENDING|COMPLETED|CANCELLED), payment_method (CASH|TRANSFER|OTHER),
    transaction_date (ISO-8601)
    """
    data = request.get_json(silent=True) or {}
    try:
        row = stock_service.record_purchase(
            g.owner_scope,
            name=data.get("name"),
            product_id=data.get("product_id"),
            supplier_id=data.get("supplier_id"),
            quantity=data.get("quantity"),
            total_amount=data.get("total_amount"),
            status=data.get("status"),
            payment_method=data.get("payment_method"),
            transaction_date=data.get("transaction_date"),
        )
    except StockError as e:
        return {"error": str(e)}, e.status_code
    except Exception:
        current_app.logger.exception("Failed to record purchase")
        return {"error": "Internal server error"}, 500
    return {"transaction": row.to_dict()}, 201


@transactions_bp.put("/<int:transaction_id>")
@require_auth
@require_any_role(ROLE_OWNER)
def update_transaction_route(transaction_id: int):
    data = request.get_json(silent=True) or {}
    fields = {k: data[k] for k in PURCHASE_FIELDS if k in data}
    unknown = sorted(set(data) - set(PURCHASE_FIELDS))
    if unknown:
        return {"error": f"Field not allowed: {unknown[0]}"}, 400

    try:
        row = stock_service.update_purchase(g.owner_scope, transaction_id, **fields)
    except StockError as e:
        return {"error": str(e)}, e.status_code
    except Exception:
        current_app.logger.exception("Failed to update purchase %s", transaction_id)
        return {"error": "Internal server error"}, 500
    return {"transaction": row.to_dict()}


@transactions_bp.delete("/<int:transaction_id>")
@require_auth
@require_any_role(ROLE_OWNER)
def delete_transaction_route(transaction_id: int):
    try:
        stock_service.delete_purchase(g.owner_scope, transaction_id)
    except StockError as e:
        return {"error": str(e)}, e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete purchase %s", transaction_id)
        return {"error": "Internal server error"}, 500
    return {"ok": True}
