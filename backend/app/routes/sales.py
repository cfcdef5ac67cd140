# Overview: Flask API routes for sales (stock-out) operations; parses input and returns JSON responses.

"""
Sales Routes (OWNER and PEGAWAI)

- Manual entries: create, update, delete (MANUAL and ADJUSTMENT rows only)
- CSV upload: recipe-based deduction for a whole sales sheet, all or nothing
- Corrections: write-offs for damaged, expired or lost stock
- Recipe sale: sell N portions of one menu
"""

from flask import Blueprint, request, g, current_app

from ..decorators import require_auth, require_any_role
from ..models.auth import ROLE_OWNER, ROLE_STAFF
from ..services import ledger_service, stock_service
from ..services.errors import StockError


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")

SALE_FIELDS = ("name", "product_id", "menu_id", "quantity", "transaction_date", "note")


def _read_upload(file, max_bytes: int) -> str:
    """
    Validate and decode an uploaded CSV file.

    Raises ValueError with a caller-facing message.
    """
    filename = (file.filename or "").lower()
    mimetype = (file.mimetype or "").lower()
    if "csv" not in mimetype and not filename.endswith(".csv"):
        raise ValueError("File must be a CSV (.csv)")

    data = file.stream.read(max_bytes + 1)
    if not data:
        raise ValueError("CSV file is empty")
    if len(data) > max_bytes:
        raise ValueError(f"File is too large. Maximum size is {max_bytes // (1024 * 1024)}MB")

    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ValueError("CSV file must be UTF-8 encoded")


@sales_bp.get("")
@require_auth
@require_any_role(ROLE_OWNER, ROLE_STAFF)
def list_sales_route():
    """
    List stock-out rows.

    Query params: source (MANUAL|CSV|RECIPE_SALE|ADJUSTMENT), batch_ref,
    product_id, page, per_page
    """
    return ledger_service.list_stock_out(
        g.owner_scope.owner_id,
        source=(request.args.get("source") or "").upper() or None,
        batch_ref=request.args.get("batch_ref"),
        product_id=request.args.get("product_id", type=int),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@sales_bp.post("")
@require_auth
@require_any_role(ROLE_OWNER, ROLE_STAFF)
def create_sale_route():
    data = request.get_json(silent=True) or {}
    try:
        row = stock_service.record_manual_sale(
            g.owner_scope,
            name=data.get("name"),
            product_id=data.get("product_id"),
            menu_id=data.get("menu_id"),
            quantity=data.get("quantity"),
            transaction_date=data.get("transaction_date"),
            note=data.get("note"),
        )
    except StockError as e:
        return {"error": str(e)}, e.status_code
    except Exception:
        current_app.logger.exception("Failed to record manual sale")
        return {"error": "Internal server error"}, 500
    return {"sale": row.to_dict()}, 201


@sales_bp.put("/<int:sale_id>")
@require_auth
@require_any_role(ROLE_OWNER, ROLE_STAFF)
def update_sale_route(sale_id: int):
    data = request.get_json(silent=True) or {}
    unknown = sorted(set(data) - set(SALE_FIELDS))
    if unknown:
        return {"error": f"Field not allowed: {unknown[0]}"}, 400

    try:
        row = stock_service.update_manual_sale(
            g.owner_scope, sale_id, **{k: data[k] for k in SALE_FIELDS if k in data}
        )
    except StockError as e:
        return {"error": str(e)}, e.status_code
    except Exception:
        current_app.logger.exception("Failed to update sale %s", sale_id)
        return {"error": "Internal server error"}, 500
    return {"sale": row.to_dict()}


@sales_bp.delete("/<int:sale_id>")
@require_auth
@require_any_role(ROLE_OWNER, ROLE_STAFF)
def delete_sale_route(sale_id: int):
    try:
        stock_service.delete_manual_sale(g.owner_scope, sale_id)
    except StockError as e:
        return {"error": str(e)}, e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete sale %s", sale_id)
        return {"error": "Internal server error"}, 500
    return {"ok": True}


@sales_bp.post("/upload")
@require_auth
@require_any_role(ROLE_OWNER, ROLE_STAFF)
def upload_sales_route():
    """
    Upload a sales sheet (multipart/form-data).

    Form fields:
    - file: the CSV (required)
    - note: general note appended to every created row (optional)
    """
    if "file" not in request.files:
        return {"error": "CSV file is required"}, 400

    max_bytes = current_app.config["SALES_CSV_MAX_BYTES"]
    try:
        raw = _read_upload(request.files["file"], max_bytes)
    except ValueError as e:
        return {"error": str(e)}, 400

    try:
        result = stock_service.process_sales_csv(
            g.owner_scope, raw, general_note=request.form.get("note")
        )
    except StockError as e:
        current_app.logger.info("Sales CSV rejected for owner %s: %s", g.owner_scope.owner_id, e)
        return {"error": str(e)}, e.status_code
    except Exception:
        current_app.logger.exception("Failed to process sales CSV")
        return {"error": "Internal server error"}, 500

    return {**result, "message": "Sales upload processed"}, 201


@sales_bp.post("/corrections")
@require_auth
@require_any_role(ROLE_OWNER, ROLE_STAFF)
def create_correction_route():
    """Body: product_id, quantity, reason (DAMAGED|EXPIRED|LOST|OTHER), note, transaction_date"""
    data = request.get_json(silent=True) or {}
    try:
        row = stock_service.record_stock_correction(
            g.owner_scope,
            product_id=data.get("product_id"),
            quantity=data.get("quantity"),
            reason=data.get("reason"),
            note=data.get("note"),
            transaction_date=data.get("transaction_date"),
        )
    except StockError as e:
        return {"error": str(e)}, e.status_code
    except Exception:
        current_app.logger.exception("Failed to record stock correction")
        return {"error": "Internal server error"}, 500
    return {"sale": row.to_dict()}, 201


@sales_bp.post("/recipe")
@require_auth
@require_any_role(ROLE_OWNER, ROLE_STAFF)
def create_recipe_sale_route():
    """Body: menu_id, portions, transaction_date (optional)"""
    data = request.get_json(silent=True) or {}
    try:
        rows = stock_service.record_recipe_sale(
            g.owner_scope,
            menu_id=data.get("menu_id"),
            portions=data.get("portions"),
            transaction_date=data.get("transaction_date"),
        )
    except StockError as e:
        return {"error": str(e)}, e.status_code
    except Exception:
        current_app.logger.exception("Failed to record recipe sale")
        return {"error": "Internal server error"}, 500
    return {"items": [r.to_dict() for r in rows], "count": len(rows)}, 201
