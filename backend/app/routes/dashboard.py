# Overview: Flask API routes for dashboard aggregates.

from flask import Blueprint, request, g

from ..decorators import require_auth, require_any_role
from ..models.auth import ROLE_OWNER, ROLE_STAFF
from ..services import dashboard_service
from app.time_utils import utcnow


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("/activity")
@require_auth
@require_any_role(ROLE_OWNER, ROLE_STAFF)
def activity_route():
    year = request.args.get("year", type=int) or utcnow().year
    if year < 1900 or year > 9998:
        return {"error": "year out of range"}, 400
    return {
        "year": year,
        "items": dashboard_service.get_monthly_stock_activity(g.owner_scope.owner_id, year),
    }


@dashboard_bp.get("/years")
@require_auth
@require_any_role(ROLE_OWNER, ROLE_STAFF)
def years_route():
    return {"years": dashboard_service.get_available_transaction_years(g.owner_scope.owner_id)}


@dashboard_bp.get("/metrics")
@require_auth
@require_any_role(ROLE_OWNER, ROLE_STAFF)
def metrics_route():
    return dashboard_service.get_dashboard_metrics(g.owner_scope.owner_id)


@dashboard_bp.get("/stock-levels")
@require_auth
@require_any_role(ROLE_OWNER, ROLE_STAFF)
def stock_levels_route():
    limit = request.args.get("limit", type=int)
    items = dashboard_service.get_stock_levels(g.owner_scope.owner_id, limit=limit)
    return {"items": items, "count": len(items)}
