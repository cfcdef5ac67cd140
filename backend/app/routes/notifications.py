# Overview: Flask API routes for low-stock notifications.

from flask import Blueprint, g, current_app

from ..decorators import require_auth, require_any_role
from ..models.auth import ROLE_OWNER, ROLE_STAFF
from ..services import notification_service


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("/low-stock")
@require_auth
@require_any_role(ROLE_OWNER, ROLE_STAFF)
def low_stock_route():
    try:
        items = notification_service.get_low_stock_notifications(g.owner_scope.owner_id)
    except Exception:
        current_app.logger.exception("Failed to load low-stock notifications")
        return {"error": "Internal server error"}, 500
    return {"items": items, "count": len(items)}
