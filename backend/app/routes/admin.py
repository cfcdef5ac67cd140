# Overview: Flask API routes for admin operations; parses input and returns JSON responses.

# backend/app/routes/admin.py
"""
Admin routes for account management (OWNER only).

- List users with their roles
- Create staff (PEGAWAI) accounts
- Change a user's role
- Activate / deactivate accounts
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_any_role
from ..models.auth import ROLE_OWNER
from ..services import user_management_service
from ..services.errors import StockError

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/users")
@require_auth
@require_any_role(ROLE_OWNER)
def list_users():
    users = user_management_service.list_users_with_roles()
    return jsonify({"users": users, "count": len(users)})


@admin_bp.post("/users")
@require_auth
@require_any_role(ROLE_OWNER)
def create_user():
    """
    Create a staff account.

    Body: {"username", "email", "password", "name"}
    """
    data = request.get_json(silent=True) or {}
    try:
        user = user_management_service.create_staff_user(
            username=data.get("username"),
            email=data.get("email"),
            password=data.get("password"),
            name=data.get("name"),
        )
    except StockError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"user": user.to_dict()}), 201


@admin_bp.put("/users/<int:user_id>/role")
@require_auth
@require_any_role(ROLE_OWNER)
def update_role(user_id: int):
    """Body: {"role": "OWNER" | "PEGAWAI"}"""
    data = request.get_json(silent=True) or {}
    try:
        user = user_management_service.update_user_role(g.current_user, user_id, data.get("role"))
    except StockError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update role for user %s", user_id)
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info("User %s set role of user %s to %s", g.current_user.id, user_id, data.get("role"))
    return jsonify({"user": user.to_dict()})


@admin_bp.put("/users/<int:user_id>/active")
@require_auth
@require_any_role(ROLE_OWNER)
def set_active(user_id: int):
    """Body: {"is_active": bool}"""
    data = request.get_json(silent=True) or {}
    if not isinstance(data.get("is_active"), bool):
        return jsonify({"error": "is_active must be a boolean"}), 400

    try:
        user = user_management_service.set_user_active(g.current_user, user_id, data["is_active"])
    except StockError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to change active flag for user %s", user_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"user": user.to_dict()})
