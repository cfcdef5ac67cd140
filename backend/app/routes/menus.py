# Overview: Flask API routes for menus and recipes; parses input and returns JSON responses.

from flask import Blueprint, request, g, current_app

from ..decorators import require_auth, require_any_role
from ..models.auth import ROLE_OWNER, ROLE_STAFF
from ..services import recipe_service
from ..services.errors import StockError


menus_bp = Blueprint("menus", __name__, url_prefix="/api/menus")


@menus_bp.get("")
@require_auth
@require_any_role(ROLE_OWNER, ROLE_STAFF)
def list_menus_route():
    include_recipes = request.args.get("include_recipes", "").lower() in {"1", "true", "yes"}
    menus = recipe_service.list_menus(search=request.args.get("q"))
    return {
        "items": [m.to_dict(include_recipes=include_recipes) for m in menus],
        "count": len(menus),
    }


@menus_bp.get("/<int:menu_id>")
@require_auth
@require_any_role(ROLE_OWNER, ROLE_STAFF)
def get_menu_route(menu_id: int):
    try:
        menu = recipe_service.get_menu(menu_id)
    except StockError as e:
        return {"error": str(e)}, e.status_code
    return {"menu": menu.to_dict(include_recipes=True)}


@menus_bp.post("")
@require_auth
@require_any_role(ROLE_OWNER)
def create_menu_route():
    """
    Create a menu.

    Body: {"code", "name", "recipes": [{"product_id", "qty_per_portion"}, ...]}
    """
    data = request.get_json(silent=True) or {}
    try:
        menu = recipe_service.create_menu(
            g.owner_scope,
            code=data.get("code"),
            name=data.get("name"),
            recipes=data.get("recipes"),
        )
    except StockError as e:
        return {"error": str(e)}, e.status_code
    except Exception:
        current_app.logger.exception("Failed to create menu")
        return {"error": "Internal server error"}, 500
    return {"menu": menu.to_dict(include_recipes=True)}, 201


@menus_bp.put("/<int:menu_id>/recipe")
@require_auth
@require_any_role(ROLE_OWNER)
def set_recipe_route(menu_id: int):
    """Replace the recipe. Body: {"recipes": [{"product_id", "qty_per_portion"}, ...]}"""
    data = request.get_json(silent=True) or {}
    try:
        menu = recipe_service.set_recipe(g.owner_scope, menu_id, data.get("recipes"))
    except StockError as e:
        return {"error": str(e)}, e.status_code
    except Exception:
        current_app.logger.exception("Failed to set recipe for menu %s", menu_id)
        return {"error": "Internal server error"}, 500
    return {"menu": menu.to_dict(include_recipes=True)}


@menus_bp.delete("/<int:menu_id>")
@require_auth
@require_any_role(ROLE_OWNER)
def delete_menu_route(menu_id: int):
    try:
        recipe_service.delete_menu(menu_id)
    except StockError as e:
        return {"error": str(e)}, e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete menu %s", menu_id)
        return {"error": "Internal server error"}, 500
    return {"ok": True}
