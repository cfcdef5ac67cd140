# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .services import session_service
from .services.tenant_service import resolve_owner_scope


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user')


def require_auth(f):
    """
    Require authentication and establish the owner scope.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.owner_scope: OwnerScope resolved for the user
    - g.session_context: The full SessionContext object

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid or expired token
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]

        context = session_service.validate_session(token)

        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.owner_scope = resolve_owner_scope(context.user)
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_any_role(*roles: str):
    """
    Require the authenticated user to hold one of the given roles.

    Must be stacked under @require_auth. Returns 403 otherwise.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            user = g.current_user
            if not user.has_any_role(*roles):
                current_app.logger.warning(
                    "Role check failed: user=%s roles=%s required=%s path=%s",
                    user.id, user.role_names, list(roles), request.path,
                )
                return jsonify({
                    "error": "Forbidden",
                    "required_roles": list(roles),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
