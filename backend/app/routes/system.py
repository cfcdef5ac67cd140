# backend/app/routes/system.py
"""
System health endpoint.

Checks database connectivity and that the OWNER / PEGAWAI roles exist.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import User, Role, Product
from ..models.auth import ROLE_NAMES
from app.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """Check database connectivity with a few cheap counts."""
    start_time = time.time()
    try:
        user_count = db.session.query(User).count()
        product_count = db.session.query(Product).count()

        return {
            "status": "healthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "details": {
                "users": user_count,
                "products": product_count,
            }
        }
    except Exception:
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "error": "Database error"
        }


def check_auth_health() -> dict:
    """Roles must be seeded (flask system init) before anyone can be authorized."""
    start_time = time.time()
    try:
        present = {name for (name,) in db.session.query(Role.name).filter(Role.name.in_(ROLE_NAMES))}
        missing = [name for name in ROLE_NAMES if name not in present]
        elapsed_ms = round((time.time() - start_time) * 1000, 2)

        if missing:
            return {
                "status": "degraded",
                "latency_ms": elapsed_ms,
                "warning": f"Missing roles: {', '.join(missing)}",
            }
        return {"status": "healthy", "latency_ms": elapsed_ms}
    except Exception:
        current_app.logger.exception("Auth health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "error": "Auth service error"
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: one or more checks unhealthy
    """
    start_time = time.time()

    checks = {
        "database": check_database_health(),
        "auth": check_auth_health(),
    }
    statuses = {c["status"] for c in checks.values()}

    if "unhealthy" in statuses:
        overall_status, http_status = "unhealthy", 503
    elif "degraded" in statuses:
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": checks,
    }, http_status
