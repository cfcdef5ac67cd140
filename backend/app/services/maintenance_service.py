# Overview: Service-layer operations for maintenance; encapsulates business logic and database work.

from __future__ import annotations

from datetime import timedelta

from ..extensions import db
from ..models import SecurityEvent, SessionToken
from app.time_utils import utcnow


def cleanup_security_events(*, retention_days: int = 90) -> int:
    """
    Delete security events older than retention_days.

    Recent failed logins are needed by the login throttle, so keep the
    window well above 15 minutes.
    """
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = db.session.query(SecurityEvent).filter(
        SecurityEvent.occurred_at < cutoff
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted


def cleanup_session_tokens() -> int:
    """Delete revoked session tokens and tokens past their absolute expiry."""
    deleted = db.session.query(SessionToken).filter(
        db.or_(SessionToken.is_revoked.is_(True), SessionToken.expires_at < utcnow())
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted
