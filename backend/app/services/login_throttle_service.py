"""
Login Throttling Service

WHY: Prevent brute-force password attacks by limiting failed login attempts.
After too many failures, the account is temporarily locked.

- Tracks failed attempts per username/email in security_events
- Lockout after MAX_FAILED_ATTEMPTS failures within LOCKOUT_WINDOW
- Lockout lasts LOCKOUT_DURATION from the most recent failure
"""

from datetime import timedelta
from ..extensions import db
from ..models import SecurityEvent, User
from app.time_utils import utcnow


MAX_FAILED_ATTEMPTS = 10
LOCKOUT_WINDOW = timedelta(minutes=15)
LOCKOUT_DURATION = timedelta(minutes=15)

LOGIN_RESOURCE = "/api/auth/login"


def get_recent_failed_attempts(identifier: str) -> int:
    """Count LOGIN_FAILED events for an identifier within LOCKOUT_WINDOW."""
    cutoff = utcnow() - LOCKOUT_WINDOW

    return db.session.query(SecurityEvent).filter(
        SecurityEvent.event_type == "LOGIN_FAILED",
        SecurityEvent.action == identifier,
        SecurityEvent.occurred_at >= cutoff
    ).count()


def is_account_locked(identifier: str) -> tuple[bool, int | None]:
    """
    Check if an identifier is currently locked.

    Returns:
    - (True, seconds_remaining) if locked
    - (False, None) if not locked
    """
    if get_recent_failed_attempts(identifier) < MAX_FAILED_ATTEMPTS:
        return False, None

    most_recent = db.session.query(SecurityEvent).filter(
        SecurityEvent.event_type == "LOGIN_FAILED",
        SecurityEvent.action == identifier
    ).order_by(SecurityEvent.occurred_at.desc()).first()

    if most_recent:
        lockout_end = most_recent.occurred_at + LOCKOUT_DURATION
        now = utcnow()
        if now < lockout_end:
            return True, int((lockout_end - now).total_seconds())

    return False, None


def _record(event_type: str, identifier: str, *, user_id, success: bool, reason, ip_address, user_agent) -> None:
    db.session.add(SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        resource=LOGIN_RESOURCE,
        action=identifier[:255],
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    ))
    db.session.commit()


def record_failed_attempt(
    identifier: str,
    ip_address: str | None = None,
    user_agent: str | None = None,
    reason: str = "Invalid credentials"
) -> int:
    """
    Record a failed login attempt.

    Returns the total number of recent failed attempts.
    """
    user = db.session.query(User).filter(
        db.or_(User.username == identifier, User.email == identifier)
    ).first()

    _record(
        "LOGIN_FAILED", identifier,
        user_id=user.id if user else None,
        success=False,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    return get_recent_failed_attempts(identifier)


def record_successful_login(
    user_id: int,
    identifier: str,
    ip_address: str | None = None,
    user_agent: str | None = None
) -> None:
    _record(
        "LOGIN_SUCCESS", identifier,
        user_id=user_id,
        success=True,
        reason=None,
        ip_address=ip_address,
        user_agent=user_agent,
    )
