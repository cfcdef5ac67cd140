# Overview: Service-layer account management for owners; roles, staff accounts and activation.

"""
User Management

RULES:
- Only OWNER accounts call these (enforced by the route guard), apart from
  register_user behind the public register route.
- An owner cannot remove OWNER from their own account or deactivate it.
- At least one active OWNER must remain.
- Every account keeps the PEGAWAI role; OWNER is granted on top of it.
- Self-registered accounts start with no role until an owner assigns one.
"""

from __future__ import annotations

import re

from ..extensions import db
from ..models import User, Role, UserRole
from ..models.auth import ROLE_OWNER, ROLE_STAFF, ROLE_NAMES
from ..validation import ConflictError
from . import auth_service, session_service
from .errors import NotFoundError, ValidationFailedError

MIN_USERNAME_LENGTH = 3
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _get_role(name: str) -> Role:
    role = db.session.query(Role).filter_by(name=name).first()
    if role is None:
        raise NotFoundError(f"Role {name} not found")
    return role


def _get_user(user_id: int) -> User:
    user = db.session.query(User).filter_by(id=user_id).first()
    if user is None:
        raise NotFoundError("User not found")
    return user


def _other_active_owner_count(user_id: int) -> int:
    return (
        db.session.query(db.func.count(db.distinct(UserRole.user_id)))
        .select_from(UserRole)
        .join(Role, Role.id == UserRole.role_id)
        .join(User, User.id == UserRole.user_id)
        .filter(Role.name == ROLE_OWNER, User.is_active.is_(True), User.id != user_id)
        .scalar()
    )


def list_users_with_roles() -> list[dict]:
    users = db.session.query(User).order_by(User.created_at.asc(), User.id.asc()).all()
    return [u.to_dict() for u in users]


def create_staff_user(*, username: str, email: str, password: str, name: str | None = None) -> User:
    """
    Create a PEGAWAI account.

    Raises:
        ValidationFailedError: Missing fields or weak password
        ConflictError: Username or email already taken
    """
    username = (username or "").strip()
    email = (email or "").strip().lower()
    if not username or not email or not password:
        raise ValidationFailedError("username, email and password are required")

    try:
        return auth_service.create_user(
            username=username,
            email=email,
            password=password,
            name=(name or "").strip() or None,
            role=ROLE_STAFF,
        )
    except auth_service.PasswordValidationError as e:
        raise ValidationFailedError(str(e))
    except ValueError as e:
        raise ConflictError(str(e))


def register_user(*, username: str, email: str, password: str, confirm_password: str | None = None) -> User:
    """
    Self-registration. The account has no role until an owner grants one,
    so it can sign in but every stock route answers 403.

    Raises:
        ValidationFailedError: Short username, bad email, weak or mismatched password
        ConflictError: Email already registered, or username taken
    """
    username = (username or "").strip()
    email = (email or "").strip().lower()
    if len(username) < MIN_USERNAME_LENGTH:
        raise ValidationFailedError(f"Username must be at least {MIN_USERNAME_LENGTH} characters")
    if not _EMAIL_RE.match(email):
        raise ValidationFailedError("Invalid email address")
    if not password:
        raise ValidationFailedError("Password is required")
    if confirm_password is not None and confirm_password != password:
        raise ValidationFailedError("Password confirmation does not match")

    if db.session.query(User.id).filter(User.email == email).first():
        raise ConflictError("Email is already registered")
    if db.session.query(User.id).filter(User.username == username).first():
        raise ConflictError("Username is not available")

    try:
        return auth_service.create_user(username=username, email=email, password=password)
    except auth_service.PasswordValidationError as e:
        raise ValidationFailedError(str(e))
    except ValueError as e:
        raise ConflictError(str(e))


def update_user_role(actor: User, target_user_id: int, role: str) -> User:
    """
    Make an account OWNER or PEGAWAI.

    Raises:
        ValidationFailedError: Unknown role, self-demotion, or last owner
        NotFoundError: Unknown user
    """
    role = (role or "").strip().upper()
    if role not in ROLE_NAMES:
        raise ValidationFailedError("Unknown role")
    if target_user_id == actor.id and role != ROLE_OWNER:
        raise ValidationFailedError("You cannot remove the OWNER role from yourself")

    target = _get_user(target_user_id)
    owner_role = _get_role(ROLE_OWNER)
    staff_role = _get_role(ROLE_STAFF)

    if role == ROLE_STAFF and target.has_any_role(ROLE_OWNER):
        if _other_active_owner_count(target.id) == 0:
            raise ValidationFailedError("At least one active OWNER must remain")

    existing = {ur.role_id: ur for ur in target.user_roles}
    if role == ROLE_OWNER:
        if owner_role.id not in existing:
            target.user_roles.append(UserRole(role_id=owner_role.id))
    elif owner_role.id in existing:
        target.user_roles.remove(existing[owner_role.id])

    if staff_role.id not in existing:
        target.user_roles.append(UserRole(role_id=staff_role.id))

    db.session.commit()
    return target


def set_user_active(actor: User, target_user_id: int, active: bool) -> User:
    """
    Activate or deactivate an account. Deactivation revokes its sessions.

    Raises:
        ValidationFailedError: Self-deactivation, or deactivating the last owner
        NotFoundError: Unknown user
    """
    target = _get_user(target_user_id)

    if not active:
        if target.id == actor.id:
            raise ValidationFailedError("You cannot deactivate your own account")
        if target.has_any_role(ROLE_OWNER) and _other_active_owner_count(target.id) == 0:
            raise ValidationFailedError("At least one active OWNER must remain")

    target.is_active = bool(active)
    db.session.commit()

    if not active:
        session_service.revoke_all_user_sessions(target.id, reason="Account deactivated")
    return target
