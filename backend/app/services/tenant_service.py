# Overview: Service-layer owner scoping; maps the acting user to the catalog owner.

"""
Tenancy: Owner Scope Resolution

WHY: Products, suppliers and ledger rows are owned by an OWNER account.
Staff (PEGAWAI) accounts work on the designated owner's catalog, so every
engine call receives an explicit OwnerScope instead of a raw user id.

RULES:
1. An OWNER acts on its own catalog (owner_id = owner_ids = {user.id}).
2. A staff user acts on the most recently created OWNER's catalog. Its own
   id stays in owner_ids as a fallback for catalog lookups.
3. With no OWNER at all, the staff user's own id is the owner id.

USAGE:
    scope = resolve_owner_scope(g.current_user)
    product = find_owned_product(scope, product_id)
"""

from __future__ import annotations

from dataclasses import dataclass

from ..extensions import db
from ..models import User, Role, UserRole
from ..models.auth import ROLE_OWNER


@dataclass(frozen=True)
class OwnerScope:
    """
    Tenancy context for one request.

    owner_id is stamped on new rows; owner_ids is used to resolve existing
    products and suppliers.
    """
    actor_id: int
    owner_id: int
    owner_ids: tuple[int, ...]

    def owns(self, user_id: int | None) -> bool:
        return user_id is not None and user_id in self.owner_ids


def get_designated_owner() -> User | None:
    """Most recently created active OWNER account, or None."""
    return (
        db.session.query(User)
        .join(UserRole, UserRole.user_id == User.id)
        .join(Role, Role.id == UserRole.role_id)
        .filter(Role.name == ROLE_OWNER, User.is_active.is_(True))
        .order_by(User.created_at.desc(), User.id.desc())
        .first()
    )


def resolve_owner_scope(user: User) -> OwnerScope:
    if user.has_any_role(ROLE_OWNER):
        return OwnerScope(actor_id=user.id, owner_id=user.id, owner_ids=(user.id,))

    owner = get_designated_owner()
    if owner is None or owner.id == user.id:
        return OwnerScope(actor_id=user.id, owner_id=user.id, owner_ids=(user.id,))

    return OwnerScope(actor_id=user.id, owner_id=owner.id, owner_ids=(owner.id, user.id))


def scope_for_owner(owner_id: int) -> OwnerScope:
    """Scope for code paths acting directly as an owner (CLI, tests)."""
    return OwnerScope(actor_id=owner_id, owner_id=owner_id, owner_ids=(owner_id,))
