# Overview: Service-layer operations for roles; resolves, grants and revokes role slugs.

"""
Role Resolution

WHY: Authorization decisions are made on role slugs ("admin", "user",
"superadmin"). A user carries zero or more roles through the user_roles
association.

DESIGN:
- has_role is a linear scan over the user's loaded role set (small sets)
- grant_role is idempotent: membership is checked by role id before appending
- revoke_role never fails when the role is absent
- grant/revoke mutate the session only; the caller owns the commit so role
  changes land in the same transaction as the state change that caused them
"""

from __future__ import annotations

from typing import Protocol

from ..models import Role, User
from .errors import RoleNotFoundError


ROLE_ADMIN = "admin"
ROLE_USER = "user"
ROLE_SUPERADMIN = "superadmin"

DEFAULT_ROLES = (
    ("Admin", ROLE_ADMIN),
    ("User", ROLE_USER),
    ("Super Admin", ROLE_SUPERADMIN),
)

# Roles allowed to overwrite order status
ORDER_ADMIN_ROLES = frozenset({ROLE_ADMIN, ROLE_SUPERADMIN})


class RoleGranter(Protocol):
    """Capability the vendor lifecycle needs to keep user roles in sync."""

    def grant_role(self, user: User, slug: str) -> bool: ...

    def revoke_role(self, user: User, slug: str) -> bool: ...


def has_any_role(role_slugs, required) -> bool:
    """True if any slug in role_slugs is in required."""
    return any(slug in required for slug in role_slugs)


class RoleService:
    def __init__(self, session):
        self.session = session

    def get_role(self, slug: str) -> Role:
        role = self.session.query(Role).filter_by(slug=slug).first()
        if role is None:
            raise RoleNotFoundError(slug)
        return role

    @staticmethod
    def has_role(user: User, slug: str) -> bool:
        for role in user.roles:
            if role.slug == slug:
                return True
        return False

    @staticmethod
    def role_slugs(user: User) -> list[str]:
        return [role.slug for role in user.roles]

    def grant_role(self, user: User, slug: str) -> bool:
        """
        Add the role to the user if missing.

        Returns True if the association was added, False if already present.
        Raises RoleNotFoundError if no role with that slug is configured.
        """
        role = self.get_role(slug)
        if any(existing.id == role.id for existing in user.roles):
            return False
        user.roles.append(role)
        return True

    def revoke_role(self, user: User, slug: str) -> bool:
        """Remove the role from the user. Returns True if something was removed."""
        removed = False
        for role in list(user.roles):
            if role.slug == slug:
                user.roles.remove(role)
                removed = True
        return removed

    def ensure_default_roles(self) -> list[Role]:
        """Create the standard roles if they don't exist. Idempotent."""
        roles = []
        for name, slug in DEFAULT_ROLES:
            role = self.session.query(Role).filter_by(slug=slug).first()
            if role is None:
                role = Role(name=name, slug=slug)
                self.session.add(role)
            roles.append(role)

        self.session.commit()
        return roles
