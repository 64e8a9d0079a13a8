from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class User(db.Model):
    """
    User accounts for authentication and attribution.

    Authorization is driven entirely by the many-to-many role set; there is
    no single "role" column. A user may own at most one Vendor.

    SECURITY: password_hash is never part of to_dict().
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_users_email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=True)
    email = db.Column(db.String(255), nullable=False, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    roles = db.relationship(
        "Role",
        secondary="user_roles",
        lazy="selectin",
        order_by="Role.id",
        backref=db.backref("users", lazy=True),
    )

    def to_dict(self, include_roles: bool = True) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }
        if include_roles:
            data["roles"] = [role.to_dict() for role in self.roles]
        return data


class Role(db.Model):
    """
    Named role with a unique slug.

    The slug ("admin", "user", "superadmin") is the authorization key used by
    every check; the name is for display only.
    """
    __tablename__ = "roles"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, unique=True)
    slug = db.Column(db.String(100), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
        }


class UserRole(db.Model):
    """User-Role association."""
    __tablename__ = "user_roles"

    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    role_id = db.Column(db.Integer, db.ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True)

    assigned_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())


class RefreshToken(db.Model):
    """
    Server-side record of an issued refresh token.

    SECURITY NOTES:
    - Only the SHA-256 hash of the token is stored
    - roles is a comma-joined snapshot of role slugs at issue time
    - Rows are hard-deleted on logout, or when found expired at use time
      (no background sweep; see `flask maintenance purge-expired-tokens`)
    """
    __tablename__ = "refresh_tokens"
    __table_args__ = (
        db.Index("ix_refresh_tokens_user", "user_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)
    roles = db.Column(db.String(255), nullable=False, default="")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    user = db.relationship("User", backref=db.backref("refresh_tokens", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "roles": [slug for slug in self.roles.split(",") if slug],
            "created_at": to_utc_z(self.created_at),
            "expires_at": to_utc_z(self.expires_at),
        }
