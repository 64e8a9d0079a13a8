from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


VENDOR_STATUS_PENDING = "pending"
VENDOR_STATUS_ACTIVE = "active"
VENDOR_STATUS_REJECTED = "rejected"
VENDOR_STATUS_SUSPENDED = "suspended"

VENDOR_STATUSES = (
    VENDOR_STATUS_PENDING,
    VENDOR_STATUS_ACTIVE,
    VENDOR_STATUS_REJECTED,
    VENDOR_STATUS_SUSPENDED,
)


class Vendor(db.Model):
    """
    User-owned storefront subject to super-admin approval.

    LIFECYCLE: created "pending" on application; a super admin moves it to
    active / rejected / suspended (and may move it again later).

    INVARIANT: approved_by_user_id and approved_at are set only while the
    status is "active"; every other status clears them.
    """
    __tablename__ = "vendors"
    __table_args__ = (
        db.UniqueConstraint("user_id", name="uq_vendors_user"),
        db.Index("ix_vendors_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    shop_name = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=VENDOR_STATUS_PENDING)

    approved_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    user = db.relationship(
        "User",
        foreign_keys=[user_id],
        backref=db.backref("vendor", uselist=False, lazy=True),
    )
    approved_by = db.relationship("User", foreign_keys=[approved_by_user_id])

    def to_dict(self, include_user: bool = False) -> dict:
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "shop_name": self.shop_name,
            "status": self.status,
            "approved_by": self.approved_by_user_id,
            "approved_at": to_utc_z(self.approved_at) if self.approved_at else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_user and self.user is not None:
            data["user"] = self.user.to_dict()
        return data
