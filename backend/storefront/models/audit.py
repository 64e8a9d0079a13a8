from __future__ import annotations

import json

from ..extensions import db
from ..time_utils import to_utc_z


class AuditLog(db.Model):
    """
    Administrative audit trail.

    old_value / new_value hold JSON snapshots (e.g. {"status": "pending"}),
    not free text. actor_id references the acting user loosely: no foreign
    key, so entries survive the actor's deletion.

    IMMUTABLE: Never update or delete. Append-only for audit integrity.
    """
    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("ix_audit_logs_resource", "resource"),
        db.Index("ix_audit_logs_created", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    actor_id = db.Column(db.Integer, nullable=True, index=True)  # Nullable for system actions
    action = db.Column(db.String(200), nullable=False)
    resource = db.Column(db.String(200), nullable=False)  # e.g., "vendor:123"
    old_value = db.Column(db.Text, nullable=True)
    new_value = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @staticmethod
    def _load(value: str | None):
        if not value:
            return None
        try:
            return json.loads(value)
        except ValueError:
            return value

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "actor_id": self.actor_id,
            "action": self.action,
            "resource": self.resource,
            "old_value": self._load(self.old_value),
            "new_value": self._load(self.new_value),
            "created_at": to_utc_z(self.created_at),
        }
