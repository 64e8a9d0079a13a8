# Overview: Service-layer operations for the administrative audit trail.

"""
Audit Logging

WHY: Administrative state changes (vendor approval, suspension, ...) must be
attributable after the fact.

DESIGN:
- Append-only: this module never updates or deletes entries
- Before/after snapshots are serialized as JSON, not free text
- append() commits on its own so it can run after the primary change has
  already been committed; a failure rolls back only the audit insert
"""

from __future__ import annotations

import json

from sqlalchemy.exc import SQLAlchemyError

from ..models import AuditLog
from .errors import InternalError


ACTION_VENDOR_APPLY = "vendor_apply"
ACTION_UPDATE_VENDOR_STATUS = "update_vendor_status"


class AuditLogError(InternalError):
    """Raised when an audit entry could not be written."""


def vendor_resource(vendor_id: int) -> str:
    return f"vendor:{vendor_id}"


class AuditLogger:
    def __init__(self, session):
        self.session = session

    def append(
        self,
        *,
        actor_id: int | None,
        action: str,
        resource: str,
        old_value: dict | None = None,
        new_value: dict | None = None,
    ) -> AuditLog:
        try:
            entry = AuditLog(
                actor_id=actor_id,
                action=action,
                resource=resource,
                old_value=json.dumps(old_value, sort_keys=True) if old_value is not None else None,
                new_value=json.dumps(new_value, sort_keys=True) if new_value is not None else None,
            )
            self.session.add(entry)
            self.session.commit()
        except (SQLAlchemyError, TypeError, ValueError) as exc:
            self.session.rollback()
            raise AuditLogError(f"Failed to write audit log: {exc}") from exc
        return entry

    def list_for_resource(self, resource: str) -> list[AuditLog]:
        return (
            self.session.query(AuditLog)
            .filter_by(resource=resource)
            .order_by(AuditLog.id.asc())
            .all()
        )
