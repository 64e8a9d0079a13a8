# Overview: Flask API routes for vendor operations; parses input and returns JSON responses.

"""
Vendor Routes

- POST /vendors/apply: any authenticated user applies for a vendor account
- /super-admin/vendors...: super admins review applications and move vendors
  between pending/active/rejected/suspended

Approving a vendor grants the owning user the elevated role (config
VENDOR_ELEVATED_ROLE, "admin" by default); rejecting or suspending takes it
away. Every transition is written to the audit log. If only the audit write
fails, the transition still succeeds and the response carries a warning.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_role
from ..extensions import db
from ..models.vendors import (
    VENDOR_STATUS_ACTIVE,
    VENDOR_STATUS_REJECTED,
    VENDOR_STATUS_SUSPENDED,
)
from ..services.audit_service import AuditLogger
from ..services.errors import ServiceError
from ..services.role_service import ROLE_SUPERADMIN, RoleService
from ..services.vendor_service import VendorService
from ..validation import json_object


vendors_bp = Blueprint("vendors", __name__)


def _vendor_service() -> VendorService:
    session = db.session
    return VendorService(
        session,
        RoleService(session),
        AuditLogger(session),
        elevated_role=current_app.config["VENDOR_ELEVATED_ROLE"],
    )


@vendors_bp.post("/vendors/apply")
@require_auth
def apply_route():
    """Request body: {"shop_name": str}"""
    try:
        data = json_object(request.get_json(silent=True))
        application = _vendor_service().apply(g.user_id, data.get("shop_name"))
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to submit vendor application")
        return jsonify({"error": "Internal server error"}), 500

    if not application.audit_logged:
        current_app.logger.warning(
            "Vendor %s application stored but audit log failed: %s",
            application.vendor.id, application.audit_error,
        )
    return jsonify({"message": "Vendor application submitted", "data": application.vendor.to_dict()}), 201


@vendors_bp.get("/super-admin/vendors")
@require_auth
@require_role(ROLE_SUPERADMIN)
def list_vendors_route():
    """
    Query params:
    - status: pending|active|rejected|suspended (optional)
    """
    try:
        vendors = _vendor_service().list_vendors(request.args.get("status"))
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({
        "items": [v.to_dict(include_user=True) for v in vendors],
        "count": len(vendors),
    }), 200


@vendors_bp.get("/super-admin/vendors/<int:vendor_id>")
@require_auth
@require_role(ROLE_SUPERADMIN)
def get_vendor_route(vendor_id: int):
    try:
        vendor = _vendor_service().get_vendor(vendor_id)
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({"data": vendor.to_dict(include_user=True)}), 200


def _transition(vendor_id: int, new_status: str):
    try:
        result = _vendor_service().transition_status(vendor_id, new_status, actor_id=g.user_id)
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update vendor %s status", vendor_id)
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info(
        "Vendor %s moved %s -> %s by user %s",
        vendor_id, result.old_status, result.new_status, g.user_id,
    )

    body = {
        "message": "Vendor status updated",
        "data": result.vendor.to_dict(),
        "old_status": result.old_status,
        "new_status": result.new_status,
    }
    if not result.audit_logged:
        current_app.logger.warning(
            "Vendor %s status updated but audit log failed: %s", vendor_id, result.audit_error,
        )
        body["message"] = "Vendor status updated but audit log failed"
        body["warning"] = result.audit_error
    return jsonify(body), 200


@vendors_bp.put("/super-admin/vendors/<int:vendor_id>/approve")
@require_auth
@require_role(ROLE_SUPERADMIN)
def approve_vendor_route(vendor_id: int):
    return _transition(vendor_id, VENDOR_STATUS_ACTIVE)


@vendors_bp.put("/super-admin/vendors/<int:vendor_id>/reject")
@require_auth
@require_role(ROLE_SUPERADMIN)
def reject_vendor_route(vendor_id: int):
    return _transition(vendor_id, VENDOR_STATUS_REJECTED)


@vendors_bp.put("/super-admin/vendors/<int:vendor_id>/suspend")
@require_auth
@require_role(ROLE_SUPERADMIN)
def suspend_vendor_route(vendor_id: int):
    return _transition(vendor_id, VENDOR_STATUS_SUSPENDED)


@vendors_bp.put("/super-admin/vendors/<int:vendor_id>/status")
@require_auth
@require_role(ROLE_SUPERADMIN)
def update_vendor_status_route(vendor_id: int):
    """Generic transition. Request body: {"status": str}"""
    try:
        data = json_object(request.get_json(silent=True))
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    return _transition(vendor_id, data.get("status"))
