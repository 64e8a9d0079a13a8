# Overview: Flask API routes for super-admin user management.

from flask import Blueprint, current_app, g, jsonify

from ..decorators import require_auth, require_role
from ..extensions import db
from ..services import user_service
from ..services.errors import ServiceError
from ..services.role_service import ROLE_SUPERADMIN


admin_bp = Blueprint("admin", __name__, url_prefix="/super-admin/users")


@admin_bp.get("")
@require_auth
@require_role(ROLE_SUPERADMIN)
def list_users_route():
    users = user_service.list_users(db.session)
    return jsonify({"items": [u.to_dict() for u in users], "count": len(users)}), 200


@admin_bp.delete("/<int:user_id>")
@require_auth
@require_role(ROLE_SUPERADMIN)
def delete_user_route(user_id: int):
    """
    Hard-delete a user and everything they own.

    A super admin cannot delete their own account through this route.
    """
    try:
        user_service.delete_user(db.session, user_id, actor_id=g.user_id)
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete user %s", user_id)
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info("User %s deleted by user %s", user_id, g.user_id)
    return jsonify({"message": "User and all related records deleted successfully"}), 200
