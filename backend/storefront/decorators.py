# Overview: Request authentication and role decorators for API routes.

from functools import wraps

from flask import current_app, g, jsonify, request

from .extensions import db
from .models import User
from .services.errors import UnauthenticatedError
from .services.role_service import RoleService, has_any_role
from .services.token_service import TokenService


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'role_slugs')


def require_auth(f):
    """
    Require a valid access token.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.user_id: its id
    - g.role_slugs: role slugs read from the database at request time, so a
      revoked role takes effect before the access token expires

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired or non-access token
    - User deleted or deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1].strip()

        tokens = TokenService.from_config(db.session, current_app.config)
        try:
            claims = tokens.parse_token(token)
        except UnauthenticatedError as e:
            return jsonify({"error": e.message}), 401

        user = db.session.get(User, claims.user_id)
        if user is None or not user.is_active:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = user
        g.user_id = user.id
        g.role_slugs = RoleService.role_slugs(user)

        return f(*args, **kwargs)

    return decorated_function


def require_role(*role_slugs: str):
    """
    Require the caller to hold at least one of role_slugs.

    Must be stacked under @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if not has_any_role(g.role_slugs, role_slugs):
                current_app.logger.info(
                    "Access denied: user %s lacks %s for %s %s",
                    g.user_id, ",".join(role_slugs), request.method, request.path,
                )
                return jsonify({
                    "error": "Access denied",
                    "required_roles": list(role_slugs),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
