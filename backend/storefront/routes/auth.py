# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/storefront/routes/auth.py
"""
Authentication API routes

SECURITY FEATURES:
- Password strength validation on registration
- Self-registration only ever grants the baseline "user" role
- Short-lived access token in the response body
- Refresh token in an HttpOnly cookie (also in the body for non-browser clients),
  stored hashed server-side and deleted on logout
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..extensions import db
from ..services import auth_service
from ..services.errors import ServiceError
from ..services.token_service import TokenService
from ..validation import json_object


auth_bp = Blueprint("auth", __name__)

REFRESH_COOKIE = "refresh_token"


def _tokens() -> TokenService:
    return TokenService.from_config(db.session, current_app.config)


def _refresh_token_from_request() -> str | None:
    token = request.cookies.get(REFRESH_COOKIE)
    if token:
        return token
    data = request.get_json(silent=True)
    token = data.get("refresh_token") if isinstance(data, dict) else None
    return token if isinstance(token, str) else None


@auth_bp.post("/register")
def register_route():
    """
    Register a new account.

    Request body: {"name": str, "email": str, "password": str}
    """
    try:
        data = json_object(request.get_json(silent=True))
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    email = data.get("email")
    password = data.get("password")

    if not all([email, password]):
        return jsonify({"error": "email and password required"}), 400

    try:
        user = auth_service.register_user(
            db.session,
            name=data.get("name"),
            email=email,
            password=password,
        )
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info("Registered user %s", user.id)
    return jsonify({"message": "User registered successfully", "user": user.to_dict()}), 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and issue tokens.

    Returns user info, access token and refresh token on success. The access
    token must be sent as "Authorization: Bearer <token>" on protected routes.
    """
    try:
        data = json_object(request.get_json(silent=True))
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    email = data.get("email")
    password = data.get("password")

    if not all([email, password]):
        return jsonify({"error": "email and password required"}), 400

    tokens = _tokens()
    try:
        user = auth_service.authenticate(db.session, email, password)
        if not user:
            return jsonify({"error": "Invalid credentials"}), 401

        pair = tokens.issue_token_pair(user)
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500

    response = jsonify({
        "message": "Login successful",
        "user": user.to_dict(),
        "access_token": pair.access_token,
        "refresh_token": pair.refresh_token,
        "expires_in": pair.expires_in,
    })
    response.set_cookie(
        REFRESH_COOKIE,
        pair.refresh_token,
        max_age=int(tokens.refresh_ttl.total_seconds()),
        httponly=True,
        secure=current_app.config["REFRESH_COOKIE_SECURE"],
        samesite="Lax",
    )
    return response, 200


@auth_bp.post("/refresh")
def refresh_route():
    refresh_token = _refresh_token_from_request()
    if not refresh_token:
        return jsonify({"error": "Refresh token required"}), 401

    try:
        access_token, expires_in = _tokens().refresh_access_token(refresh_token)
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to refresh access token")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"access_token": access_token, "expires_in": expires_in}), 200


@auth_bp.post("/logout")
def logout_route():
    """
    Delete the refresh token server-side and clear the cookie.

    Unknown or missing tokens still log out successfully (idempotent).
    """
    refresh_token = _refresh_token_from_request()

    try:
        if refresh_token:
            _tokens().revoke_refresh_token(refresh_token)
    except Exception:
        current_app.logger.exception("Failed to logout")
        return jsonify({"error": "Internal server error"}), 500

    response = jsonify({"message": "Logged out successfully"})
    response.delete_cookie(REFRESH_COOKIE)
    return response, 200


@auth_bp.get("/auth/me")
@require_auth
def me_route():
    """Get current user's profile with roles."""
    return jsonify({"user": g.current_user.to_dict()}), 200
