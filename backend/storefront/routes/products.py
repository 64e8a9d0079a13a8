# Overview: Flask API routes for products and categories; parses input and returns JSON responses.

# backend/storefront/routes/products.py
"""
Product catalog routes.

- Read operations are public and only show active products
- Write operations require the "admin" role and are owner-scoped
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_role
from ..extensions import db
from ..models import Product
from ..services import product_service
from ..services.errors import ServiceError
from ..services.role_service import ROLE_ADMIN
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "price_cents", "stock", "image_url", "category_id", "status"},
    required_on_create={"name", "price_cents", "stock", "category_id"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/v1/products")
categories_bp = Blueprint("categories", __name__, url_prefix="/categories")


@products_bp.get("")
def list_products():
    """
    List active products with optional pagination.

    Query params:
    - category_id: int (optional) - filter by category
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    category_id = request.args.get("category_id", type=int)
    page = request.args.get("page", type=int)
    per_page = request.args.get("per_page", type=int)

    result = product_service.list_products(
        db.session,
        category_id=category_id,
        page=page,
        per_page=per_page,
    )
    return jsonify(result), 200


@products_bp.get("/<int:product_id>")
def get_product(product_id: int):
    try:
        product = product_service.get_product(db.session, product_id)
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify({"data": product.to_dict()}), 200


@products_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_product_route():
    """
    Create a new product owned by the caller.

    Requires the admin role (granted on vendor approval).
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        created = product_service.create_product(db.session, owner_id=g.user_id, patch=patch)
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "Product created successfully", "data": created.to_dict()}), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_role(ROLE_ADMIN)
def update_product_route(product_id: int):
    """Update one of the caller's products (partial update)."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        updated = product_service.update_product(
            db.session,
            product_id=product_id,
            owner_id=g.user_id,
            patch=patch,
        )
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update product %s", product_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "Product updated successfully", "data": updated.to_dict()}), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role(ROLE_ADMIN)
def delete_product_route(product_id: int):
    try:
        product_service.delete_product(db.session, product_id=product_id, owner_id=g.user_id)
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete product %s", product_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "Product deleted successfully"}), 200


@categories_bp.get("")
def list_categories():
    categories = product_service.list_categories(db.session)
    return jsonify({"items": [c.to_dict() for c in categories], "count": len(categories)}), 200
