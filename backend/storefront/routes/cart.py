# Overview: Flask API routes for cart operations; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..extensions import db
from ..services import cart_service
from ..services.errors import ServiceError, ValidationError
from ..validation import json_object, parse_quantity


cart_bp = Blueprint("cart", __name__, url_prefix="/auth/cart")


@cart_bp.get("")
@require_auth
def get_cart_route():
    cart = cart_service.get_or_create_cart(db.session, g.user_id)
    return jsonify({"data": cart.to_dict()}), 200


@cart_bp.post("")
@require_auth
def add_to_cart_route():
    """
    Add a product to the cart.

    Request body: {"product_id": int, "quantity": int >= 1}
    Adding a product already in the cart increases that line's quantity.
    """
    try:
        data = json_object(request.get_json(silent=True))
        product_id = data.get("product_id")
        if not isinstance(product_id, int) or isinstance(product_id, bool):
            raise ValidationError("product_id must be an integer")
        quantity = parse_quantity(data.get("quantity"))
        cart = cart_service.add_item(db.session, g.user_id, product_id, quantity)
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to add item to cart")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"data": cart.to_dict()}), 200


@cart_bp.put("/<int:item_id>")
@require_auth
def update_cart_item_route(item_id: int):
    try:
        data = json_object(request.get_json(silent=True))
        quantity = parse_quantity(data.get("quantity"))
        cart = cart_service.update_item(db.session, g.user_id, item_id, quantity)
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update cart item %s", item_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"data": cart.to_dict()}), 200


@cart_bp.delete("/<int:item_id>")
@require_auth
def remove_cart_item_route(item_id: int):
    try:
        cart = cart_service.remove_item(db.session, g.user_id, item_id)
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to remove cart item %s", item_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"data": cart.to_dict()}), 200


@cart_bp.delete("")
@require_auth
def clear_cart_route():
    removed = cart_service.clear_cart(db.session, g.user_id)
    return jsonify({"message": "Cart cleared successfully", "removed": removed}), 200
