# Overview: Flask API routes for wishlist operations; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..extensions import db
from ..services import wishlist_service
from ..services.errors import ServiceError, ValidationError


wishlist_bp = Blueprint("wishlist", __name__, url_prefix="/auth/wishlist")


def _product_id(data) -> int:
    product_id = data.get("product_id") if isinstance(data, dict) else None
    if not isinstance(product_id, int) or isinstance(product_id, bool):
        raise ValidationError("product_id must be an integer")
    return product_id


@wishlist_bp.get("")
@require_auth
def list_wishlist_route():
    items = wishlist_service.list_items(db.session, g.user_id)
    return jsonify({"items": [i.to_dict() for i in items], "count": len(items)}), 200


@wishlist_bp.post("")
@require_auth
def add_wishlist_item_route():
    data = request.get_json(silent=True) or {}

    try:
        item = wishlist_service.add_item(db.session, g.user_id, _product_id(data))
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to add wishlist item")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "Added to wishlist", "data": item.to_dict()}), 201


@wishlist_bp.put("/<int:item_id>")
@require_auth
def update_wishlist_item_route(item_id: int):
    data = request.get_json(silent=True) or {}

    try:
        item = wishlist_service.update_item(db.session, g.user_id, item_id, _product_id(data))
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update wishlist item %s", item_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"data": item.to_dict()}), 200


@wishlist_bp.delete("/<int:item_id>")
@require_auth
def remove_wishlist_item_route(item_id: int):
    try:
        wishlist_service.remove_item(db.session, g.user_id, item_id)
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({"message": "Item removed from wishlist"}), 200


@wishlist_bp.delete("")
@require_auth
def clear_wishlist_route():
    removed = wishlist_service.clear(db.session, g.user_id)
    return jsonify({"message": "Wishlist cleared", "removed": removed}), 200


@wishlist_bp.post("/import")
@require_auth
def import_wishlist_route():
    """
    Import a client-side wishlist.

    Request body: [{"product_id": int}, ...]
    Unknown products and products already saved are skipped.
    """
    data = request.get_json(silent=True)

    try:
        if not isinstance(data, list):
            raise ValidationError("Expected a list of items")
        product_ids = [_product_id(entry) for entry in data]
        created = wishlist_service.import_items(db.session, g.user_id, product_ids)
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to import wishlist")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "Wishlist imported successfully", "count": len(created)}), 200
