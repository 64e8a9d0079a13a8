# Overview: Flask API routes for order operations; parses input and returns JSON responses.

"""
Order Routes

- POST /auth/orders converts the caller's cart into a pending order (atomic)
- Customers can list, view and cancel their own orders
- Status overwrite requires admin or superadmin
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_role
from ..extensions import db
from ..services.errors import ServiceError
from ..services.order_service import OrderService
from ..services.role_service import ROLE_ADMIN, ROLE_SUPERADMIN
from ..validation import json_object


orders_bp = Blueprint("orders", __name__, url_prefix="/auth/orders")


@orders_bp.post("")
@require_auth
def place_order_route():
    """
    Place an order from the current cart.

    Request body: {"shipping_address": str, "payment_method": str}

    Returns 409 when the cart is empty or a line exceeds available stock; in
    that case nothing was written.
    """
    try:
        data = json_object(request.get_json(silent=True))
        order = OrderService(db.session).place_order(
            g.user_id,
            shipping_address=data.get("shipping_address"),
            payment_method=data.get("payment_method"),
        )
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to place order")
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info("Order %s placed by user %s", order.id, g.user_id)
    return jsonify({"message": "Order placed successfully", "data": order.to_dict()}), 201


@orders_bp.get("")
@require_auth
def list_orders_route():
    """
    Query params:
    - page: int (default 1)
    - limit: int (default 10, max 100)
    """
    page = request.args.get("page", 1, type=int)
    limit = request.args.get("limit", 10, type=int)

    orders = OrderService(db.session).list_orders(g.user_id, page=page, limit=limit)
    return jsonify({
        "items": [o.to_dict() for o in orders],
        "count": len(orders),
        "page": page,
        "limit": limit,
    }), 200


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    try:
        order = OrderService(db.session).get_order(g.user_id, order_id)
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify({"data": order.to_dict()}), 200


@orders_bp.put("/<int:order_id>/cancel")
@require_auth
def cancel_order_route(order_id: int):
    try:
        order = OrderService(db.session).cancel_order(g.user_id, order_id)
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to cancel order %s", order_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "Order cancelled successfully", "data": order.to_dict()}), 200


@orders_bp.put("/<int:order_id>/status")
@require_auth
@require_role(ROLE_ADMIN, ROLE_SUPERADMIN)
def update_order_status_route(order_id: int):
    """Request body: {"status": "pending|processing|shipped|delivered|cancelled"}"""
    try:
        data = json_object(request.get_json(silent=True))
        order = OrderService(db.session).update_status(
            order_id,
            data.get("status"),
            actor_role_slugs=g.role_slugs,
        )
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update order %s status", order_id)
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info("Order %s set to %s by user %s", order.id, order.status, g.user_id)
    return jsonify({"message": "Order status updated", "data": order.to_dict()}), 200
