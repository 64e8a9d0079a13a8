# Overview: Service-layer operations for orders; encapsulates the checkout transaction.

"""
Order Placement

WHY: Checkout touches three tables (products, orders/order_items,
cart_items) and must be all-or-nothing: no partial stock decrement, no
orphan order, no emptied cart without an order.

INVARIANTS:
- stock never goes negative. Each product row is read under a row lock and
  decremented with a guarded UPDATE (stock >= quantity); an affected-row count
  other than 1 aborts the whole checkout. The guard alone is enough on
  databases without SELECT ... FOR UPDATE (SQLite).
- total_amount_cents = SUM(unit_price_cents * quantity), computed once here.
- unit_price_cents is the product price at checkout time and is never
  revisited when the product price changes later.
- Stock shortfall is reported for the FIRST offending cart line only.

POLICY (open question, see DESIGN.md): cancelling an order does NOT restock.
"""

from __future__ import annotations

from ..models import Cart, CartItem, Order, OrderItem, Product
from ..models.orders import ORDER_STATUSES, ORDER_STATUS_PENDING, ORDER_STATUS_CANCELLED
from .concurrency import lock_for_update, run_with_retry
from .errors import (
    EmptyCartError,
    ForbiddenError,
    InsufficientStockError,
    InvalidTransitionError,
    OrderNotFoundError,
    ProductNotFoundError,
    ValidationError,
)
from ..validation import clean_string
from .role_service import ORDER_ADMIN_ROLES, has_any_role


MAX_PAGE_SIZE = 100


class OrderService:
    def __init__(self, session):
        self.session = session

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    def place_order(self, user_id: int, *, shipping_address: str, payment_method: str) -> Order:
        """
        Convert the user's cart into a pending order.

        Raises:
            ValidationError: blank or non-text shipping address or payment method
            EmptyCartError: no cart, or a cart with no items
            ProductNotFoundError: a cart line points at a deleted product
            InsufficientStockError: first line whose quantity exceeds stock
        """
        shipping_address = clean_string(shipping_address, field="shipping_address")
        payment_method = clean_string(payment_method, field="payment_method")
        if not shipping_address:
            raise ValidationError("shipping_address is required")
        if not payment_method:
            raise ValidationError("payment_method is required")

        def _op():
            try:
                order = self._place_order_locked(user_id, shipping_address, payment_method)
                self.session.commit()
                return order
            except Exception:
                self.session.rollback()
                raise

        return run_with_retry(self.session, _op)

    def _place_order_locked(self, user_id: int, shipping_address: str, payment_method: str) -> Order:
        cart = self.session.query(Cart).filter_by(user_id=user_id).first()
        if cart is None:
            raise EmptyCartError()

        cart_items = (
            self.session.query(CartItem)
            .filter_by(cart_id=cart.id)
            .order_by(CartItem.id.asc())
            .all()
        )
        if not cart_items:
            raise EmptyCartError()

        order = Order(
            user_id=user_id,
            status=ORDER_STATUS_PENDING,
            shipping_address=shipping_address,
            payment_method=payment_method,
        )

        total_cents = 0
        for item in cart_items:
            product = lock_for_update(
                self.session.query(Product).filter_by(id=item.product_id)
            ).first()
            if product is None:
                raise ProductNotFoundError(
                    f"Product {item.product_id} not found",
                    details={"product_id": item.product_id},
                )

            if product.stock < item.quantity:
                raise InsufficientStockError(
                    product.name,
                    product_id=product.id,
                    requested=item.quantity,
                    available=product.stock,
                )

            unit_price_cents = product.price_cents
            total_cents += unit_price_cents * item.quantity

            self._decrement_stock(product, item.quantity)

            order.items.append(OrderItem(
                product_id=product.id,
                quantity=item.quantity,
                unit_price_cents=unit_price_cents,
            ))

        order.total_amount_cents = total_cents
        self.session.add(order)

        self.session.query(CartItem).filter_by(cart_id=cart.id).delete(synchronize_session=False)
        self.session.flush()
        self.session.expire(cart, ["items"])

        return order

    def _decrement_stock(self, product: Product, quantity: int) -> None:
        """Guarded decrement: UPDATE ... SET stock = stock - q WHERE id = ? AND stock >= q."""
        product_id = product.id
        product_name = product.name
        updated = (
            self.session.query(Product)
            .filter(Product.id == product_id, Product.stock >= quantity)
            .update({Product.stock: Product.stock - quantity}, synchronize_session=False)
        )
        self.session.expire(product, ["stock"])
        if updated != 1:
            raise InsufficientStockError(product_name, product_id=product_id, requested=quantity)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def cancel_order(self, user_id: int, order_id: int) -> Order:
        """
        Cancel the user's own order while it is still pending.

        Stock is NOT returned to the products (see module docstring).
        """
        order = self.get_order(user_id, order_id)

        if order.status != ORDER_STATUS_PENDING:
            raise InvalidTransitionError(
                "Only pending orders can be cancelled",
                details={"order_id": order.id, "status": order.status},
            )

        order.status = ORDER_STATUS_CANCELLED
        self.session.commit()
        return order

    def update_status(self, order_id: int, status: str, *, actor_role_slugs) -> Order:
        """Administrative status overwrite. No transition table beyond the vocabulary."""
        if not has_any_role(actor_role_slugs or (), ORDER_ADMIN_ROLES):
            raise ForbiddenError("Access denied")

        if status not in ORDER_STATUSES:
            raise ValidationError(
                f"Invalid status: {status}",
                details={"allowed": list(ORDER_STATUSES)},
            )

        order = self.session.get(Order, order_id)
        if order is None:
            raise OrderNotFoundError(f"Order {order_id} not found")

        order.status = status
        self.session.commit()
        return order

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, user_id: int, order_id: int) -> Order:
        order = self.session.query(Order).filter_by(id=order_id, user_id=user_id).first()
        if order is None:
            raise OrderNotFoundError(f"Order {order_id} not found")
        return order

    def list_orders(self, user_id: int, *, page: int = 1, limit: int = 10) -> list[Order]:
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        return (
            self.session.query(Order)
            .filter_by(user_id=user_id)
            .order_by(Order.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
