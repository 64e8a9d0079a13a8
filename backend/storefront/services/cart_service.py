# Overview: Service-layer operations for the shopping cart.

"""
Cart Service

One cart per user, created on first access. Adding a product that is already
in the cart merges into the existing line (quantity adds up). Item-level
operations are scoped through the cart join so a user can never touch another
user's line.

Stock is not reserved here; it is checked and decremented at checkout.
"""

from __future__ import annotations

from ..models import Cart, CartItem, Product
from ..models.catalog import PRODUCT_STATUS_ACTIVE
from .errors import CartItemNotFoundError, ProductNotFoundError


def get_or_create_cart(session, user_id: int) -> Cart:
    cart = session.query(Cart).filter_by(user_id=user_id).first()
    if cart is None:
        cart = Cart(user_id=user_id)
        session.add(cart)
        session.commit()
    return cart


def _user_item(session, user_id: int, item_id: int) -> CartItem:
    item = (
        session.query(CartItem)
        .join(Cart, Cart.id == CartItem.cart_id)
        .filter(CartItem.id == item_id, Cart.user_id == user_id)
        .first()
    )
    if item is None:
        raise CartItemNotFoundError("Cart item not found")
    return item


def add_item(session, user_id: int, product_id: int, quantity: int) -> Cart:
    """
    Add quantity of product to the user's cart.

    Raises ProductNotFoundError for unknown or inactive products.
    """
    product = session.get(Product, product_id)
    if product is None or product.status != PRODUCT_STATUS_ACTIVE:
        raise ProductNotFoundError("Product not found", details={"product_id": product_id})

    cart = get_or_create_cart(session, user_id)

    existing = session.query(CartItem).filter_by(cart_id=cart.id, product_id=product_id).first()
    if existing is not None:
        existing.quantity += quantity
    else:
        session.add(CartItem(cart_id=cart.id, product_id=product_id, quantity=quantity))

    session.commit()
    session.expire(cart, ["items"])
    return cart


def update_item(session, user_id: int, item_id: int, quantity: int) -> Cart:
    item = _user_item(session, user_id, item_id)
    item.quantity = quantity
    session.commit()
    return get_or_create_cart(session, user_id)


def remove_item(session, user_id: int, item_id: int) -> Cart:
    item = _user_item(session, user_id, item_id)
    cart = item.cart
    session.delete(item)
    session.commit()
    session.expire(cart, ["items"])
    return cart


def clear_cart(session, user_id: int) -> int:
    """Delete every line of the user's cart. Returns number of lines removed."""
    cart = session.query(Cart).filter_by(user_id=user_id).first()
    if cart is None:
        return 0
    removed = session.query(CartItem).filter_by(cart_id=cart.id).delete(synchronize_session=False)
    session.commit()
    session.expire(cart, ["items"])
    return removed
