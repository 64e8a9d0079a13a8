# Overview: Super-admin user administration.

"""
User Administration

delete_user is a hard cascade: the user's vendor record, products (and the
cart/wishlist lines pointing at them), cart, wishlist, refresh tokens, role links and
orders are removed together with the user in one commit.
"""

from __future__ import annotations

from ..models import Cart, CartItem, Order, OrderItem, Product, RefreshToken, User, Vendor, WishlistItem
from .errors import ForbiddenError, UserNotFoundError


def list_users(session) -> list[User]:
    return session.query(User).order_by(User.id.asc()).all()


def delete_user(session, user_id: int, *, actor_id: int | None = None) -> None:
    user = session.get(User, user_id)
    if user is None:
        raise UserNotFoundError("User not found", details={"user_id": user_id})
    if actor_id is not None and actor_id == user_id:
        raise ForbiddenError("You cannot delete your own account")

    try:
        product_ids = [pid for (pid,) in session.query(Product.id).filter_by(user_id=user_id)]
        if product_ids:
            session.query(CartItem).filter(CartItem.product_id.in_(product_ids)).delete(synchronize_session=False)
            session.query(WishlistItem).filter(WishlistItem.product_id.in_(product_ids)).delete(synchronize_session=False)
            session.query(Product).filter(Product.id.in_(product_ids)).delete(synchronize_session=False)

        cart_ids = [cid for (cid,) in session.query(Cart.id).filter_by(user_id=user_id)]
        if cart_ids:
            session.query(CartItem).filter(CartItem.cart_id.in_(cart_ids)).delete(synchronize_session=False)
            session.query(Cart).filter(Cart.id.in_(cart_ids)).delete(synchronize_session=False)

        order_ids = [oid for (oid,) in session.query(Order.id).filter_by(user_id=user_id)]
        if order_ids:
            session.query(OrderItem).filter(OrderItem.order_id.in_(order_ids)).delete(synchronize_session=False)
            session.query(Order).filter(Order.id.in_(order_ids)).delete(synchronize_session=False)

        session.query(WishlistItem).filter_by(user_id=user_id).delete(synchronize_session=False)
        session.query(RefreshToken).filter_by(user_id=user_id).delete(synchronize_session=False)
        # Vendors this user approved keep their status; only the approver link goes
        session.query(Vendor).filter_by(approved_by_user_id=user_id).update(
            {Vendor.approved_by_user_id: None}, synchronize_session=False
        )
        session.query(Vendor).filter_by(user_id=user_id).delete(synchronize_session=False)

        # Reload relationships so the flush sees the bulk deletes above
        session.expire(user)
        user.roles = []
        session.delete(user)
        session.commit()
    except Exception:
        session.rollback()
        raise
