# Overview: Service-layer operations for wishlists.

"""
Wishlist Service

A user saves products for later; each product appears at most once per user.
import_items bulk-loads a client-side wishlist: unknown product ids and ids
already saved are skipped, and everything valid is inserted in one commit.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..models import Product, WishlistItem
from .errors import (
    DuplicateWishlistItemError,
    ProductNotFoundError,
    ValidationError,
    WishlistItemNotFoundError,
)


def _product_exists(session, product_id: int) -> bool:
    return session.query(Product.id).filter(Product.id == product_id).first() is not None


def _user_item(session, user_id: int, item_id: int) -> WishlistItem:
    item = session.query(WishlistItem).filter_by(id=item_id, user_id=user_id).first()
    if item is None:
        raise WishlistItemNotFoundError("Wishlist item not found")
    return item


def list_items(session, user_id: int) -> list[WishlistItem]:
    return (
        session.query(WishlistItem)
        .filter_by(user_id=user_id)
        .order_by(WishlistItem.id.asc())
        .all()
    )


def add_item(session, user_id: int, product_id: int) -> WishlistItem:
    if not _product_exists(session, product_id):
        raise ProductNotFoundError("Product does not exist", details={"product_id": product_id})

    existing = session.query(WishlistItem).filter_by(user_id=user_id, product_id=product_id).first()
    if existing is not None:
        raise DuplicateWishlistItemError(
            "Product already in wishlist",
            details={"product_id": product_id},
        )

    item = WishlistItem(user_id=user_id, product_id=product_id)
    session.add(item)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise DuplicateWishlistItemError(
            "Product already in wishlist",
            details={"product_id": product_id},
        )
    return item


def update_item(session, user_id: int, item_id: int, product_id: int) -> WishlistItem:
    """Point an existing wishlist entry at a different product."""
    item = _user_item(session, user_id, item_id)

    if not _product_exists(session, product_id):
        raise ProductNotFoundError("Product does not exist", details={"product_id": product_id})

    if product_id != item.product_id:
        clash = session.query(WishlistItem).filter_by(user_id=user_id, product_id=product_id).first()
        if clash is not None:
            raise DuplicateWishlistItemError(
                "Product already in wishlist",
                details={"product_id": product_id},
            )

    item.product_id = product_id
    session.commit()
    session.expire(item, ["product"])
    return item


def remove_item(session, user_id: int, item_id: int) -> None:
    item = _user_item(session, user_id, item_id)
    session.delete(item)
    session.commit()


def clear(session, user_id: int) -> int:
    removed = session.query(WishlistItem).filter_by(user_id=user_id).delete(synchronize_session=False)
    session.commit()
    return removed


def import_items(session, user_id: int, product_ids) -> list[WishlistItem]:
    """
    Bulk add. Returns the rows actually created.

    Raises ValidationError if product_ids is not a list of integers.
    """
    if not isinstance(product_ids, (list, tuple)):
        raise ValidationError("Expected a list of items")
    for pid in product_ids:
        if not isinstance(pid, int) or isinstance(pid, bool):
            raise ValidationError("product_id must be an integer", details={"product_id": pid})

    already = {
        row.product_id
        for row in session.query(WishlistItem.product_id).filter_by(user_id=user_id)
    }

    created = []
    try:
        for pid in product_ids:
            if pid in already or not _product_exists(session, pid):
                continue
            item = WishlistItem(user_id=user_id, product_id=pid)
            session.add(item)
            created.append(item)
            already.add(pid)
        session.commit()
    except Exception:
        session.rollback()
        raise

    return created
