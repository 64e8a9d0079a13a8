# backend/storefront/services/product_service.py
"""
Products & Categories Service

VISIBILITY: the public catalog only shows status="active" products.
OWNERSHIP: a product belongs to the user who created it; only that user may
update or delete it. Deletion is a hard delete.
VENDOR LINK: when the owner has an active vendor account the product is
attached to it at creation time.
"""
from __future__ import annotations

import re

from ..models import CartItem, Category, Product, Vendor, WishlistItem
from ..models.catalog import PRODUCT_STATUS_ACTIVE
from ..models.vendors import VENDOR_STATUS_ACTIVE
from .errors import CategoryNotFoundError, ForbiddenError, ProductNotFoundError

PRODUCT_MUTABLE_FIELDS = {"name", "description", "price_cents", "stock", "image_url", "category_id", "status"}

DEFAULT_CATEGORIES = (
    ("Mobile", "Smartphones and mobile devices"),
    ("Laptop", "All types of laptops"),
    ("Accessories", "Phone and laptop accessories"),
    ("Home Appliances", "Appliances for home use"),
)


def slugify(name: str) -> str:
    return re.sub(r"\s+", "-", name.strip().lower())


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _require_category(session, category_id) -> Category:
    category = session.get(Category, category_id)
    if category is None:
        raise CategoryNotFoundError(
            "Invalid category ID",
            details={"category_id": category_id},
        )
    return category


def list_products(
    session,
    *,
    category_id: int | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Public catalog listing with optional pagination.

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.
    """
    base_query = session.query(Product).filter(Product.status == PRODUCT_STATUS_ACTIVE)
    if category_id is not None:
        base_query = base_query.filter(Product.category_id == category_id)
    base_query = base_query.order_by(Product.id.asc())

    if page is None:
        products = base_query.all()
        return {
            "items": [p.to_dict() for p in products],
            "count": len(products),
        }

    per_page = min(per_page or 20, 100)  # Default 20, max 100
    page = max(page, 1)

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    products = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def get_product(session, product_id: int) -> Product:
    """Public lookup; inactive products read as missing."""
    product = session.get(Product, product_id)
    if product is None or product.status != PRODUCT_STATUS_ACTIVE:
        raise ProductNotFoundError("Product not found")
    return product


def create_product(session, *, owner_id: int, patch: dict) -> Product:
    """
    Create product using a validated patch dict.

    Raises:
        CategoryNotFoundError: category_id does not exist
    """
    _require_category(session, patch.get("category_id"))

    vendor = session.query(Vendor).filter_by(
        user_id=owner_id,
        status=VENDOR_STATUS_ACTIVE,
    ).first()

    p = Product(user_id=owner_id, vendor_id=vendor.id if vendor else None)
    apply_product_patch(p, patch)
    if p.status is None:
        p.status = PRODUCT_STATUS_ACTIVE

    session.add(p)
    session.commit()
    return p


def _owned_product(session, product_id: int, owner_id: int, verb: str) -> Product:
    product = session.get(Product, product_id)
    if product is None:
        raise ProductNotFoundError("Product not found")
    if product.user_id != owner_id:
        raise ForbiddenError(f"You can only {verb} your own products")
    return product


def update_product(session, *, product_id: int, owner_id: int, patch: dict) -> Product:
    product = _owned_product(session, product_id, owner_id, "update")

    if patch.get("category_id") is not None:
        _require_category(session, patch["category_id"])

    apply_product_patch(product, patch)
    session.commit()
    return product


def delete_product(session, *, product_id: int, owner_id: int) -> None:
    """Hard delete. Cart lines and wishlist entries for the product go with it."""
    product = _owned_product(session, product_id, owner_id, "delete")
    session.query(CartItem).filter_by(product_id=product.id).delete(synchronize_session=False)
    session.query(WishlistItem).filter_by(product_id=product.id).delete(synchronize_session=False)
    session.delete(product)
    session.commit()


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

def list_categories(session) -> list[Category]:
    return session.query(Category).order_by(Category.name.asc()).all()


def seed_default_categories(session) -> list[str]:
    """Insert the default categories that are missing. Returns names created."""
    created = []
    for name, description in DEFAULT_CATEGORIES:
        if session.query(Category).filter_by(name=name).first() is not None:
            continue
        session.add(Category(name=name, slug=slugify(name), description=description))
        created.append(name)
    session.commit()
    return created
