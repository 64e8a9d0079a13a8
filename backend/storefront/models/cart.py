from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Cart(db.Model):
    """One cart per user; created lazily on first access."""
    __tablename__ = "carts"
    __table_args__ = (
        db.UniqueConstraint("user_id", name="uq_carts_user"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    items = db.relationship(
        "CartItem",
        backref="cart",
        lazy="selectin",
        order_by="CartItem.id",
        cascade="all, delete-orphan",
    )

    def total_cents(self) -> int:
        return sum(item.line_total_cents() for item in self.items)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "items": [item.to_dict() for item in self.items],
            "item_count": sum(item.quantity for item in self.items),
            "total_cents": self.total_cents(),
            "created_at": to_utc_z(self.created_at),
        }


class CartItem(db.Model):
    """Cart line. quantity >= 1; one row per (cart, product)."""
    __tablename__ = "cart_items"
    __table_args__ = (
        db.UniqueConstraint("cart_id", "product_id", name="uq_cart_items_cart_product"),
        db.CheckConstraint("quantity >= 1", name="ck_cart_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cart_id = db.Column(db.Integer, db.ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", lazy="joined")

    def line_total_cents(self) -> int:
        if self.product is None:
            return 0
        return self.product.price_cents * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "cart_id": self.cart_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "product": self.product.to_dict() if self.product else None,
        }
