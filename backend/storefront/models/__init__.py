from .auth import User, Role, UserRole, RefreshToken
from .vendors import Vendor
from .catalog import Category, Product
from .cart import Cart, CartItem
from .orders import Order, OrderItem
from .wishlist import WishlistItem
from .audit import AuditLog

__all__ = [
    'User', 'Role', 'UserRole', 'RefreshToken',
    'Vendor',
    'Category', 'Product',
    'Cart', 'CartItem',
    'Order', 'OrderItem',
    'WishlistItem',
    'AuditLog',
]
