# Overview: Error taxonomy shared by the service layer.

"""
Service Errors

Every service operation either returns its value or raises one of these.
status_code is the HTTP status a route should answer with; services never
build responses themselves.
"""


class ServiceError(Exception):
    """Base class for expected, caller-visible failures."""
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(ServiceError):
    """400-level input problem."""
    status_code = 400


class UnauthenticatedError(ServiceError):
    """Missing or invalid caller identity."""
    status_code = 401


class ForbiddenError(ServiceError):
    """Ownership or role check failed."""
    status_code = 403


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    """409-level business rule conflict."""
    status_code = 409


class InternalError(ServiceError):
    """Store or serialization failure."""
    status_code = 500


# --- Not found ---------------------------------------------------------------

class UserNotFoundError(NotFoundError):
    pass


class RoleNotFoundError(NotFoundError):
    def __init__(self, slug: str):
        super().__init__(f"Role '{slug}' not found", details={"slug": slug})
        self.slug = slug


class VendorNotFoundError(NotFoundError):
    pass


class ProductNotFoundError(NotFoundError):
    pass


class CategoryNotFoundError(NotFoundError):
    pass


class OrderNotFoundError(NotFoundError):
    pass


class CartItemNotFoundError(NotFoundError):
    pass


class WishlistItemNotFoundError(NotFoundError):
    pass


# --- Conflict ----------------------------------------------------------------

class EmptyCartError(ConflictError):
    def __init__(self):
        super().__init__("Cart is empty")


class InsufficientStockError(ConflictError):
    def __init__(self, product_name: str, *, product_id: int | None = None,
                 requested: int | None = None, available: int | None = None):
        super().__init__(
            f"Not enough stock for {product_name}",
            details={
                "product_id": product_id,
                "product_name": product_name,
                "requested_quantity": requested,
                "available": available,
            },
        )
        self.product_name = product_name


class InvalidTransitionError(ConflictError):
    pass


class NoOpTransitionError(ConflictError):
    pass


class DuplicateVendorApplicationError(ConflictError):
    pass


class DuplicateEmailError(ConflictError):
    pass


class DuplicateWishlistItemError(ConflictError):
    pass
