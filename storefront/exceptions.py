# storefront/exceptions.py
from typing import Optional


class StorefrontError(Exception):
    """Base for errors that map onto an HTTP status and a client-facing message."""

    status_code = 500
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.message
        super().__init__(self.message)


# Malformed or missing input, rejected before any side effect
class ValidationError(StorefrontError):
    status_code = 400
    message = "Invalid request"


# Missing, invalid or expired credential; clients may refresh and retry once
class AuthenticationError(StorefrontError):
    status_code = 401
    message = "Invalid or expired token"


# Wrong role or disabled account; terminal
class AuthorizationError(StorefrontError):
    status_code = 403
    message = "Forbidden"


class NotFoundError(StorefrontError):
    status_code = 404
    message = "Not found"


class ConflictError(StorefrontError):
    status_code = 409
    message = "Conflict"


class CheckoutError(StorefrontError):
    status_code = 400
    message = "Checkout failed"


class EmptyCartError(CheckoutError):
    message = "Cart is empty"


class InsufficientStockError(CheckoutError):
    def __init__(self, product_id: int, product_name: str):
        self.product_id = product_id
        self.product_name = product_name
        super().__init__(f"Insufficient stock for {product_name}")


class IllegalTransitionError(StorefrontError):
    status_code = 400

    def __init__(self, current: str, new: str):
        self.current = current
        self.new = new
        super().__init__(f"Cannot change status from {current} to {new}")


# Unexpected database failure; details are logged, never returned
class PersistenceError(StorefrontError):
    status_code = 500
    message = "Internal server error"
