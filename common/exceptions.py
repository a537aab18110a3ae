"""
ChocoShop - Custom Exceptions
==============================
Business-level exceptions that can be caught and converted to HTTP responses.
"""

from fastapi import status


class ShopError(Exception):
    """Base exception for all business logic errors."""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "Something went wrong!"):
        self.message = message
        super().__init__(self.message)


class AuthenticationError(ShopError):
    """Raised when the caller has no valid identity."""
    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(ShopError):
    """Raised when user lacks permission."""
    status_code = status.HTTP_403_FORBIDDEN


class ValidationError(ShopError):
    """Malformed input, or an entity referenced on a write path is missing."""
    pass


class NotFoundError(ShopError):
    """Raised when a requested resource doesn't exist."""
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(ShopError):
    """Raised when the request conflicts with the current state of a resource."""
    status_code = status.HTTP_409_CONFLICT


class InsufficientStockError(ConflictError):
    """Raised when product stock is not enough."""
    def __init__(self, product_name: str = "", available: int = None):
        if product_name and available is not None:
            msg = f"Only {available} items of {product_name} available in stock"
        elif product_name:
            msg = f"Insufficient stock for {product_name}"
        else:
            msg = "Insufficient stock"
        super().__init__(msg)


class InvalidTransitionError(ConflictError):
    """Raised for order status changes the state machine does not allow."""
    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot change order status from {current} to {target}")


class DuplicatePaymentError(ConflictError):
    """Raised when an order already has a payment transaction."""
    def __init__(self):
        super().__init__("Payment already processed")


class AlreadyRefundedError(ConflictError):
    """Raised when a transaction is refunded a second time."""
    def __init__(self):
        super().__init__("This transaction has already been refunded")
