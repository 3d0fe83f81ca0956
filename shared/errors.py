"""Domain exceptions shared by every storefront service.

Each carries the HTTP status it maps to; the handlers in ``main.py`` turn
them into ``{"success": false, "message": ...}`` bodies.
"""
from typing import Optional


class StorefrontError(Exception):
    """Base exception for all storefront errors."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(StorefrontError):
    """Raised when a request is missing fields or carries bad values."""

    status_code = 400


class InsufficientStockError(StorefrontError):
    """Raised when a product (or one of its sizes) cannot cover a quantity."""

    status_code = 400

    def __init__(
        self,
        product_id: str,
        product_name: str,
        requested: int,
        available: int,
        size: Optional[str] = None,
    ):
        self.product_id = product_id
        self.product_name = product_name
        self.requested = requested
        self.available = available
        self.size = size
        label = f"{product_name} in size {size}" if size else product_name
        super().__init__(
            f"Not enough stock for {label}. Available: {available}, Requested: {requested}"
        )


class AuthorizationError(StorefrontError):
    """Raised when the requester does not own the resource or lacks a role."""

    status_code = 403


class NotFoundError(StorefrontError):
    """Raised when an entity does not exist."""

    status_code = 404

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found")


class PersistenceError(StorefrontError):
    """Raised when the database rejects a write."""

    status_code = 500


class PaymentGatewayError(StorefrontError):
    """Raised when the payment processor is unreachable or refuses a call."""

    status_code = 502


class NotificationError(StorefrontError):
    """Raised by mail transports. Never reaches an HTTP response."""


class AuthenticationError(StorefrontError):
    """Raised when credentials are missing or wrong."""

    status_code = 401


class ConflictError(StorefrontError):
    """Raised when a unique value is already taken."""

    status_code = 409
