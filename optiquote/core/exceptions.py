"""
Domain exceptions.

Every error raised by the services carries a stable ``code`` so the HTTP
boundary can map it to a status code without inspecting messages.
"""

from datetime import datetime
from typing import Iterable


class DomainError(Exception):
    """Base class for all workflow errors."""

    code = "DOMAIN_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class NotFoundError(DomainError):
    """A referenced entity does not exist."""

    code = "NOT_FOUND"


class QuotationNotFoundError(NotFoundError):
    code = "QUOTATION_NOT_FOUND"

    def __init__(self, quotation_id: int):
        super().__init__(f"Quotation {quotation_id} not found")
        self.quotation_id = quotation_id


class ProductNotFoundError(NotFoundError):
    code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: int):
        super().__init__(f"Product with ID {product_id} not found")
        self.product_id = product_id


class OrderNotFoundError(NotFoundError):
    code = "ORDER_NOT_FOUND"

    def __init__(self, order_id: int):
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class ForbiddenError(DomainError):
    """The actor does not own the resource or lacks the required role."""

    code = "FORBIDDEN"

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class InvalidStatusTransitionError(DomainError):
    """An operation was attempted outside its required source status."""

    code = "INVALID_STATUS_TRANSITION"

    def __init__(
        self,
        action: str,
        current: str,
        allowed: Iterable[str],
        message: str | None = None,
    ):
        self.action = action
        self.current = current
        self.allowed = list(allowed)
        allowed_str = ", ".join(self.allowed) or "none"
        super().__init__(
            message or f"Cannot {action} a quotation in status '{current}' (allowed: {allowed_str})"
        )


class ValidationError(DomainError):
    """A required field is missing or malformed."""

    code = "VALIDATION_ERROR"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)


class InsufficientInventoryError(DomainError):
    code = "INSUFFICIENT_INVENTORY"

    def __init__(self, product_id: int, product_name: str, requested: int, available: int):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient inventory for product {product_name} "
            f"(requested: {requested}, available: {available})"
        )


class QuotationExpiredError(DomainError):
    code = "QUOTATION_EXPIRED"

    def __init__(self, quotation_number: str, valid_until: datetime):
        self.valid_until = valid_until
        super().__init__(
            f"Quotation {quotation_number} has expired (valid until {valid_until.isoformat()})"
        )


class ConcurrentModificationError(DomainError):
    """A compare-and-swap save lost against a concurrent writer."""

    code = "CONCURRENT_MODIFICATION"

    def __init__(self, quotation_number: str, expected_version: int):
        self.expected_version = expected_version
        super().__init__(
            f"Quotation {quotation_number} was modified concurrently (expected version {expected_version})"
        )
