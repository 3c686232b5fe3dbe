"""
Pydantic schemas for request/response validation.
"""

from optiquote.schemas.product import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
)
from optiquote.schemas.order import (
    OrderResponse,
    OrderItemResponse,
)
from optiquote.schemas.quotation import (
    QuotationCreate,
    QuotationUpdate,
    QuotationResponse,
    QuotationItemCreate,
    QuotationItemUpdate,
    ConversionResponse,
)
from optiquote.schemas.notification import NotificationResponse

__all__ = [
    # Product
    "ProductCreate",
    "ProductUpdate",
    "ProductResponse",
    # Order
    "OrderResponse",
    "OrderItemResponse",
    # Quotation
    "QuotationCreate",
    "QuotationUpdate",
    "QuotationResponse",
    "QuotationItemCreate",
    "QuotationItemUpdate",
    "ConversionResponse",
    # Notification
    "NotificationResponse",
]
