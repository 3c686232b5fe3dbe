"""
Order schemas.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from optiquote.models.order import OrderStatus, PaymentMethod, PaymentStatus
from optiquote.schemas.base import BaseSchema


class OrderItemResponse(BaseSchema):
    id: int
    product_id: int | None
    product_name: str
    product_image: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    specifications: dict[str, Any]
    stock_applied: bool


class OrderResponse(BaseSchema):
    """Order response schema."""

    id: int
    order_number: str
    user_id: int | None
    staff_id: int | None
    source_quotation_id: int | None
    items: list[OrderItemResponse]
    subtotal: Decimal
    tax: Decimal
    shipping: Decimal
    discount: Decimal
    total: Decimal
    status: OrderStatus
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    shipping_first_name: str
    shipping_last_name: str
    shipping_street: str
    shipping_city: str
    shipping_state: str
    shipping_zip_code: str
    shipping_country: str
    shipping_phone: str | None
    notes: str | None
    prescription_file: str | None
    is_walk_in: bool
    created_at: datetime
    updated_at: datetime
