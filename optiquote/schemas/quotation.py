"""
Quotation schemas for request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any
from pydantic import EmailStr, Field

from optiquote.models.quotation import QuotationStatus
from optiquote.schemas.base import BaseSchema, PaginatedResponse
from optiquote.schemas.order import OrderResponse


PHONE_PATTERN = r"^\+?[\d\s\-\(\)]+$"


class QuotationItemCreate(BaseSchema):
    """Requested line item: the price always comes from the catalog."""

    product_id: int
    quantity: int = Field(..., ge=1)
    specifications: dict[str, Any] = Field(
        default_factory=dict,
        description="Free-form options such as lensType, prescription, material, color, size",
    )


class QuotationItemUpdate(QuotationItemCreate):
    """Staff-edited line item, optionally with a negotiated unit price."""

    unit_price: Decimal | None = Field(None, ge=0, decimal_places=2)


class QuotationCreate(BaseSchema):
    """Schema for requesting a quotation."""

    customer_name: str = Field(..., min_length=2, max_length=100)
    customer_email: EmailStr
    customer_phone: str | None = Field(None, max_length=50, pattern=PHONE_PATTERN)
    items: list[QuotationItemCreate] = Field(..., min_length=1)
    notes: str | None = Field(None, max_length=1000)
    prescription_file: str | None = Field(None, max_length=500)


class QuotationUpdate(BaseSchema):
    """Schema for staff edits of a pending quotation."""

    items: list[QuotationItemUpdate] | None = Field(None, min_length=1)
    notes: str | None = Field(None, max_length=1000)
    staff_notes: str | None = Field(None, max_length=1000)


class ApproveRequest(BaseSchema):
    staff_notes: str | None = Field(None, max_length=1000)


class RejectRequest(BaseSchema):
    reason: str = Field(..., min_length=5, max_length=500)
    staff_notes: str | None = Field(None, max_length=1000)


class CustomerRejectRequest(BaseSchema):
    reason: str = Field(..., min_length=5, max_length=500)


class StaffReplyRequest(BaseSchema):
    message: str = Field(..., min_length=1, max_length=1000)


class QuotationItemResponse(BaseSchema):
    """Quotation line item response schema."""

    id: int
    product_id: int | None
    product_name: str
    product_image: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    specifications: dict[str, Any]


class StaffReplyResponse(BaseSchema):
    id: int
    message: str
    staff_id: int | None
    replied_at: datetime


class QuotationResponse(BaseSchema):
    """Quotation response schema."""

    id: int
    quotation_number: str
    user_id: int | None
    customer_name: str
    customer_email: str
    customer_phone: str | None
    items: list[QuotationItemResponse]
    subtotal: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal
    status: QuotationStatus
    effective_status: QuotationStatus
    is_expired: bool
    notes: str | None
    prescription_file: str | None
    valid_until: datetime
    approved_at: datetime | None
    approved_by: int | None
    rejected_at: datetime | None
    rejected_by: int | None
    rejected_reason: str | None
    staff_notes: str | None
    customer_approved_at: datetime | None
    customer_rejected_at: datetime | None
    customer_rejection_reason: str | None
    replies: list[StaffReplyResponse]
    converted_at: datetime | None
    converted_to_order_id: int | None
    version: int
    created_at: datetime
    updated_at: datetime


class QuotationListResponse(PaginatedResponse):
    """Paginated quotation list response."""

    items: list[QuotationResponse]


class ConversionResponse(BaseSchema):
    """Result of converting a quotation into an order."""

    quotation: QuotationResponse
    order: OrderResponse


class ExpireOverdueResponse(BaseSchema):
    expired: int
    quotation_numbers: list[str]
