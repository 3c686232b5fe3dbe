"""
Product schemas for request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from pydantic import Field

from optiquote.schemas.base import BaseSchema, PaginatedResponse


class ProductBase(BaseSchema):
    """Base product schema with common fields."""

    name: str = Field(..., min_length=2, max_length=255)
    description: str | None = None
    sku: str | None = Field(None, max_length=100)
    image_url: str | None = Field(None, max_length=500)
    unit_price: Decimal = Field(..., ge=0, decimal_places=2)
    stock_quantity: int = Field(default=0, ge=0)
    low_stock_threshold: int = Field(default=5, ge=0)


class ProductCreate(ProductBase):
    """Schema for creating a new product."""
    pass


class ProductUpdate(BaseSchema):
    """Schema for updating a product."""

    name: str | None = Field(None, min_length=2, max_length=255)
    description: str | None = None
    sku: str | None = Field(None, max_length=100)
    image_url: str | None = Field(None, max_length=500)
    unit_price: Decimal | None = Field(None, ge=0, decimal_places=2)
    low_stock_threshold: int | None = Field(None, ge=0)
    is_active: bool | None = None


class ProductResponse(ProductBase):
    """Product response schema."""

    id: int
    stock_quantity: int
    is_active: bool
    is_low_stock: bool
    created_at: datetime
    updated_at: datetime


class ProductListResponse(PaginatedResponse):
    """Paginated product list response."""

    items: list[ProductResponse]


class StockUpdateRequest(BaseSchema):
    """Schema for adjusting product stock."""

    quantity: int = Field(..., description="Quantity to add (positive) or remove (negative)")
