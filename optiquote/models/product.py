"""
Product model for the eyewear catalog.
"""

from typing import Optional
from decimal import Decimal
from sqlalchemy import String, Text, Integer, Numeric, Boolean
from sqlalchemy.orm import Mapped, mapped_column

from optiquote.models.base import BaseModel


class Product(BaseModel):
    """
    Catalog product (frames, lenses, accessories).

    Attributes:
        name: Product name
        description: Detailed description
        sku: Stock Keeping Unit
        image_url: Main product image
        unit_price: Current selling price
        stock_quantity: Units available; may go negative after an
            unguarded conversion decrement
        low_stock_threshold: Alert when stock falls below this level
        is_active: Whether the product is available for quoting
    """

    __tablename__ = "products"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    sku: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        index=True,
    )
    image_url: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
    )

    unit_price: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
    )

    stock_quantity: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    low_stock_threshold: Mapped[int] = mapped_column(
        Integer,
        default=5,
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    @property
    def is_low_stock(self) -> bool:
        """Check if product is low on stock."""
        return self.stock_quantity <= self.low_stock_threshold

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, name='{self.name}', price={self.unit_price})>"
