"""
Order and OrderItem models.
Orders produced by quotation conversion are immutable snapshots.
"""

from typing import Optional, List, Any
from decimal import Decimal
from enum import Enum
from sqlalchemy import (
    String,
    Text,
    ForeignKey,
    Integer,
    Numeric,
    Boolean,
    JSON,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from optiquote.models.base import BaseModel


class OrderStatus(str, Enum):
    """Order status enumeration."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    """Payment method enumeration."""
    CASH = "cash"
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    QUOTATION = "quotation"  # Order originated from a converted quotation


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


# Placeholder for shipping fields a quotation never collects.
ADDRESS_PLACEHOLDER = "N/A"


class Order(BaseModel):
    """
    Order model.

    Attributes:
        order_number: ORD-YYYYMMDD-NNNN
        user_id: Owning customer (None for guest quotations)
        staff_id: Staff member who created the order
        source_quotation_id: Quotation this order was converted from;
            unique, so a retried conversion finds the existing order
        subtotal, tax, shipping, discount, total: Copied from the quotation
        status / payment_method / payment_status: Order state
        shipping_*: Best-effort address, placeholders until checkout
    """

    __tablename__ = "orders"

    order_number: Mapped[str] = mapped_column(
        String(20),
        unique=True,
        index=True,
        nullable=False,
    )
    user_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    staff_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    source_quotation_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        unique=True,
        nullable=True,
    )

    # Totals
    subtotal: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)
    tax: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)
    shipping: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )
    discount: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )
    total: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)

    status: Mapped[OrderStatus] = mapped_column(
        SQLEnum(OrderStatus),
        default=OrderStatus.PENDING,
        nullable=False,
    )
    payment_method: Mapped[PaymentMethod] = mapped_column(
        SQLEnum(PaymentMethod),
        nullable=False,
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(PaymentStatus),
        default=PaymentStatus.PENDING,
        nullable=False,
    )

    # Shipping address
    shipping_first_name: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    shipping_last_name: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    shipping_street: Mapped[str] = mapped_column(String(255), default=ADDRESS_PLACEHOLDER, nullable=False)
    shipping_city: Mapped[str] = mapped_column(String(100), default=ADDRESS_PLACEHOLDER, nullable=False)
    shipping_state: Mapped[str] = mapped_column(String(100), default=ADDRESS_PLACEHOLDER, nullable=False)
    shipping_zip_code: Mapped[str] = mapped_column(String(20), default=ADDRESS_PLACEHOLDER, nullable=False)
    shipping_country: Mapped[str] = mapped_column(String(100), default=ADDRESS_PLACEHOLDER, nullable=False)
    shipping_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    prescription_file: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    is_walk_in: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    items: Mapped[List["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
        lazy="selectin",
    )

    @property
    def inventory_applied(self) -> bool:
        """True once every line item's stock decrement has been recorded."""
        return all(item.stock_applied for item in self.items)

    def __repr__(self) -> str:
        return f"<Order(id={self.id}, number='{self.order_number}', total={self.total})>"


class OrderItem(BaseModel):
    """
    Order line item, same shape as a quotation item.

    ``stock_applied`` records that the catalog decrement for this line has
    been written, so a resumed conversion never decrements twice.
    """

    __tablename__ = "order_items"

    order_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    product_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("products.id", ondelete="SET NULL"),
        nullable=True,
    )
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    product_image: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)
    specifications: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    stock_applied: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    order: Mapped["Order"] = relationship(
        "Order",
        back_populates="items",
    )
