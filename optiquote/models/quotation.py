"""
Quotation model: a priced, negotiable request for products.

The quotation owns its line items and its staff conversation. Line items
freeze the product name, image and unit price at quote time; later catalog
edits never alter an existing quotation.
"""

from typing import Optional, List, Any, Iterable
from decimal import Decimal, ROUND_HALF_UP
from datetime import datetime
from enum import Enum
from sqlalchemy import (
    String,
    Text,
    ForeignKey,
    Integer,
    Numeric,
    DateTime,
    JSON,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from optiquote.core.exceptions import InvalidStatusTransitionError
from optiquote.models.base import BaseModel, as_utc, utcnow


CENT = Decimal("0.01")


def to_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


class QuotationStatus(str, Enum):
    """Quotation status enumeration."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CUSTOMER_APPROVED = "customer_approved"
    CONVERTED = "converted"
    EXPIRED = "expired"


# Statuses whose validity window still matters.
OPEN_STATUSES = (QuotationStatus.PENDING, QuotationStatus.APPROVED)


class Quotation(BaseModel):
    """
    Quotation aggregate.

    Attributes:
        quotation_number: QUO-YYYYMMDD-NNNN, assigned once at creation
        user_id: Owning customer, None for guest requests
        customer_name / customer_email / customer_phone: Contact snapshot
        subtotal, tax, discount, total: Money fields, total = subtotal + tax - discount
        status: Current workflow status
        valid_until: End of the validity window, set once at creation
        approved_* / rejected_*: Staff decision audit trail
        customer_*: Customer decision audit trail
        converted_at / converted_to_order_id: Conversion linkage, set at most once
        version: Incremented on every save, compared when optimistic locking is on
    """

    __tablename__ = "quotations"

    quotation_number: Mapped[str] = mapped_column(
        String(20),
        unique=True,
        index=True,
        nullable=False,
    )

    # Requester
    user_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    customer_name: Mapped[str] = mapped_column(String(100), nullable=False)
    customer_email: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Totals (calculated from items)
    subtotal: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )
    tax: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )
    discount: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )
    total: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )

    status: Mapped[QuotationStatus] = mapped_column(
        SQLEnum(QuotationStatus),
        default=QuotationStatus.PENDING,
        nullable=False,
        index=True,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    prescription_file: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    valid_until: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )

    # Staff audit trail
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_by: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    rejected_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_by: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    rejected_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    staff_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Customer audit trail
    customer_approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    customer_rejected_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    customer_rejection_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Conversion tracking
    converted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    converted_to_order_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("orders.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    items: Mapped[List["QuotationItem"]] = relationship(
        "QuotationItem",
        back_populates="quotation",
        cascade="all, delete-orphan",
        order_by="QuotationItem.position",
        lazy="selectin",
    )
    replies: Mapped[List["StaffReply"]] = relationship(
        "StaffReply",
        back_populates="quotation",
        cascade="all, delete-orphan",
        order_by="StaffReply.id",
        lazy="selectin",
    )

    # Status transitions

    def require_status(self, action: str, *allowed: QuotationStatus) -> None:
        """Raise InvalidStatusTransitionError unless status is one of ``allowed``."""
        if self.status not in allowed:
            raise InvalidStatusTransitionError(
                action,
                self.status.value,
                [s.value for s in allowed],
            )

    def approve(self, staff_id: int, staff_notes: str | None, at: datetime) -> None:
        self.require_status("approve", QuotationStatus.PENDING)
        self.status = QuotationStatus.APPROVED
        self.approved_at = at
        self.approved_by = staff_id
        if staff_notes:
            self.staff_notes = staff_notes

    def reject(self, staff_id: int, reason: str, staff_notes: str | None, at: datetime) -> None:
        self.require_status("reject", QuotationStatus.PENDING)
        self.status = QuotationStatus.REJECTED
        self.rejected_at = at
        self.rejected_by = staff_id
        self.rejected_reason = reason
        if staff_notes:
            self.staff_notes = staff_notes

    def customer_approve(self, at: datetime, legacy_flow: bool = False) -> None:
        """
        Record the customer's acceptance of staff-approved terms.

        The legacy flow stores ``converted`` here and reuses the same value
        once the order exists; the default flow uses ``customer_approved``.
        """
        self.require_status("customer-approve", QuotationStatus.APPROVED)
        self.status = QuotationStatus.CONVERTED if legacy_flow else QuotationStatus.CUSTOMER_APPROVED
        self.customer_approved_at = at

    def customer_reject(self, reason: str, at: datetime) -> None:
        self.require_status("customer-reject", QuotationStatus.APPROVED)
        self.status = QuotationStatus.REJECTED
        self.customer_rejected_at = at
        self.customer_rejection_reason = reason

    def link_order(self, order_id: int, at: datetime) -> None:
        """Mark as converted and record the order. Never re-links."""
        if self.converted_to_order_id is not None and self.converted_to_order_id != order_id:
            raise InvalidStatusTransitionError("convert", self.status.value, [])
        self.status = QuotationStatus.CONVERTED
        self.converted_to_order_id = order_id
        if self.converted_at is None:
            self.converted_at = at

    def expire(self) -> None:
        self.require_status("expire", *OPEN_STATUSES)
        self.status = QuotationStatus.EXPIRED

    def add_reply(self, staff_id: int, message: str, at: datetime) -> "StaffReply":
        reply = StaffReply(message=message, staff_id=staff_id, replied_at=at)
        self.replies.append(reply)
        return reply

    # Items and totals

    def replace_items(self, items: Iterable["QuotationItem"]) -> None:
        self.items = []
        for position, item in enumerate(items):
            item.position = position
            self.items.append(item)

    def calculate_totals(self, tax_rate: Decimal) -> None:
        """Recalculate subtotal, tax and total from items. Discount is kept."""
        self.subtotal = to_money(sum((item.total_price for item in self.items), Decimal("0")))
        self.tax = to_money(self.subtotal * tax_rate)
        discount = self.discount if self.discount is not None else Decimal("0.00")
        self.discount = to_money(discount)
        self.total = to_money(self.subtotal + self.tax - self.discount)

    # Validity

    def is_past_validity(self, now: datetime) -> bool:
        return now > as_utc(self.valid_until)

    def is_expired_at(self, now: datetime) -> bool:
        """Derived expiry: open and past its validity window."""
        return self.status in OPEN_STATUSES and self.is_past_validity(now)

    @property
    def is_expired(self) -> bool:
        return self.is_expired_at(utcnow())

    @property
    def effective_status(self) -> QuotationStatus:
        return QuotationStatus.EXPIRED if self.is_expired else self.status

    def __repr__(self) -> str:
        return f"<Quotation(id={self.id}, number='{self.quotation_number}', status='{self.status}')>"


class QuotationItem(BaseModel):
    """
    Quotation line item with a frozen product snapshot.

    Attributes:
        position: Order of the item within the quotation
        product_id: Catalog product reference
        product_name / product_image: Snapshot taken at quote time
        quantity: Number of units (>= 1)
        unit_price: Price per unit at quote time
        total_price: unit_price * quantity
        specifications: Free-form map (lensType, prescription, material, ...)
    """

    __tablename__ = "quotation_items"

    quotation_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("quotations.id", ondelete="CASCADE"),
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

    quotation: Mapped["Quotation"] = relationship(
        "Quotation",
        back_populates="items",
    )

    def __repr__(self) -> str:
        return f"<QuotationItem(id={self.id}, product='{self.product_name}', qty={self.quantity})>"


class StaffReply(BaseModel):
    """Append-only staff message on a quotation."""

    __tablename__ = "quotation_replies"

    quotation_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("quotations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    staff_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    replied_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    quotation: Mapped["Quotation"] = relationship(
        "Quotation",
        back_populates="replies",
    )
