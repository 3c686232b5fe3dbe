"""
Quotation workflow.

Orchestrates the quotation lifecycle between customer and staff:

    create -> approve/reject (staff) -> customer approve/reject
           -> convert to order (staff)

Staff replies can be appended at any time. Role checks for staff-only
operations happen at the API boundary; ownership checks happen here.
Notifications are fire-and-forget: a failure is logged and never undoes
the transition that triggered it.
"""

import logging
from datetime import datetime
from typing import Callable, Sequence, Protocol, Any
from decimal import Decimal

from optiquote.core.exceptions import (
    ForbiddenError,
    InsufficientInventoryError,
    InvalidStatusTransitionError,
    QuotationExpiredError,
    ValidationError,
)
from optiquote.models.base import as_utc, utcnow
from optiquote.models.notification import NotificationType
from optiquote.models.order import Order
from optiquote.models.quotation import Quotation, QuotationItem, QuotationStatus, to_money
from optiquote.models.user import UserRole, STAFF_ROLES
from optiquote.services.catalog import CatalogService
from optiquote.services.order_conversion import OrderConversionService
from optiquote.services.policy import QuotationPolicy
from optiquote.services.quotation_store import QuotationStore


logger = logging.getLogger(__name__)


REASON_MIN_LENGTH = 5
REASON_MAX_LENGTH = 500
MESSAGE_MAX_LENGTH = 1000
NOTES_MAX_LENGTH = 1000


class Notifier(Protocol):
    async def notify(self, user_id: int, type: NotificationType, payload: dict[str, Any]) -> Any:
        ...


class ItemRequest(Protocol):
    product_id: int
    quantity: int
    specifications: dict[str, Any]


def is_staff_role(role: UserRole | str | None) -> bool:
    if role is None:
        return False
    return UserRole(role) in STAFF_ROLES


def _require_text(
    value: str | None,
    field: str,
    label: str,
    min_length: int = 1,
    max_length: int = MESSAGE_MAX_LENGTH,
) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(field, f"{label} is required")
    if len(text) < min_length:
        raise ValidationError(field, f"{label} must be at least {min_length} characters long")
    if len(text) > max_length:
        raise ValidationError(field, f"{label} cannot exceed {max_length} characters")
    return text


def _optional_text(value: str | None, field: str, label: str, max_length: int = NOTES_MAX_LENGTH) -> str | None:
    if value is None:
        return None
    if len(value) > max_length:
        raise ValidationError(field, f"{label} cannot exceed {max_length} characters")
    return value


class QuotationWorkflow:
    """Quotation lifecycle service."""

    def __init__(
        self,
        store: QuotationStore,
        catalog: CatalogService,
        notifier: Notifier,
        conversion: OrderConversionService,
        policy: QuotationPolicy | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.catalog = catalog
        self.notifier = notifier
        self.conversion = conversion
        self.policy = policy or QuotationPolicy()
        self.clock = clock

    # Creation and editing

    async def create(
        self,
        customer_name: str,
        customer_email: str,
        items: Sequence[ItemRequest],
        *,
        user_id: int | None = None,
        customer_phone: str | None = None,
        notes: str | None = None,
        prescription_file: str | None = None,
    ) -> Quotation:
        """
        Create a pending quotation priced from the current catalog.

        Stock is checked against the requested quantities at this instant
        only; nothing is reserved.

        Raises:
            ValidationError: No items, or malformed contact fields
            ProductNotFoundError: A requested product does not exist
            InsufficientInventoryError: A quantity exceeds current stock
        """
        customer_name = _require_text(customer_name, "customer_name", "Customer name", 2, 100)
        customer_email = _require_text(customer_email, "customer_email", "Customer email", 3, 255).lower()
        notes = _optional_text(notes, "notes", "Notes")
        if not items:
            raise ValidationError("items", "At least one item is required")

        logger.info(f"Creating new quotation for {customer_email}")

        now = self.clock()
        quotation_items = [await self._build_item(item, check_stock=True) for item in items]

        quotation = Quotation(
            quotation_number=await self.store.generate_number(now),
            user_id=user_id,
            customer_name=customer_name,
            customer_email=customer_email,
            customer_phone=customer_phone,
            discount=Decimal("0.00"),
            status=QuotationStatus.PENDING,
            notes=notes,
            prescription_file=prescription_file,
            valid_until=now + self.policy.validity,
            replies=[],
        )
        quotation.replace_items(quotation_items)
        quotation.calculate_totals(self.policy.tax_rate)

        await self.store.add(quotation)

        logger.info(f"Quotation {quotation.quotation_number} created (total={quotation.total})")
        return quotation

    async def update(
        self,
        quotation_id: int,
        *,
        items: Sequence[ItemRequest] | None = None,
        notes: str | None = None,
        staff_notes: str | None = None,
    ) -> Quotation:
        """
        Edit a pending quotation.

        Items replace the whole list; each product is resolved again and
        staff may set a negotiated ``unit_price`` per item. Tax follows the
        new subtotal, the discount is kept.
        """
        quotation = await self.store.get_or_raise(quotation_id)
        quotation.require_status("update", QuotationStatus.PENDING)
        version = quotation.version

        if items is not None:
            if not items:
                raise ValidationError("items", "At least one item is required")
            new_items = [
                await self._build_item(item, check_stock=False, allow_price_override=True)
                for item in items
            ]
            quotation.replace_items(new_items)
            quotation.calculate_totals(self.policy.tax_rate)

        if notes is not None:
            quotation.notes = _optional_text(notes, "notes", "Notes")
        if staff_notes is not None:
            quotation.staff_notes = _optional_text(staff_notes, "staff_notes", "Staff notes")

        await self.store.save(quotation, expected_version=version)

        logger.info(f"Quotation {quotation.quotation_number} updated")
        return quotation

    async def _build_item(
        self,
        data: ItemRequest,
        check_stock: bool,
        allow_price_override: bool = False,
    ) -> QuotationItem:
        if data.quantity < 1:
            raise ValidationError("quantity", "Quantity must be at least 1")

        product = await self.catalog.get(data.product_id)

        if check_stock and product.stock_quantity < data.quantity:
            raise InsufficientInventoryError(
                product.id,
                product.name,
                requested=data.quantity,
                available=product.stock_quantity,
            )

        unit_price = product.unit_price
        override = getattr(data, "unit_price", None) if allow_price_override else None
        if override is not None:
            unit_price = override

        return QuotationItem(
            product_id=product.id,
            product_name=product.name,
            product_image=product.image_url or "",
            quantity=data.quantity,
            unit_price=to_money(unit_price),
            total_price=to_money(Decimal(unit_price) * data.quantity),
            specifications=dict(data.specifications or {}),
        )

    # Reading

    async def get(
        self,
        quotation_id: int,
        requester_id: int,
        requester_role: UserRole | str,
    ) -> Quotation:
        """Get a quotation visible to its owner and to staff."""
        quotation = await self.store.get_or_raise(quotation_id)
        if not is_staff_role(requester_role) and quotation.user_id != requester_id:
            logger.warning(f"User {requester_id} denied access to quotation {quotation.quotation_number}")
            raise ForbiddenError()
        return quotation

    async def list_for_user(self, user_id: int, skip: int = 0, limit: int = 10) -> tuple[list[Quotation], int]:
        return await self.store.list(user_id=user_id, skip=skip, limit=limit)

    async def list_all(
        self,
        status: QuotationStatus | None = None,
        search: str | None = None,
        skip: int = 0,
        limit: int = 10,
    ) -> tuple[list[Quotation], int]:
        return await self.store.list(status=status, search=search, skip=skip, limit=limit)

    # Staff decision

    async def approve(self, quotation_id: int, staff_id: int, staff_notes: str | None = None) -> Quotation:
        """Approve a pending quotation and notify the customer."""
        quotation = await self.store.get_or_raise(quotation_id)
        version = quotation.version

        quotation.approve(staff_id, _optional_text(staff_notes, "staff_notes", "Staff notes"), self.clock())
        await self.store.save(quotation, expected_version=version)

        logger.info(f"Quotation {quotation.quotation_number} approved by staff {staff_id}")

        await self._notify(quotation.user_id, NotificationType.QUOTATION_APPROVED, {
            "quotation_number": quotation.quotation_number,
            "total": str(quotation.total),
        })
        return quotation

    async def reject(
        self,
        quotation_id: int,
        staff_id: int,
        reason: str,
        staff_notes: str | None = None,
    ) -> Quotation:
        """Reject a pending quotation with a mandatory reason."""
        reason = _require_text(reason, "reason", "Rejection reason", REASON_MIN_LENGTH, REASON_MAX_LENGTH)
        quotation = await self.store.get_or_raise(quotation_id)
        version = quotation.version

        quotation.reject(staff_id, reason, _optional_text(staff_notes, "staff_notes", "Staff notes"), self.clock())
        await self.store.save(quotation, expected_version=version)

        logger.info(f"Quotation {quotation.quotation_number} rejected by staff {staff_id}: {reason}")

        await self._notify(quotation.user_id, NotificationType.QUOTATION_REJECTED, {
            "quotation_number": quotation.quotation_number,
            "reason": reason,
        })
        return quotation

    # Customer decision

    async def customer_approve(self, quotation_id: int, user_id: int) -> Quotation:
        """
        Accept staff-approved terms.

        Raises:
            ForbiddenError: The user does not own the quotation
            InvalidStatusTransitionError: The quotation is not approved
            QuotationExpiredError: The validity window has passed; the
                stored status is left as it is
        """
        quotation = await self.store.get_or_raise(quotation_id)
        self._ensure_owner(quotation, user_id)
        quotation.require_status("customer-approve", QuotationStatus.APPROVED)

        now = self.clock()
        if quotation.is_past_validity(now):
            logger.warning(f"Quotation {quotation.quotation_number} expired, customer approval refused")
            raise QuotationExpiredError(quotation.quotation_number, as_utc(quotation.valid_until))

        version = quotation.version
        quotation.customer_approve(now, legacy_flow=self.policy.legacy_status_flow)
        await self.store.save(quotation, expected_version=version)

        logger.info(f"Quotation {quotation.quotation_number} approved by customer {user_id}")

        await self._notify(quotation.approved_by, NotificationType.CUSTOMER_APPROVAL, {
            "quotation_number": quotation.quotation_number,
            "customer_name": quotation.customer_name,
        })
        return quotation

    async def customer_reject(self, quotation_id: int, user_id: int, reason: str) -> Quotation:
        """Decline staff-approved terms with a mandatory reason."""
        reason = _require_text(reason, "reason", "Rejection reason", REASON_MIN_LENGTH, REASON_MAX_LENGTH)
        quotation = await self.store.get_or_raise(quotation_id)
        self._ensure_owner(quotation, user_id)
        version = quotation.version

        quotation.customer_reject(reason, self.clock())
        await self.store.save(quotation, expected_version=version)

        logger.info(f"Quotation {quotation.quotation_number} rejected by customer {user_id}: {reason}")

        await self._notify(quotation.approved_by, NotificationType.CUSTOMER_REJECTION, {
            "quotation_number": quotation.quotation_number,
            "customer_name": quotation.customer_name,
            "reason": reason,
        })
        return quotation

    # Conversation

    async def add_staff_reply(self, quotation_id: int, staff_id: int, message: str) -> Quotation:
        """Append a staff message. Allowed in every status."""
        message = _require_text(message, "message", "Message", 1, MESSAGE_MAX_LENGTH)
        quotation = await self.store.get_or_raise(quotation_id)
        version = quotation.version

        quotation.add_reply(staff_id, message, self.clock())
        await self.store.save(quotation, expected_version=version)

        logger.info(f"Staff {staff_id} replied to quotation {quotation.quotation_number}")

        await self._notify(quotation.user_id, NotificationType.STAFF_REPLY, {
            "quotation_number": quotation.quotation_number,
            "message": message,
        })
        return quotation

    # Removal and expiry

    async def delete(
        self,
        quotation_id: int,
        requester_id: int,
        requester_role: UserRole | str,
    ) -> None:
        """Delete a pending quotation; decided quotations are kept for audit."""
        quotation = await self.store.get_or_raise(quotation_id)
        is_owner = quotation.user_id is not None and quotation.user_id == requester_id
        if not (is_owner or is_staff_role(requester_role)):
            logger.warning(f"User {requester_id} denied deletion of quotation {quotation.quotation_number}")
            raise ForbiddenError()
        quotation.require_status("delete", QuotationStatus.PENDING)

        await self.store.delete(quotation)
        logger.info(f"Quotation {quotation.quotation_number} deleted by user {requester_id}")

    async def expire_overdue(self) -> list[Quotation]:
        """Mark every open quotation past its validity window as expired."""
        now = self.clock()
        overdue = await self.store.find_expired(now)
        for quotation in overdue:
            version = quotation.version
            quotation.expire()
            await self.store.save(quotation, expected_version=version)

        if overdue:
            logger.info(f"{len(overdue)} quotation(s) marked as expired")
        return overdue

    # Conversion

    async def convert_to_order(self, quotation_id: int, staff_id: int) -> tuple[Quotation, Order]:
        """
        Turn a customer-approved quotation into a confirmed order.

        A quotation whose earlier conversion stopped part-way is resumed;
        one whose order is complete cannot be converted again.
        """
        quotation = await self.store.get_or_raise(quotation_id)
        ready = self.policy.ready_for_conversion

        if quotation.converted_to_order_id is not None:
            existing = await self.conversion.find_order_for(quotation)
            if existing is None or existing.inventory_applied:
                raise InvalidStatusTransitionError(
                    "convert",
                    quotation.status.value,
                    [ready.value],
                    message=f"Quotation {quotation.quotation_number} has already been converted to an order",
                )
        else:
            quotation.require_status("convert", ready)

        order = await self.conversion.convert(quotation, staff_id, self.clock())

        logger.info(
            f"Quotation {quotation.quotation_number} converted to order {order.order_number} by staff {staff_id}"
        )

        await self._notify(quotation.user_id, NotificationType.QUOTATION_CONVERTED, {
            "quotation_number": quotation.quotation_number,
            "order_number": order.order_number,
        })
        return quotation, order

    # Helpers

    def _ensure_owner(self, quotation: Quotation, user_id: int) -> None:
        if quotation.user_id is None or quotation.user_id != user_id:
            logger.warning(f"User {user_id} is not the owner of quotation {quotation.quotation_number}")
            raise ForbiddenError()

    async def _notify(self, user_id: int | None, type: NotificationType, payload: dict[str, Any]) -> None:
        if user_id is None:
            logger.debug(f"No recipient for {type.value} notification, skipped")
            return
        try:
            await self.notifier.notify(user_id, type, payload)
        except Exception:
            logger.exception(f"Failed to create {type.value} notification for user {user_id}")
