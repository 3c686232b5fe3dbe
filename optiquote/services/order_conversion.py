"""
Order conversion.

Turns a customer-approved quotation into an order and consumes inventory.
The conversion touches three kinds of records (order, quotation, products)
as ordered steps:

    1. create the order (reused if one already exists for the quotation)
    2. link the quotation to the order
    3. decrement stock, one order item at a time

Without ``atomic_conversion`` each step is committed on its own, so a
failure part-way leaves the earlier steps applied and nothing is rolled
back. Calling ``convert`` again resumes: the order is found through its
``source_quotation_id`` and items already flagged ``stock_applied`` are
skipped. With ``atomic_conversion`` the steps are only flushed and the
request transaction commits or rolls back all of them together.

Stock is not re-checked here. The only inventory check happened when the
quotation was created, so concurrent conversions or intervening sales can
drive stock negative unless ``allow_negative_stock_on_conversion`` is off.
"""

import logging
from datetime import datetime
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from optiquote.core.references import generate_order_number
from optiquote.models.order import (
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ADDRESS_PLACEHOLDER,
)
from optiquote.models.quotation import Quotation
from optiquote.services.catalog import CatalogService
from optiquote.services.policy import QuotationPolicy
from optiquote.services.quotation_store import QuotationStore


logger = logging.getLogger(__name__)


MAX_NUMBER_ATTEMPTS = 10


def split_customer_name(name: str) -> tuple[str, str]:
    """First token as first name, the rest as last name."""
    parts = name.split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


class OrderConversionService:
    """Runs the conversion steps for a quotation."""

    def __init__(
        self,
        db: AsyncSession,
        store: QuotationStore,
        catalog: CatalogService,
        policy: QuotationPolicy,
    ):
        self.db = db
        self.store = store
        self.catalog = catalog
        self.policy = policy

    @property
    def _durable_steps(self) -> bool:
        return not self.policy.atomic_conversion

    async def find_order_for(self, quotation: Quotation) -> Order | None:
        result = await self.db.execute(
            select(Order)
            .options(selectinload(Order.items))
            .where(Order.source_quotation_id == quotation.id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def convert(self, quotation: Quotation, staff_id: int, now: datetime) -> Order:
        """
        Run (or resume) every conversion step.

        Args:
            quotation: Quotation already checked for the ready status
            staff_id: Staff member finalizing the order
            now: Conversion timestamp

        Returns:
            The order, with every item's stock applied
        """
        order = await self._create_order(quotation, staff_id, now)
        await self._link_quotation(quotation, order, now)
        await self._apply_inventory(order)
        return order

    async def _create_order(self, quotation: Quotation, staff_id: int, now: datetime) -> Order:
        order = await self.find_order_for(quotation)
        if order is not None:
            logger.info(
                f"Resuming conversion of {quotation.quotation_number} with existing order {order.order_number}"
            )
            return order

        first_name, last_name = split_customer_name(quotation.customer_name)
        order = Order(
            order_number=await self._generate_number(now),
            user_id=quotation.user_id,
            staff_id=staff_id,
            source_quotation_id=quotation.id,
            subtotal=quotation.subtotal,
            tax=quotation.tax,
            shipping=Decimal("0.00"),
            discount=quotation.discount,
            total=quotation.total,
            status=OrderStatus.CONFIRMED,
            payment_method=PaymentMethod.QUOTATION,
            payment_status=PaymentStatus.PENDING,
            shipping_first_name=first_name,
            shipping_last_name=last_name,
            shipping_street=ADDRESS_PLACEHOLDER,
            shipping_city=ADDRESS_PLACEHOLDER,
            shipping_state=ADDRESS_PLACEHOLDER,
            shipping_zip_code=ADDRESS_PLACEHOLDER,
            shipping_country=ADDRESS_PLACEHOLDER,
            shipping_phone=quotation.customer_phone,
            notes=quotation.notes,
            prescription_file=quotation.prescription_file,
            is_walk_in=False,
            items=[
                OrderItem(
                    position=item.position,
                    product_id=item.product_id,
                    product_name=item.product_name,
                    product_image=item.product_image,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    total_price=item.total_price,
                    specifications=dict(item.specifications or {}),
                    stock_applied=False,
                )
                for item in quotation.items
            ],
        )

        self.db.add(order)
        await self.store.checkpoint(self._durable_steps)

        logger.info(f"Order {order.order_number} created from quotation {quotation.quotation_number}")
        return order

    async def _link_quotation(self, quotation: Quotation, order: Order, now: datetime) -> None:
        if quotation.converted_to_order_id == order.id:
            return

        version = quotation.version
        quotation.link_order(order.id, now)
        await self.store.save(quotation, expected_version=version)
        await self.store.checkpoint(self._durable_steps)

    async def _apply_inventory(self, order: Order) -> None:
        for item in order.items:
            if item.stock_applied:
                continue
            if item.product_id is None:
                logger.warning(
                    f"Order {order.order_number}: product '{item.product_name}' no longer exists, stock not adjusted"
                )
            else:
                await self.catalog.adjust_stock(
                    item.product_id,
                    -item.quantity,
                    allow_negative=self.policy.allow_negative_stock_on_conversion,
                )
            item.stock_applied = True
            await self.store.checkpoint(self._durable_steps)

    async def _generate_number(self, now: datetime) -> str:
        for _ in range(MAX_NUMBER_ATTEMPTS):
            number = generate_order_number(now)
            exists = await self.db.execute(
                select(Order.id).where(Order.order_number == number)
            )
            if exists.scalar_one_or_none() is None:
                return number
        raise RuntimeError(f"Could not allocate a unique order number for {now:%Y%m%d}")
