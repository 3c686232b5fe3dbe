"""
Quotation to order conversion tests.
"""

import re
import pytest
from sqlalchemy import select, func
from sqlalchemy.orm import selectinload

from optiquote.core.exceptions import InsufficientInventoryError, InvalidStatusTransitionError
from optiquote.core.references import REFERENCE_PATTERN
from optiquote.models.notification import Notification, NotificationType
from optiquote.models.order import Order, OrderStatus, PaymentMethod, PaymentStatus, ADDRESS_PLACEHOLDER
from optiquote.models.quotation import QuotationStatus
from optiquote.services.catalog import CatalogService
from optiquote.services.order_conversion import split_customer_name
from optiquote.services.policy import QuotationPolicy


class FailingCatalog(CatalogService):
    """Catalog whose stock adjustment breaks for one product."""

    def __init__(self, db, fail_on: int):
        super().__init__(db)
        self.fail_on = fail_on

    async def adjust_stock(self, product_id, delta, *, allow_negative=False):
        if product_id == self.fail_on:
            raise RuntimeError("catalog unavailable")
        return await super().adjust_stock(product_id, delta, allow_negative=allow_negative)


async def _ready(workflow, customer, staff, products, line):
    """Quotation for 1 frame and 3 lenses, accepted by the customer."""
    quotation = await workflow.create(
        customer_name=customer.full_name,
        customer_email=customer.email,
        items=[
            line(products[0], 1, color="black"),
            line(products[1], 3, lensType="progressive", prescription={"od": -1.25, "os": -1.5}),
        ],
        user_id=customer.id,
        customer_phone="+33 6 12 34 56 78",
    )
    await workflow.approve(quotation.id, staff.id)
    return await workflow.customer_approve(quotation.id, customer.id)


async def _stocks(db_session, products):
    for product in products:
        await db_session.refresh(product)
    return [p.stock_quantity for p in products]


async def _order_count(db_session):
    return (await db_session.execute(select(func.count(Order.id)))).scalar()


def _snapshot(items):
    return [
        (i.product_id, i.product_name, i.product_image, i.quantity, i.unit_price, i.total_price, i.specifications)
        for i in items
    ]


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("Jane Marie Doe", ("Jane", "Marie Doe")),
        ("Cher", ("Cher", "")),
        ("  Ana   Lima ", ("Ana", "Lima")),
    ],
)
def test_split_customer_name(name, expected):
    assert split_customer_name(name) == expected


@pytest.mark.asyncio
async def test_convert_split_flow(workflow, customer, staff, products, line, db_session, clock):
    quotation = await _ready(workflow, customer, staff, products, line)
    assert quotation.status == QuotationStatus.CUSTOMER_APPROVED

    converted, order = await workflow.convert_to_order(quotation.id, staff.id)

    assert converted.status == QuotationStatus.CONVERTED
    assert converted.converted_to_order_id == order.id
    assert converted.converted_at == clock.now

    assert re.match(REFERENCE_PATTERN, order.order_number)
    assert order.order_number.startswith(f"ORD-{clock.now:%Y%m%d}-")
    assert order.source_quotation_id == quotation.id
    assert order.user_id == customer.id
    assert order.staff_id == staff.id
    assert order.status == OrderStatus.CONFIRMED
    assert order.payment_method == PaymentMethod.QUOTATION
    assert order.payment_status == PaymentStatus.PENDING
    assert order.is_walk_in is False

    assert (order.subtotal, order.tax, order.discount, order.total) == (
        quotation.subtotal, quotation.tax, quotation.discount, quotation.total,
    )
    assert _snapshot(order.items) == _snapshot(quotation.items)
    assert all(i.stock_applied for i in order.items)

    assert (order.shipping_first_name, order.shipping_last_name) == ("Jane", "Marie Doe")
    assert order.shipping_street == ADDRESS_PLACEHOLDER
    assert order.shipping_country == ADDRESS_PLACEHOLDER
    assert order.shipping_phone == "+33 6 12 34 56 78"

    assert await _stocks(db_session, products) == [9, 7]

    result = await db_session.execute(
        select(Notification).where(
            Notification.user_id == customer.id,
            Notification.type == NotificationType.QUOTATION_CONVERTED,
        )
    )
    notification = result.scalar_one()
    assert order.order_number in notification.message


@pytest.mark.asyncio
async def test_convert_legacy_flow(make_workflow, customer, staff, products, line, db_session):
    workflow = make_workflow(QuotationPolicy(legacy_status_flow=True))
    quotation = await _ready(workflow, customer, staff, products, line)
    assert quotation.status == QuotationStatus.CONVERTED
    assert quotation.converted_to_order_id is None

    converted, order = await workflow.convert_to_order(quotation.id, staff.id)

    assert converted.status == QuotationStatus.CONVERTED
    assert converted.converted_to_order_id == order.id
    assert order.total == quotation.total
    assert await _stocks(db_session, products) == [9, 7]


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [QuotationStatus.PENDING, QuotationStatus.APPROVED, QuotationStatus.CONVERTED])
async def test_convert_requires_customer_approval(workflow, customer, staff, products, line, db_session, status):
    quotation = await _ready(workflow, customer, staff, products, line)
    quotation.status = status
    await db_session.flush()

    with pytest.raises(InvalidStatusTransitionError):
        await workflow.convert_to_order(quotation.id, staff.id)

    assert await _order_count(db_session) == 0
    assert await _stocks(db_session, products) == [10, 10]


@pytest.mark.asyncio
async def test_convert_twice_fails(workflow, customer, staff, products, line, db_session):
    quotation = await _ready(workflow, customer, staff, products, line)
    await workflow.convert_to_order(quotation.id, staff.id)

    with pytest.raises(InvalidStatusTransitionError) as exc_info:
        await workflow.convert_to_order(quotation.id, staff.id)

    assert "already been converted" in str(exc_info.value)
    assert await _order_count(db_session) == 1
    assert await _stocks(db_session, products) == [9, 7]


@pytest.mark.asyncio
async def test_partial_failure_keeps_earlier_steps_and_resumes(make_workflow, customer, staff, products, line, db_session):
    failing = make_workflow(catalog=FailingCatalog(db_session, fail_on=products[1].id))
    quotation = await _ready(failing, customer, staff, products, line)
    quotation_id, staff_id = quotation.id, staff.id

    with pytest.raises(RuntimeError):
        await failing.convert_to_order(quotation_id, staff_id)
    await db_session.rollback()

    # Order, link and first decrement were committed step by step
    order = (await db_session.execute(
        select(Order)
        .options(selectinload(Order.items))
        .where(Order.source_quotation_id == quotation_id)
        .execution_options(populate_existing=True)
    )).scalar_one()
    assert [i.stock_applied for i in order.items] == [True, False]
    stored = await failing.store.get(quotation_id)
    assert stored.status == QuotationStatus.CONVERTED
    assert stored.converted_to_order_id == order.id
    assert await _stocks(db_session, products) == [9, 10]

    workflow = make_workflow()
    _, resumed = await workflow.convert_to_order(quotation_id, staff_id)

    assert resumed.id == order.id
    assert all(i.stock_applied for i in resumed.items)
    assert await _order_count(db_session) == 1
    assert await _stocks(db_session, products) == [9, 7]

    with pytest.raises(InvalidStatusTransitionError):
        await workflow.convert_to_order(quotation_id, staff_id)


@pytest.mark.asyncio
async def test_atomic_conversion_rolls_back_every_step(make_workflow, customer, staff, products, line, db_session):
    policy = QuotationPolicy(atomic_conversion=True)
    failing = make_workflow(policy, catalog=FailingCatalog(db_session, fail_on=products[1].id))
    quotation = await _ready(failing, customer, staff, products, line)
    await db_session.commit()
    quotation_id, staff_id = quotation.id, staff.id

    with pytest.raises(RuntimeError):
        await failing.convert_to_order(quotation_id, staff_id)
    await db_session.rollback()

    assert await _order_count(db_session) == 0
    stored = await failing.store.get(quotation_id)
    assert stored.status == QuotationStatus.CUSTOMER_APPROVED
    assert stored.converted_to_order_id is None
    assert await _stocks(db_session, products) == [10, 10]

    _, order = await make_workflow(policy).convert_to_order(quotation_id, staff_id)
    assert all(i.stock_applied for i in order.items)
    assert await _stocks(db_session, products) == [9, 7]


@pytest.mark.asyncio
async def test_conversion_decrements_below_zero_by_default(workflow, customer, staff, products, line, db_session):
    quotation = await _ready(workflow, customer, staff, products, line)
    # Stock sold elsewhere after the quotation was priced
    await CatalogService(db_session).adjust_stock(products[1].id, -9)

    await workflow.convert_to_order(quotation.id, staff.id)

    assert await _stocks(db_session, products) == [9, -2]


@pytest.mark.asyncio
async def test_conversion_with_stock_guard(make_workflow, customer, staff, products, line, db_session):
    workflow = make_workflow(QuotationPolicy(allow_negative_stock_on_conversion=False))
    quotation = await _ready(workflow, customer, staff, products, line)
    await CatalogService(db_session).adjust_stock(products[1].id, -9)

    with pytest.raises(InsufficientInventoryError):
        await workflow.convert_to_order(quotation.id, staff.id)

    assert (await _stocks(db_session, products))[1] == 1


@pytest.mark.asyncio
async def test_conversion_skips_deleted_product(workflow, customer, staff, products, line, db_session):
    quotation = await _ready(workflow, customer, staff, products, line)
    quotation.items[0].product_id = None
    await db_session.flush()

    _, order = await workflow.convert_to_order(quotation.id, staff.id)

    assert order.items[0].product_id is None
    assert order.items[0].stock_applied is True
    assert await _stocks(db_session, products) == [10, 7]
