"""
Quotation store tests: versioning and lookups.
"""

import runpy

import pytest
from sqlalchemy import update

from optiquote.core.exceptions import ConcurrentModificationError, QuotationNotFoundError
from optiquote.models.quotation import Quotation, QuotationStatus
from optiquote.services import catalog, quotation_store
from optiquote.services.policy import QuotationPolicy
from optiquote.services.quotation_store import QuotationStore


async def _bump_version_elsewhere(db_session, quotation_id):
    """Simulate a concurrent writer saving the same quotation."""
    await db_session.execute(
        update(Quotation)
        .where(Quotation.id == quotation_id)
        .values(version=Quotation.version + 1)
        .execution_options(synchronize_session=False)
    )


async def _pending(workflow, customer, products, line):
    return await workflow.create(
        customer_name=customer.full_name,
        customer_email=customer.email,
        items=[line(products[0], 1)],
        user_id=customer.id,
    )


@pytest.mark.parametrize("module, class_name", [
    (quotation_store, "QuotationStore"),
    (catalog, "CatalogService"),
])
def test_service_class_bodies_evaluate_in_fresh_namespace(module, class_name):
    namespace = runpy.run_path(module.__file__)

    service_cls = namespace[class_name]
    assert callable(service_cls.list)


@pytest.mark.asyncio
async def test_get_or_raise_missing(db_session):
    with pytest.raises(QuotationNotFoundError):
        await QuotationStore(db_session).get_or_raise(404)


@pytest.mark.asyncio
async def test_get_by_number(workflow, customer, products, line):
    quotation = await _pending(workflow, customer, products, line)

    found = await workflow.store.get_by_number(quotation.quotation_number)

    assert found.id == quotation.id


@pytest.mark.asyncio
async def test_every_save_bumps_version(workflow, customer, staff, products, line):
    quotation = await _pending(workflow, customer, products, line)
    assert quotation.version == 1

    await workflow.add_staff_reply(quotation.id, staff.id, "Measuring pupillary distance")
    await workflow.approve(quotation.id, staff.id)

    assert (await workflow.store.get(quotation.id)).version == 3


@pytest.mark.asyncio
async def test_last_writer_wins_without_locking(workflow, customer, products, line, db_session):
    quotation = await _pending(workflow, customer, products, line)
    stale_version = quotation.version
    await _bump_version_elsewhere(db_session, quotation.id)

    quotation.notes = "Overwritten"
    await workflow.store.save(quotation, expected_version=stale_version)

    stored = await workflow.store.get(quotation.id)
    assert stored.notes == "Overwritten"
    assert stored.version == stale_version + 1


@pytest.mark.asyncio
async def test_optimistic_locking_detects_concurrent_save(make_workflow, customer, products, line, db_session):
    workflow = make_workflow(QuotationPolicy(optimistic_locking=True))
    quotation = await _pending(workflow, customer, products, line)
    stale_version = quotation.version
    await _bump_version_elsewhere(db_session, quotation.id)

    quotation.status = QuotationStatus.APPROVED
    with pytest.raises(ConcurrentModificationError) as exc_info:
        await workflow.store.save(quotation, expected_version=stale_version)

    assert exc_info.value.expected_version == stale_version


@pytest.mark.asyncio
async def test_optimistic_locking_accepts_current_version(make_workflow, customer, staff, products, line):
    workflow = make_workflow(QuotationPolicy(optimistic_locking=True))
    quotation = await _pending(workflow, customer, products, line)

    approved = await workflow.approve(quotation.id, staff.id)

    assert approved.status == QuotationStatus.APPROVED
    assert (await workflow.store.get(quotation.id)).version == 2
