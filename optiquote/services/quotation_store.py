"""
Quotation store.
Persistence of the quotation aggregate: lookup, listing, saving and the
expired-quotation query used by the sweep.
"""

import logging
from datetime import datetime
from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, update, or_
from sqlalchemy.orm import selectinload

from optiquote.core.exceptions import QuotationNotFoundError, ConcurrentModificationError
from optiquote.core.references import generate_quotation_number
from optiquote.models.quotation import Quotation, QuotationStatus, OPEN_STATUSES


logger = logging.getLogger(__name__)


MAX_NUMBER_ATTEMPTS = 10


class QuotationStore:
    """Repository for quotations."""

    def __init__(self, db: AsyncSession, optimistic_locking: bool = False):
        self.db = db
        self.optimistic_locking = optimistic_locking

    def _select(self):
        return select(Quotation).options(
            selectinload(Quotation.items),
            selectinload(Quotation.replies),
        )

    async def get(self, quotation_id: int) -> Quotation | None:
        """Get quotation by ID with items and replies loaded."""
        result = await self.db.execute(
            self._select()
            .where(Quotation.id == quotation_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_or_raise(self, quotation_id: int) -> Quotation:
        quotation = await self.get(quotation_id)
        if quotation is None:
            raise QuotationNotFoundError(quotation_id)
        return quotation

    async def get_by_number(self, quotation_number: str) -> Quotation | None:
        result = await self.db.execute(
            self._select().where(Quotation.quotation_number == quotation_number)
        )
        return result.scalar_one_or_none()

    async def generate_number(self, now: datetime) -> str:
        """
        Draw a quotation number not yet used.
        The unique index remains the final guard against a concurrent draw.
        """
        for _ in range(MAX_NUMBER_ATTEMPTS):
            number = generate_quotation_number(now)
            exists = await self.db.execute(
                select(Quotation.id).where(Quotation.quotation_number == number)
            )
            if exists.scalar_one_or_none() is None:
                return number
        raise RuntimeError(f"Could not allocate a unique quotation number for {now:%Y%m%d}")

    async def list(
        self,
        user_id: int | None = None,
        status: QuotationStatus | None = None,
        search: str | None = None,
        skip: int = 0,
        limit: int = 10,
    ) -> tuple[list[Quotation], int]:
        """List quotations with pagination and filters, newest first."""
        filters = []
        if user_id is not None:
            filters.append(Quotation.user_id == user_id)
        if status is not None:
            filters.append(Quotation.status == status)
        if search:
            pattern = f"%{search}%"
            filters.append(or_(
                Quotation.quotation_number.ilike(pattern),
                Quotation.customer_name.ilike(pattern),
                Quotation.customer_email.ilike(pattern),
            ))

        total_result = await self.db.execute(
            select(func.count(Quotation.id)).where(*filters)
        )
        total = total_result.scalar() or 0

        result = await self.db.execute(
            self._select()
            .where(*filters)
            .order_by(Quotation.created_at.desc(), Quotation.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def find_expired(self, now: datetime) -> List[Quotation]:
        """Open quotations whose validity window has passed."""
        result = await self.db.execute(
            self._select().where(
                Quotation.valid_until < now,
                Quotation.status.in_(OPEN_STATUSES),
            )
        )
        return list(result.scalars().all())

    async def add(self, quotation: Quotation) -> Quotation:
        quotation.version = 1
        self.db.add(quotation)
        await self.db.flush()
        return quotation

    async def save(self, quotation: Quotation, expected_version: int | None = None) -> Quotation:
        """
        Write pending changes and bump the version.

        With optimistic locking the bump is a conditional UPDATE on the
        version read by the caller; losing that race raises
        ConcurrentModificationError. Without it the last writer wins.
        """
        if expected_version is None:
            expected_version = quotation.version

        if self.optimistic_locking:
            result = await self.db.execute(
                update(Quotation)
                .where(
                    Quotation.id == quotation.id,
                    Quotation.version == expected_version,
                )
                .values(version=expected_version + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                logger.warning(
                    f"Concurrent modification of quotation {quotation.quotation_number} "
                    f"(expected version {expected_version})"
                )
                raise ConcurrentModificationError(quotation.quotation_number, expected_version)

        quotation.version = expected_version + 1
        await self.db.flush()
        return quotation

    async def delete(self, quotation: Quotation) -> None:
        await self.db.delete(quotation)
        await self.db.flush()

    async def checkpoint(self, durable: bool) -> None:
        """Make the writes so far durable (commit) or only visible (flush)."""
        if durable:
            await self.db.commit()
        else:
            await self.db.flush()
