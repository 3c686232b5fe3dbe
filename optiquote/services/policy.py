"""
Quotation workflow policy.
The behaviour switches of the workflow, resolved once from settings.
"""

from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal

from optiquote.core.config import Settings
from optiquote.models.quotation import QuotationStatus


@dataclass(frozen=True)
class QuotationPolicy:
    """
    Attributes:
        tax_rate: Tax applied to the subtotal
        validity_days: Length of the validity window
        legacy_status_flow: Customer approval stores ``converted`` instead
            of ``customer_approved``
        atomic_conversion: Run all conversion steps in one transaction
            instead of committing each step
        optimistic_locking: Compare-and-swap on ``version`` for every save
        allow_negative_stock_on_conversion: Decrement stock on conversion
            without the floor-at-zero guard
    """

    tax_rate: Decimal = Decimal("0.10")
    validity_days: int = 30
    legacy_status_flow: bool = False
    atomic_conversion: bool = False
    optimistic_locking: bool = False
    allow_negative_stock_on_conversion: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "QuotationPolicy":
        return cls(
            tax_rate=settings.QUOTATION_TAX_RATE,
            validity_days=settings.QUOTATION_VALIDITY_DAYS,
            legacy_status_flow=settings.QUOTATION_LEGACY_STATUS_FLOW,
            atomic_conversion=settings.QUOTATION_ATOMIC_CONVERSION,
            optimistic_locking=settings.QUOTATION_OPTIMISTIC_LOCKING,
            allow_negative_stock_on_conversion=settings.QUOTATION_CONVERSION_ALLOW_NEGATIVE_STOCK,
        )

    @property
    def validity(self) -> timedelta:
        return timedelta(days=self.validity_days)

    @property
    def ready_for_conversion(self) -> QuotationStatus:
        """Status a quotation holds once the customer has accepted it."""
        if self.legacy_status_flow:
            return QuotationStatus.CONVERTED
        return QuotationStatus.CUSTOMER_APPROVED
