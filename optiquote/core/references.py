"""
Human-readable reference numbers.
Format: {PREFIX}-{YYYYMMDD}-{NNNN}, NNNN drawn from [1000, 9999].
"""

import random
from datetime import datetime, timezone


QUOTATION_PREFIX = "QUO"
ORDER_PREFIX = "ORD"

REFERENCE_PATTERN = r"^[A-Z]{3}-\d{8}-\d{4}$"


def generate_reference(
    prefix: str,
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> str:
    """
    Generate a date-stamped reference number.

    Args:
        prefix: Three-letter prefix (QUO, ORD)
        now: Timestamp used for the date stamp (UTC)
        rng: Random source, injectable for tests

    Returns:
        Reference such as QUO-20240131-4821
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    rng = rng or random
    return f"{prefix}-{now.strftime('%Y%m%d')}-{rng.randint(1000, 9999)}"


def generate_quotation_number(now: datetime | None = None) -> str:
    return generate_reference(QUOTATION_PREFIX, now)


def generate_order_number(now: datetime | None = None) -> str:
    return generate_reference(ORDER_PREFIX, now)
