"""
Order endpoints.
Read access to orders produced by quotation conversion.
"""

import logging
from fastapi import APIRouter

from optiquote.api.deps import CurrentUser, DbSession
from optiquote.core.exceptions import ForbiddenError, OrderNotFoundError
from optiquote.models.order import Order
from optiquote.schemas.order import OrderResponse


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Order details",
    description="Visible to the customer who owns the order and to staff",
)
async def get_order(
    order_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> OrderResponse:
    order = await db.get(Order, order_id)
    if order is None:
        raise OrderNotFoundError(order_id)

    if not current_user.is_staff and order.user_id != current_user.id:
        logger.warning(f"User {current_user.id} denied access to order {order.order_number}")
        raise ForbiddenError()

    return OrderResponse.model_validate(order)
