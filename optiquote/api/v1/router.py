"""
API v1 router - aggregates all endpoint routers.
"""

from fastapi import APIRouter

from optiquote.api.v1.endpoints import (
    quotations,
    products,
    orders,
    notifications,
)

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(
    quotations.router,
    prefix="/quotations",
    tags=["Quotations"],
)

api_router.include_router(
    products.router,
    prefix="/products",
    tags=["Products"],
)

api_router.include_router(
    orders.router,
    prefix="/orders",
    tags=["Orders"],
)

api_router.include_router(
    notifications.router,
    prefix="/notifications",
    tags=["Notifications"],
)
