"""
Product catalog endpoints.
Public browsing; staff manage products and stock.
"""

from fastapi import APIRouter, Query, status

from optiquote.api.deps import DbSession, StaffUser
from optiquote.core.exceptions import ProductNotFoundError
from optiquote.schemas.product import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
    ProductListResponse,
    StockUpdateRequest,
)
from optiquote.services.catalog import CatalogService


router = APIRouter()


@router.post(
    "",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a product",
)
async def create_product(
    data: ProductCreate,
    staff_user: StaffUser,
    db: DbSession,
) -> ProductResponse:
    service = CatalogService(db)
    product = await service.create(data)
    return ProductResponse.model_validate(product)


@router.get(
    "",
    response_model=ProductListResponse,
    summary="List products",
    description="Paginated list of active products",
)
async def list_products(
    db: DbSession,
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(20, ge=1, le=100, description="Items per page"),
    search: str | None = Query(None, description="Search by name or SKU"),
    in_stock: bool | None = Query(None, description="Filter on available stock"),
) -> ProductListResponse:
    """List all products with pagination and filters."""
    service = CatalogService(db)
    skip = (page - 1) * per_page

    products, total = await service.list(
        skip=skip,
        limit=per_page,
        search=search,
        in_stock=in_stock,
    )

    return ProductListResponse(
        items=[ProductResponse.model_validate(p) for p in products],
        total=total,
        page=page,
        per_page=per_page,
        pages=ProductListResponse.page_count(total, per_page),
    )


@router.get(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Product details",
)
async def get_product(
    product_id: int,
    db: DbSession,
) -> ProductResponse:
    service = CatalogService(db)
    product = await service.get(product_id)
    return ProductResponse.model_validate(product)


@router.patch(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Update a product",
    description="Change price, description or availability. Existing quotations keep their prices.",
)
async def update_product(
    product_id: int,
    data: ProductUpdate,
    staff_user: StaffUser,
    db: DbSession,
) -> ProductResponse:
    service = CatalogService(db)
    product = await service.get_by_id(product_id)
    if product is None:
        raise ProductNotFoundError(product_id)
    product = await service.update(product, data)
    await db.refresh(product)
    return ProductResponse.model_validate(product)


@router.post(
    "/{product_id}/stock",
    response_model=ProductResponse,
    summary="Adjust stock",
    description="Add (positive) or remove (negative) units; stock cannot drop below zero here",
)
async def adjust_stock(
    product_id: int,
    data: StockUpdateRequest,
    staff_user: StaffUser,
    db: DbSession,
) -> ProductResponse:
    service = CatalogService(db)
    product = await service.adjust_stock(product_id, data.quantity)
    return ProductResponse.model_validate(product)
