"""
Catalog service.
Product lookup for quoting, product CRUD and stock adjustments.
"""

import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, update

from optiquote.core.exceptions import ProductNotFoundError, InsufficientInventoryError
from optiquote.models.product import Product
from optiquote.schemas.product import ProductCreate, ProductUpdate


logger = logging.getLogger(__name__)


class CatalogService:
    """Service for catalog operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, data: ProductCreate) -> Product:
        """Create a new product."""
        product = Product(**data.model_dump())

        self.db.add(product)
        await self.db.flush()

        logger.info(f"Product created: {product.name} (id={product.id})")
        return product

    async def get_by_id(self, product_id: int) -> Product | None:
        return await self.db.get(Product, product_id)

    async def get(self, product_id: int) -> Product:
        """
        Resolve an active product.

        Raises:
            ProductNotFoundError: If the product is missing or deactivated
        """
        product = await self.get_by_id(product_id)
        if product is None or not product.is_active:
            raise ProductNotFoundError(product_id)
        return product

    async def list(
        self,
        skip: int = 0,
        limit: int = 20,
        search: str | None = None,
        in_stock: bool | None = None,
        include_inactive: bool = False,
    ) -> tuple[list[Product], int]:
        """
        List products with pagination and filters.

        Args:
            skip: Number of records to skip
            limit: Maximum records to return
            search: Search term for name/SKU
            in_stock: Only products with (or without) stock
            include_inactive: Include deactivated products

        Returns:
            Tuple of (products list, total count)
        """
        filters = []
        if not include_inactive:
            filters.append(Product.is_active.is_(True))
        if search:
            search_filter = f"%{search}%"
            filters.append(
                (Product.name.ilike(search_filter)) |
                (Product.sku.ilike(search_filter))
            )
        if in_stock is True:
            filters.append(Product.stock_quantity > 0)
        elif in_stock is False:
            filters.append(Product.stock_quantity <= 0)

        total_result = await self.db.execute(
            select(func.count(Product.id)).where(*filters)
        )
        total = total_result.scalar() or 0

        result = await self.db.execute(
            select(Product)
            .where(*filters)
            .order_by(Product.name)
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def update(self, product: Product, data: ProductUpdate) -> Product:
        """Update product fields."""
        update_data = data.model_dump(exclude_unset=True)

        for field, value in update_data.items():
            setattr(product, field, value)

        await self.db.flush()
        return product

    async def adjust_stock(
        self,
        product_id: int,
        delta: int,
        *,
        allow_negative: bool = False,
    ) -> Product:
        """
        Apply a relative stock change as a single conditional UPDATE.

        With ``allow_negative=False`` the update only matches while the
        resulting stock stays at or above zero (the staff-side guard).
        With ``allow_negative=True`` the decrement is unconditional, which
        is what quotation conversion does.

        Args:
            product_id: Product to adjust
            delta: Positive to add, negative to remove
            allow_negative: Skip the floor-at-zero guard

        Returns:
            The product with its refreshed stock

        Raises:
            ProductNotFoundError: If the product does not exist
            InsufficientInventoryError: If the guard rejects the change
        """
        statement = (
            update(Product)
            .where(Product.id == product_id)
            .values(stock_quantity=Product.stock_quantity + delta)
        )
        if not allow_negative:
            statement = statement.where(Product.stock_quantity + delta >= 0)

        result = await self.db.execute(
            statement.execution_options(synchronize_session=False)
        )

        product = await self.get_by_id(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        await self.db.refresh(product)

        if not result.rowcount:
            logger.warning(
                f"Stock adjustment refused for product {product_id}: "
                f"{delta:+d} with {product.stock_quantity} available"
            )
            raise InsufficientInventoryError(
                product.id,
                product.name,
                requested=-delta,
                available=product.stock_quantity,
            )

        logger.info(f"Stock adjusted for product {product_id}: {delta:+d} (now {product.stock_quantity})")
        return product
