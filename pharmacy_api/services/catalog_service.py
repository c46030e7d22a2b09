"""
Catalog adapter — the only place purchasing touches product rows.

All functions use the caller's session (no commit).
"""

from decimal import Decimal
from typing import Optional
import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from pharmacy_api.exceptions import NotFoundError
from pharmacy_api.models.product import Product

logger = structlog.get_logger()


async def get_product(
    session: AsyncSession,
    product_id: uuid.UUID,
    pharmacy_id: uuid.UUID,
) -> Optional[Product]:
    result = await session.execute(
        select(Product).where(
            Product.id == product_id,
            Product.pharmacy_id == pharmacy_id,
        )
    )
    return result.scalar_one_or_none()


async def increment_stock(
    session: AsyncSession,
    product_id: uuid.UUID,
    pharmacy_id: uuid.UUID,
    delta: int,
    new_cost_price: Optional[Decimal],
) -> None:
    """
    Add ``delta`` units to stock on hand and overwrite the cost price.

    The increment is a SQL expression so concurrent receipts against the
    same product never lose updates. The cost price is last-write-wins.
    """
    values = {"quantity": Product.quantity + delta}
    if new_cost_price is not None:
        values["cost_price"] = new_cost_price

    result = await session.execute(
        update(Product)
        .where(Product.id == product_id, Product.pharmacy_id == pharmacy_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFoundError(f"Product '{product_id}' not found")

    logger.info(
        "catalog_stock_incremented",
        product_id=str(product_id),
        delta=delta,
        cost_price=str(new_cost_price) if new_cost_price is not None else None,
    )
