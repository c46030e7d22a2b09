"""
Integration tests for pharmacy_api/services/catalog_service.py
"""

import uuid
from decimal import Decimal

import pytest

from conftest import OTHER_PHARMACY_ID, PHARMACY_ID
from pharmacy_api.exceptions import NotFoundError
from pharmacy_api.services.catalog_service import get_product, increment_stock


@pytest.mark.asyncio
async def test_get_product_is_scoped(session, products):
    async with session.begin():
        found = await get_product(session, products[0].id, uuid.UUID(PHARMACY_ID))
        foreign = await get_product(session, products[0].id, uuid.UUID(OTHER_PHARMACY_ID))

    assert found.quantity == 10
    assert foreign is None


@pytest.mark.asyncio
async def test_increment_stock_adds_and_reprices(session, session_factory, products):
    async with session.begin():
        await increment_stock(session, products[0].id, uuid.UUID(PHARMACY_ID), 5, Decimal("3.25"))
        await increment_stock(session, products[0].id, uuid.UUID(PHARMACY_ID), 2, None)

    async with session_factory() as s:
        product = await get_product(s, products[0].id, uuid.UUID(PHARMACY_ID))
    assert product.quantity == 17
    assert product.cost_price == Decimal("3.25")


@pytest.mark.asyncio
async def test_increment_stock_unknown_product(session):
    with pytest.raises(NotFoundError):
        async with session.begin():
            await increment_stock(session, uuid.uuid4(), uuid.UUID(PHARMACY_ID), 1, None)
