import itertools
import uuid
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import pharmacy_api.models  # noqa: F401
from pharmacy_api.database import Base
from pharmacy_api.models.product import Product
from pharmacy_api.services import order_builder
from pharmacy_api.services import purchase_order_service as po_service

PHARMACY_ID = "a0000000-0000-0000-0000-000000000001"
OTHER_PHARMACY_ID = "b0000000-0000-0000-0000-000000000002"
SUPPLIER_ID = "c0000000-0000-0000-0000-000000000003"


@pytest.fixture(autouse=True)
def distinct_order_numbers(monkeypatch):
    """Order numbers have one-second resolution; tick the clock per order."""
    start = datetime(2026, 10, 18, 9, 0, 0)
    ticks = itertools.count()
    monkeypatch.setattr(
        order_builder, "_utcnow", lambda: start + timedelta(seconds=next(ticks))
    )


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
async def products(session_factory):
    """Two catalog products for PHARMACY_ID, ten units each."""
    rows = [
        Product(
            id=uuid.uuid4(),
            pharmacy_id=uuid.UUID(PHARMACY_ID),
            name=name,
            quantity=10,
            cost_price=Decimal("1.00"),
        )
        for name in ("Amoxicillin 500mg", "Paracetamol 500mg")
    ]
    async with session_factory() as s:
        async with s.begin():
            s.add_all(rows)
    return rows


def order_params(products, quantities=(10, 5), unit_costs=(None, None)):
    return {
        "supplier_id": SUPPLIER_ID,
        "order_date": "2026-10-18",
        "notes": "Monthly restock",
        "items": [
            {"product_id": str(p.id), "quantity": q, "unit_cost": c}
            for p, q, c in zip(products, quantities, unit_costs)
        ],
    }


@pytest.fixture
async def draft_order(session, products):
    """Scenario 1: two lines, quantities [10, 5], no unit costs."""
    result = await po_service.create_purchase_order(session, order_params(products), PHARMACY_ID)
    assert result.success, result.message
    return result.data


@pytest.fixture
async def confirmed_order(session, draft_order):
    """Scenario 2: line 1 confirmed at 2.50, line 2 unavailable."""
    line1, line2 = draft_order.lines
    result = await po_service.confirm_purchase_order(
        session,
        draft_order.id,
        PHARMACY_ID,
        {
            line1.id: {"unit_cost": "2.50", "available": True},
            line2.id: {"available": False},
        },
    )
    assert result.success, result.message
    return result.data


async def stock_of(session_factory, product_id) -> tuple[int, Decimal]:
    async with session_factory() as s:
        product = await s.get(Product, product_id)
        return product.quantity, product.cost_price
