"""
Order builder — DRAFT purchase orders and their line items.

All functions use the caller's session (no commit) and scope every
query by pharmacy; an order belonging to another pharmacy is reported
exactly like a missing one.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
import uuid

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from pharmacy_api.config import settings
from pharmacy_api.exceptions import NotFoundError, TerminalStateError, ValidationError
from pharmacy_api.models.purchase_order import (
    PurchaseOrder,
    PurchaseOrderLine,
    PurchaseOrderStatus,
)
from pharmacy_api.schemas.purchase_order import (
    PurchaseOrderCreate,
    PurchaseOrderItemIn,
    PurchaseOrderUpdate,
)
from pharmacy_api.services.status_projector import (
    DERIVED_STATUSES,
    TERMINAL_STATUSES,
    can_transition,
)

logger = structlog.get_logger()

DELETABLE_STATUSES = frozenset({
    PurchaseOrderStatus.DRAFT,
    PurchaseOrderStatus.CANCELLED,
})


def _utcnow() -> datetime:
    return datetime.utcnow()


def generate_order_number(now: Optional[datetime] = None) -> str:
    """PO-YYYYMMDDHHMMSS. Two orders created in the same second collide."""
    now = now or _utcnow()
    return f"{settings.ORDER_NUMBER_PREFIX}-{now:%Y%m%d%H%M%S}"


async def get_order_for_update(
    session: AsyncSession,
    order_id: uuid.UUID,
    pharmacy_id: uuid.UUID,
) -> PurchaseOrder:
    result = await session.execute(
        select(PurchaseOrder)
        .where(
            PurchaseOrder.id == order_id,
            PurchaseOrder.pharmacy_id == pharmacy_id,
        )
        .with_for_update()
    )
    order = result.scalar_one_or_none()
    if not order:
        raise NotFoundError()
    return order


async def get_line_items(session: AsyncSession, order_id) -> list[PurchaseOrderLine]:
    result = await session.execute(
        select(PurchaseOrderLine)
        .where(PurchaseOrderLine.purchase_order_id == order_id)
        .order_by(PurchaseOrderLine.line_number)
    )
    return list(result.scalars().all())


def _build_lines(order_id: uuid.UUID, items: list[PurchaseOrderItemIn]) -> list[PurchaseOrderLine]:
    return [
        PurchaseOrderLine(
            purchase_order_id=order_id,
            line_number=line_number,
            product_id=item.product_id,
            quantity=item.quantity,
            unit_cost=Decimal(item.unit_cost) if item.unit_cost is not None else None,
            received_quantity=0,
        )
        for line_number, item in enumerate(items, start=1)
    ]


async def create_order(
    session: AsyncSession,
    pharmacy_id: uuid.UUID,
    data: PurchaseOrderCreate,
    user_id: Optional[uuid.UUID] = None,
) -> PurchaseOrder:
    order = PurchaseOrder(
        id=uuid.uuid4(),
        pharmacy_id=pharmacy_id,
        order_number=generate_order_number(),
        supplier_id=data.supplier_id,
        user_id=user_id,
        order_date=data.order_date,
        status=PurchaseOrderStatus.DRAFT.value,
        notes=data.notes,
        total_cost=Decimal("0.00"),
    )
    session.add(order)
    await session.flush()

    session.add_all(_build_lines(order.id, data.items))
    await session.flush()

    logger.info(
        "po_created",
        po_id=str(order.id),
        order_number=order.order_number,
        pharmacy_id=str(pharmacy_id),
        line_count=len(data.items),
    )
    return order


async def update_order(
    session: AsyncSession,
    order_id: uuid.UUID,
    pharmacy_id: uuid.UUID,
    data: PurchaseOrderUpdate,
) -> PurchaseOrder:
    """Replace header fields and the whole line set of a DRAFT order."""
    order = await get_order_for_update(session, order_id, pharmacy_id)
    if order.status != PurchaseOrderStatus.DRAFT:
        raise TerminalStateError(
            order.status,
            f"Cannot update purchase order in '{order.status}' status",
        )

    order.supplier_id = data.supplier_id
    order.order_date = data.order_date
    order.notes = data.notes

    await session.execute(
        delete(PurchaseOrderLine).where(PurchaseOrderLine.purchase_order_id == order.id)
    )
    session.add_all(_build_lines(order.id, data.items))
    await session.flush()

    logger.info("po_updated", po_id=str(order.id), line_count=len(data.items))
    return order


async def update_order_status(
    session: AsyncSession,
    order_id: uuid.UUID,
    pharmacy_id: uuid.UUID,
    status: PurchaseOrderStatus,
) -> PurchaseOrder:
    """Direct status change for the EXPORTED/SUBMITTED waypoints and cancellation."""
    if status in DERIVED_STATUSES:
        raise ValidationError(
            f"Status '{status.value}' is set by confirmation and receiving, not directly"
        )

    order = await get_order_for_update(session, order_id, pharmacy_id)
    current = order.status
    if current == status.value:
        return order
    if current in TERMINAL_STATUSES or not can_transition(current, status.value):
        raise TerminalStateError(
            current,
            f"Cannot change purchase order status from '{current}' to '{status.value}'",
        )

    order.status = status.value
    await session.flush()

    logger.info("po_status_updated", po_id=str(order.id), before=current, after=status.value)
    return order


async def delete_order(
    session: AsyncSession,
    order_id: uuid.UUID,
    pharmacy_id: uuid.UUID,
) -> PurchaseOrder:
    order = await get_order_for_update(session, order_id, pharmacy_id)
    if order.status not in DELETABLE_STATUSES:
        raise TerminalStateError(
            order.status,
            f"Cannot delete purchase order in '{order.status}' status",
        )

    await session.execute(
        delete(PurchaseOrderLine).where(PurchaseOrderLine.purchase_order_id == order.id)
    )
    await session.delete(order)
    await session.flush()

    logger.info("po_deleted", po_id=str(order_id), order_number=order.order_number)
    return order


async def get_order(
    session: AsyncSession,
    order_id: uuid.UUID,
    pharmacy_id: uuid.UUID,
) -> tuple[PurchaseOrder, list[PurchaseOrderLine]]:
    result = await session.execute(
        select(PurchaseOrder).where(
            PurchaseOrder.id == order_id,
            PurchaseOrder.pharmacy_id == pharmacy_id,
        )
    )
    order = result.scalar_one_or_none()
    if not order:
        raise NotFoundError()
    return order, await get_line_items(session, order.id)


async def list_orders(
    session: AsyncSession,
    pharmacy_id: uuid.UUID,
    status: Optional[PurchaseOrderStatus] = None,
    page: int = 1,
    limit: int = 50,
) -> tuple[list[tuple[PurchaseOrder, int, int]], int]:
    """Newest orders first, each with its line count and total ordered quantity."""
    q = select(PurchaseOrder).where(PurchaseOrder.pharmacy_id == pharmacy_id)
    count_q = select(func.count(PurchaseOrder.id)).where(
        PurchaseOrder.pharmacy_id == pharmacy_id
    )
    if status:
        q = q.where(PurchaseOrder.status == status.value)
        count_q = count_q.where(PurchaseOrder.status == status.value)

    total = (await session.execute(count_q)).scalar() or 0
    result = await session.execute(
        q.order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.order_number.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    orders = list(result.scalars().all())

    # Batch-load line aggregates in a single query instead of one per order
    totals: dict = {}
    if orders:
        agg = await session.execute(
            select(
                PurchaseOrderLine.purchase_order_id,
                func.count(PurchaseOrderLine.id),
                func.coalesce(func.sum(PurchaseOrderLine.quantity), 0),
            )
            .where(PurchaseOrderLine.purchase_order_id.in_([o.id for o in orders]))
            .group_by(PurchaseOrderLine.purchase_order_id)
        )
        for po_id, item_count, qty in agg.all():
            totals[po_id] = (int(item_count), int(qty))

    return [(o, *totals.get(o.id, (0, 0))) for o in orders], int(total)
