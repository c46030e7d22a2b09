"""
Receiving reconciler — records physically received quantities.

Received quantities are absolute: each call carries the new cumulative
total for a line, never a delta. When inventory updates are on, only the
positive difference against the stored value reaches the catalog, so
re-submitting the same figures never double counts and a lower figure
never takes stock away.

Uses the caller's session (no commit). Line updates, stock increments and
the status write share one transaction.
"""

import uuid

from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from pharmacy_api.exceptions import TerminalStateError, ValidationError
from pharmacy_api.models.purchase_order import (
    PurchaseOrder,
    PurchaseOrderLine,
    PurchaseOrderStatus,
)
from pharmacy_api.services.catalog_service import increment_stock
from pharmacy_api.services.order_builder import get_line_items, get_order_for_update
from pharmacy_api.services.status_projector import project_status

logger = structlog.get_logger()

RECEIVABLE_STATUSES = frozenset({
    PurchaseOrderStatus.CONFIRMED,
    PurchaseOrderStatus.PARTIALLY_RECEIVED,
    PurchaseOrderStatus.RECEIVED,
})


def _validate_received(
    lines_by_id: dict[uuid.UUID, PurchaseOrderLine],
    received_items: dict[uuid.UUID, int],
) -> None:
    for line_id, qty in received_items.items():
        li = lines_by_id.get(line_id)
        if li is None:
            raise ValidationError(
                f"Line item '{line_id}' not found on this purchase order"
            )
        if qty < 0:
            raise ValidationError("Received quantity cannot be negative")
        if qty > li.quantity:
            raise ValidationError(
                f"Received quantity ({qty}) exceeds ordered quantity "
                f"({li.quantity}) for line item '{line_id}'"
            )


async def _load_receivable_order(
    session: AsyncSession,
    order_id: uuid.UUID,
    pharmacy_id: uuid.UUID,
) -> tuple[PurchaseOrder, list[PurchaseOrderLine]]:
    order = await get_order_for_update(session, order_id, pharmacy_id)
    if order.status not in RECEIVABLE_STATUSES:
        raise TerminalStateError(
            order.status,
            f"Cannot receive items for purchase order in '{order.status}' status",
        )
    return order, await get_line_items(session, order.id)


async def _apply_receipts(
    session: AsyncSession,
    order: PurchaseOrder,
    lines: list[PurchaseOrderLine],
    received_items: dict[uuid.UUID, int],
    update_inventory: bool,
) -> PurchaseOrder:
    lines_by_id = {li.id: li for li in lines}
    _validate_received(lines_by_id, received_items)

    for line_id, qty in received_items.items():
        if qty <= 0:
            continue
        li = lines_by_id[line_id]
        previous = li.received_quantity or 0
        li.received_quantity = qty

        delta = qty - previous
        if update_inventory and delta > 0:
            await increment_stock(
                session,
                product_id=li.product_id,
                pharmacy_id=order.pharmacy_id,
                delta=delta,
                new_cost_price=li.unit_cost,
            )
        elif delta < 0:
            logger.warning(
                "po_line_received_quantity_lowered",
                po_id=str(order.id),
                line_id=str(line_id),
                previous=previous,
                received=qty,
            )

        logger.info(
            "po_line_received",
            po_id=str(order.id),
            line_id=str(line_id),
            received=qty,
            stock_delta=delta if update_inventory and delta > 0 else 0,
        )

    before = order.status
    order.status = project_status(lines).value
    await session.flush()

    logger.info(
        "po_receipt_reconciled",
        po_id=str(order.id),
        before=before,
        after=order.status,
        update_inventory=update_inventory,
    )
    return order


async def receive_items(
    session: AsyncSession,
    order_id: uuid.UUID,
    pharmacy_id: uuid.UUID,
    received_items: dict[uuid.UUID, int],
    update_inventory: bool = True,
) -> PurchaseOrder:
    order, lines = await _load_receivable_order(session, order_id, pharmacy_id)
    return await _apply_receipts(session, order, lines, received_items, update_inventory)


async def receive_all_items(
    session: AsyncSession,
    order_id: uuid.UUID,
    pharmacy_id: uuid.UUID,
    update_inventory: bool = True,
) -> PurchaseOrder:
    """Mark every line as received in full."""
    order, lines = await _load_receivable_order(session, order_id, pharmacy_id)
    received_items = {li.id: li.quantity for li in lines}
    return await _apply_receipts(session, order, lines, received_items, update_inventory)

