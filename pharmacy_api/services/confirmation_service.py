"""
Confirmation processor — applies supplier-confirmed pricing and availability.

Lines the supplier cannot deliver are deleted for good; the remaining lines
are priced and their total becomes the order's total_cost snapshot. Uses the
caller's session (no commit): the line writes and the status/total write land
in one transaction or not at all.
"""

from decimal import Decimal, ROUND_HALF_UP
import uuid

from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from pharmacy_api.exceptions import TerminalStateError, ValidationError
from pharmacy_api.models.purchase_order import PurchaseOrder, PurchaseOrderStatus
from pharmacy_api.schemas.purchase_order import ConfirmedItem
from pharmacy_api.services.order_builder import get_line_items, get_order_for_update

logger = structlog.get_logger()

CENT = Decimal("0.01")

CONFIRMABLE_STATUSES = frozenset({
    PurchaseOrderStatus.DRAFT,
    PurchaseOrderStatus.EXPORTED,
    PurchaseOrderStatus.SUBMITTED,
})


async def confirm_order(
    session: AsyncSession,
    order_id: uuid.UUID,
    pharmacy_id: uuid.UUID,
    confirmed_items: dict[uuid.UUID, ConfirmedItem],
) -> PurchaseOrder:
    order = await get_order_for_update(session, order_id, pharmacy_id)
    if order.status not in CONFIRMABLE_STATUSES:
        raise TerminalStateError(
            order.status,
            f"Cannot confirm purchase order in '{order.status}' status",
        )

    lines = await get_line_items(session, order.id)
    line_ids = {li.id for li in lines}

    # Validate everything before the first write
    unknown = [str(k) for k in confirmed_items if k not in line_ids]
    if unknown:
        raise ValidationError(
            f"Line item '{unknown[0]}' not found on this purchase order"
        )
    missing = [li for li in lines if li.id not in confirmed_items]
    if missing:
        raise ValidationError(
            f"Missing confirmation for line item '{missing[0].id}'"
        )

    total = Decimal("0.00")
    removed = 0
    for li in lines:
        item = confirmed_items[li.id]
        if not item.available:
            await session.delete(li)
            removed += 1
            continue
        unit_cost = Decimal(item.unit_cost)
        li.unit_cost = unit_cost
        total += (unit_cost * li.quantity).quantize(CENT, rounding=ROUND_HALF_UP)

    order.status = PurchaseOrderStatus.CONFIRMED.value
    order.total_cost = total
    await session.flush()

    logger.info(
        "po_confirmed",
        po_id=str(order.id),
        total_cost=str(total),
        lines_kept=len(lines) - removed,
        lines_removed=removed,
    )
    return order
