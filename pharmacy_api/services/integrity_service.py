"""
Consistency checks over stored purchase orders.

Read-only. Reports orders whose persisted state disagrees with what the
lifecycle rules say it must be.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from pharmacy_api.models.purchase_order import (
    PurchaseOrder,
    PurchaseOrderLine,
    PurchaseOrderStatus,
)
from pharmacy_api.services.status_projector import project_status

logger = structlog.get_logger()

CENT = Decimal("0.01")

# Orders whose status must equal the projection of their lines
PROJECTED_STATUSES = frozenset({
    PurchaseOrderStatus.CONFIRMED,
    PurchaseOrderStatus.PARTIALLY_RECEIVED,
    PurchaseOrderStatus.RECEIVED,
})


@dataclass
class Inconsistency:
    po_id: str
    order_number: str
    code: str  # STATUS_MISMATCH, TOTAL_MISMATCH, UNPRICED_LINE, OVER_RECEIVED
    message: str


def check_order(order: PurchaseOrder, lines: list[PurchaseOrderLine]) -> list[Inconsistency]:
    found: list[Inconsistency] = []

    def _add(code: str, message: str):
        found.append(Inconsistency(str(order.id), order.order_number, code, message))

    for li in lines:
        if (li.received_quantity or 0) > li.quantity:
            _add(
                "OVER_RECEIVED",
                f"Line {li.line_number} received {li.received_quantity} of {li.quantity}",
            )

    if order.status not in PROJECTED_STATUSES:
        return found

    unpriced = [li for li in lines if li.unit_cost is None or li.unit_cost <= 0]
    for li in unpriced:
        _add("UNPRICED_LINE", f"Line {li.line_number} has no positive unit cost")

    expected = project_status(lines).value
    if order.status != expected:
        _add("STATUS_MISMATCH", f"Stored status '{order.status}', lines say '{expected}'")

    if not unpriced:
        total = sum(
            ((li.unit_cost * li.quantity).quantize(CENT, rounding=ROUND_HALF_UP) for li in lines),
            Decimal("0.00"),
        )
        if Decimal(order.total_cost) != total:
            _add("TOTAL_MISMATCH", f"Stored total {order.total_cost}, lines sum to {total}")

    return found


async def find_inconsistencies(
    session: AsyncSession,
    pharmacy_id: Optional[uuid.UUID] = None,
) -> list[Inconsistency]:
    q = select(PurchaseOrder)
    if pharmacy_id:
        q = q.where(PurchaseOrder.pharmacy_id == pharmacy_id)
    orders = list((await session.execute(q.order_by(PurchaseOrder.created_at))).scalars().all())

    lines_by_order: dict = {}
    if orders:
        li_result = await session.execute(
            select(PurchaseOrderLine)
            .where(PurchaseOrderLine.purchase_order_id.in_([o.id for o in orders]))
            .order_by(PurchaseOrderLine.line_number)
        )
        for li in li_result.scalars().all():
            lines_by_order.setdefault(li.purchase_order_id, []).append(li)

    found: list[Inconsistency] = []
    for order in orders:
        found.extend(check_order(order, lines_by_order.get(order.id, [])))

    logger.info("po_integrity_checked", orders=len(orders), inconsistencies=len(found))
    return found
