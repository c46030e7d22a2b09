"""
Purchase order status projection.

Once an order is CONFIRMED its status is a function of the
(quantity, received_quantity) pairs of its lines:

  1. every line received in full          -> RECEIVED
  2. otherwise any line with a receipt    -> PARTIALLY_RECEIVED
  3. otherwise                            -> CONFIRMED

Rule 2 also matches a line that is fully received; rule 1 is evaluated
first so the two never conflict.
"""

from typing import Iterable, Protocol

from pharmacy_api.models.purchase_order import PurchaseOrderStatus


class ReceivableLine(Protocol):
    quantity: int
    received_quantity: int


# Statuses that can be reached through each status; derived statuses
# (CONFIRMED and later) are only ever written by confirmation/receiving.
ALLOWED_TRANSITIONS: dict[PurchaseOrderStatus, frozenset[PurchaseOrderStatus]] = {
    PurchaseOrderStatus.DRAFT: frozenset({
        PurchaseOrderStatus.EXPORTED,
        PurchaseOrderStatus.SUBMITTED,
        PurchaseOrderStatus.CONFIRMED,
        PurchaseOrderStatus.CANCELLED,
    }),
    PurchaseOrderStatus.EXPORTED: frozenset({
        PurchaseOrderStatus.SUBMITTED,
        PurchaseOrderStatus.CONFIRMED,
        PurchaseOrderStatus.CANCELLED,
    }),
    PurchaseOrderStatus.SUBMITTED: frozenset({
        PurchaseOrderStatus.CONFIRMED,
        PurchaseOrderStatus.CANCELLED,
    }),
    PurchaseOrderStatus.CONFIRMED: frozenset({
        PurchaseOrderStatus.PARTIALLY_RECEIVED,
        PurchaseOrderStatus.RECEIVED,
        PurchaseOrderStatus.CANCELLED,
    }),
    PurchaseOrderStatus.PARTIALLY_RECEIVED: frozenset({
        PurchaseOrderStatus.RECEIVED,
        PurchaseOrderStatus.CANCELLED,
    }),
    PurchaseOrderStatus.RECEIVED: frozenset(),
    PurchaseOrderStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)

DERIVED_STATUSES = frozenset({
    PurchaseOrderStatus.CONFIRMED,
    PurchaseOrderStatus.PARTIALLY_RECEIVED,
    PurchaseOrderStatus.RECEIVED,
})


def is_fully_received(lines: Iterable[ReceivableLine]) -> bool:
    return all((li.received_quantity or 0) >= li.quantity for li in lines)


def has_any_receipt(lines: Iterable[ReceivableLine]) -> bool:
    return any((li.received_quantity or 0) > 0 for li in lines)


def project_status(lines: Iterable[ReceivableLine]) -> PurchaseOrderStatus:
    lines = list(lines)
    # A confirmed order always keeps at least one line
    if not lines:
        return PurchaseOrderStatus.CONFIRMED
    if is_fully_received(lines):
        return PurchaseOrderStatus.RECEIVED
    if has_any_receipt(lines):
        return PurchaseOrderStatus.PARTIALLY_RECEIVED
    return PurchaseOrderStatus.CONFIRMED


def can_transition(current: str, target: str) -> bool:
    try:
        current_status = PurchaseOrderStatus(current)
        target_status = PurchaseOrderStatus(target)
    except ValueError:
        return False
    return target_status in ALLOWED_TRANSITIONS[current_status]
