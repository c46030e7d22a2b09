"""
Unit tests for pharmacy_api/services/status_projector.py

Pure functions — no database.
"""

import itertools
from types import SimpleNamespace

import pytest

from pharmacy_api.models.purchase_order import PurchaseOrderStatus
from pharmacy_api.services.status_projector import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    can_transition,
    has_any_receipt,
    is_fully_received,
    project_status,
)


def _line(quantity: int, received: int):
    return SimpleNamespace(quantity=quantity, received_quantity=received)


# ---------------------------------------------------------------------------
# project_status
# ---------------------------------------------------------------------------


def test_nothing_received_stays_confirmed():
    assert project_status([_line(10, 0), _line(5, 0)]) == PurchaseOrderStatus.CONFIRMED


def test_some_received_is_partial():
    assert project_status([_line(10, 4)]) == PurchaseOrderStatus.PARTIALLY_RECEIVED


def test_one_line_complete_other_untouched_is_partial():
    """A fully received line still counts as 'some receipt'."""
    lines = [_line(10, 10), _line(5, 0)]
    assert project_status(lines) == PurchaseOrderStatus.PARTIALLY_RECEIVED


def test_all_complete_is_received():
    assert project_status([_line(10, 10), _line(5, 5)]) == PurchaseOrderStatus.RECEIVED


def test_over_received_counts_as_complete():
    assert project_status([_line(10, 12)]) == PurchaseOrderStatus.RECEIVED


def test_empty_line_set_is_confirmed():
    assert project_status([]) == PurchaseOrderStatus.CONFIRMED


def test_null_received_quantity_treated_as_zero():
    assert project_status([_line(3, None)]) == PurchaseOrderStatus.CONFIRMED


def test_accepts_generator():
    lines = (_line(2, 2) for _ in range(3))
    assert project_status(lines) == PurchaseOrderStatus.RECEIVED


def test_projection_is_total_and_stable():
    allowed = {
        PurchaseOrderStatus.CONFIRMED,
        PurchaseOrderStatus.PARTIALLY_RECEIVED,
        PurchaseOrderStatus.RECEIVED,
    }
    for pairs in itertools.product([(3, 0), (3, 1), (3, 3), (1, 0), (1, 1)], repeat=2):
        lines = [_line(q, r) for q, r in pairs]
        first = project_status(lines)
        assert first in allowed
        assert project_status(lines) == first


def test_helper_predicates():
    lines = [_line(4, 4), _line(2, 0)]
    assert has_any_receipt(lines) is True
    assert is_fully_received(lines) is False
    assert is_fully_received([_line(4, 4)]) is True
    assert has_any_receipt([_line(4, 0)]) is False


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


def test_terminal_statuses():
    assert TERMINAL_STATUSES == {PurchaseOrderStatus.RECEIVED, PurchaseOrderStatus.CANCELLED}


@pytest.mark.parametrize(
    "current,target,expected",
    [
        ("DRAFT", "EXPORTED", True),
        ("DRAFT", "SUBMITTED", True),
        ("DRAFT", "CONFIRMED", True),
        ("DRAFT", "RECEIVED", False),
        ("CONFIRMED", "PARTIALLY_RECEIVED", True),
        ("CONFIRMED", "DRAFT", False),
        ("PARTIALLY_RECEIVED", "RECEIVED", True),
        ("PARTIALLY_RECEIVED", "CANCELLED", True),
        ("RECEIVED", "CANCELLED", False),
        ("CANCELLED", "DRAFT", False),
        ("DRAFT", "SHIPPED", False),
    ],
)
def test_can_transition(current, target, expected):
    assert can_transition(current, target) is expected


def test_every_status_has_transition_entry():
    assert set(ALLOWED_TRANSITIONS) == set(PurchaseOrderStatus)
