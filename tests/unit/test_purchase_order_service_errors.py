"""
Unit tests for the envelope behaviour of
pharmacy_api/services/purchase_order_service.py

The session is mocked; these tests only check that every failure comes back
as an ActionResult with the right error code and that nothing raises.
"""

import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from pharmacy_api.exceptions import NotFoundError, TerminalStateError, ValidationError
from pharmacy_api.services import purchase_order_service as po_service

PHARMACY_ID = str(uuid.uuid4())


def _mock_session() -> MagicMock:
    session = MagicMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    return session


def _create_params():
    return {
        "supplier_id": str(uuid.uuid4()),
        "order_date": "2026-10-18",
        "items": [{"product_id": str(uuid.uuid4()), "quantity": 2}],
    }


@pytest.mark.asyncio
async def test_unexpected_error_becomes_storage_error():
    session = _mock_session()
    with patch.object(po_service, "create_order", AsyncMock(side_effect=RuntimeError("db down"))):
        result = await po_service.create_purchase_order(session, _create_params(), PHARMACY_ID)

    assert result.success is False
    assert result.error_code == "STORAGE_ERROR"
    assert result.message == "Failed to create purchase order"
    assert "db down" not in result.message


@pytest.mark.asyncio
async def test_validation_failure_is_reported_not_raised():
    params = _create_params()
    params["items"] = []
    result = await po_service.create_purchase_order(_mock_session(), params, PHARMACY_ID)

    assert result.success is False
    assert result.error_code == "VALIDATION_ERROR"
    assert result.message == "At least one item is required"


@pytest.mark.asyncio
async def test_malformed_order_id_is_not_found():
    session = _mock_session()
    result = await po_service.get_purchase_order_by_id(session, "not-a-uuid", PHARMACY_ID)

    assert result.success is False
    assert result.error_code == "NOT_FOUND"
    session.begin.assert_not_called()


@pytest.mark.asyncio
async def test_malformed_line_id_is_validation_error():
    result = await po_service.partially_receive_items(
        _mock_session(), str(uuid.uuid4()), PHARMACY_ID, {"line-1": 2}
    )
    assert result.success is False
    assert result.error_code == "VALIDATION_ERROR"
    assert "line-1" in result.message


@pytest.mark.asyncio
async def test_domain_errors_keep_message_and_code():
    session = _mock_session()
    error = TerminalStateError("RECEIVED", "Cannot delete purchase order in 'RECEIVED' status")
    with patch.object(po_service, "delete_order", AsyncMock(side_effect=error)):
        result = await po_service.delete_purchase_order(session, str(uuid.uuid4()), PHARMACY_ID)

    assert result.success is False
    assert result.error_code == "TERMINAL_STATE"
    assert result.message == "Cannot delete purchase order in 'RECEIVED' status"


@pytest.mark.asyncio
async def test_not_found_from_service_layer():
    with patch.object(po_service, "get_order", AsyncMock(side_effect=NotFoundError())):
        result = await po_service.get_purchase_order_by_id(
            _mock_session(), str(uuid.uuid4()), PHARMACY_ID
        )
    assert result.error_code == "NOT_FOUND"
    assert result.message == "Purchase order not found"


@pytest.mark.asyncio
async def test_unknown_status_value_rejected():
    result = await po_service.update_purchase_order_status(
        _mock_session(), str(uuid.uuid4()), "SHIPPED", PHARMACY_ID
    )
    assert result.success is False
    assert result.error_code == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_confirm_payload_checked_before_touching_storage():
    session = _mock_session()
    result = await po_service.confirm_purchase_order(
        session,
        str(uuid.uuid4()),
        PHARMACY_ID,
        {str(uuid.uuid4()): {"unit_cost": "0", "available": True}},
    )
    assert result.success is False
    assert result.error_code == "VALIDATION_ERROR"
    assert result.message == "All available items must have a valid price greater than 0"
    session.begin.assert_not_called()


@pytest.mark.asyncio
async def test_activity_failure_does_not_fail_committed_operation():
    """The operation commits first; a broken activity write is only logged."""
    session = _mock_session()
    order = MagicMock()
    order.order_number = "PO-20261018090000"

    with patch.object(po_service, "delete_order", AsyncMock(return_value=order)), \
         patch.object(po_service, "record_activity", AsyncMock(side_effect=RuntimeError("boom"))):
        result = await po_service.delete_purchase_order(session, str(uuid.uuid4()), PHARMACY_ID)

    assert result.success is True
    assert result.message == "Purchase order deleted successfully"


@pytest.mark.asyncio
async def test_validation_error_from_service_layer():
    error = ValidationError("Received quantity cannot be negative")
    with patch.object(po_service, "reconcile_all", AsyncMock(side_effect=error)):
        result = await po_service.receive_all_items(
            _mock_session(), str(uuid.uuid4()), PHARMACY_ID
        )
    assert result.error_code == "VALIDATION_ERROR"
    assert result.message == "Received quantity cannot be negative"
