"""
Integration tests: pharmacy scoping.

Every operation called with another pharmacy's id must answer NOT_FOUND
and leave the order untouched.
"""

import pytest

from conftest import OTHER_PHARMACY_ID, PHARMACY_ID, order_params, stock_of
from pharmacy_api.services import purchase_order_service as po_service


async def _assert_untouched(session, order):
    fetched = await po_service.get_purchase_order_by_id(session, order.id, PHARMACY_ID)
    assert fetched.success
    assert fetched.data.status == order.status
    assert fetched.data.total_cost == order.total_cost
    assert [(li.id, li.received_quantity) for li in fetched.data.lines] == [
        (li.id, li.received_quantity) for li in order.lines
    ]


@pytest.mark.asyncio
async def test_get_from_other_pharmacy(session, draft_order):
    result = await po_service.get_purchase_order_by_id(session, draft_order.id, OTHER_PHARMACY_ID)
    assert result.success is False
    assert result.error_code == "NOT_FOUND"


@pytest.mark.asyncio
async def test_list_from_other_pharmacy_is_empty(session, draft_order):
    result = await po_service.get_purchase_orders(session, OTHER_PHARMACY_ID)
    assert result.success
    assert result.data.data == []
    assert result.data.pagination.total == 0


@pytest.mark.asyncio
async def test_update_from_other_pharmacy(session, products, draft_order):
    result = await po_service.update_purchase_order(
        session, draft_order.id, order_params(products, quantities=(1, 1)), OTHER_PHARMACY_ID
    )
    assert result.error_code == "NOT_FOUND"
    await _assert_untouched(session, draft_order)


@pytest.mark.asyncio
async def test_status_update_from_other_pharmacy(session, draft_order):
    result = await po_service.update_purchase_order_status(
        session, draft_order.id, "CANCELLED", OTHER_PHARMACY_ID
    )
    assert result.error_code == "NOT_FOUND"
    await _assert_untouched(session, draft_order)


@pytest.mark.asyncio
async def test_delete_from_other_pharmacy(session, draft_order):
    result = await po_service.delete_purchase_order(session, draft_order.id, OTHER_PHARMACY_ID)
    assert result.error_code == "NOT_FOUND"
    await _assert_untouched(session, draft_order)


@pytest.mark.asyncio
async def test_confirm_from_other_pharmacy(session, draft_order):
    line1, line2 = draft_order.lines
    result = await po_service.confirm_purchase_order(
        session,
        draft_order.id,
        OTHER_PHARMACY_ID,
        {line1.id: {"unit_cost": "2.50", "available": True}, line2.id: {"available": False}},
    )
    assert result.error_code == "NOT_FOUND"
    await _assert_untouched(session, draft_order)


@pytest.mark.asyncio
async def test_receive_from_other_pharmacy(session, session_factory, products, confirmed_order):
    line_id = confirmed_order.lines[0].id
    partial = await po_service.partially_receive_items(
        session, confirmed_order.id, OTHER_PHARMACY_ID, {line_id: 4}
    )
    full = await po_service.receive_all_items(session, confirmed_order.id, OTHER_PHARMACY_ID)

    assert partial.error_code == "NOT_FOUND"
    assert full.error_code == "NOT_FOUND"
    assert (await stock_of(session_factory, products[0].id))[0] == 10
    await _assert_untouched(session, confirmed_order)


@pytest.mark.asyncio
async def test_order_for_other_pharmacy_cannot_touch_our_catalog(
    session, session_factory, products
):
    """Products are scoped too: a foreign pharmacy's order can not restock ours."""
    created = await po_service.create_purchase_order(
        session, order_params(products[:1], quantities=(3,)), OTHER_PHARMACY_ID
    )
    line = created.data.lines[0]
    await po_service.confirm_purchase_order(
        session, created.data.id, OTHER_PHARMACY_ID,
        {line.id: {"unit_cost": "1.00", "available": True}},
    )

    result = await po_service.receive_all_items(session, created.data.id, OTHER_PHARMACY_ID)
    assert result.success is False
    assert result.error_code == "NOT_FOUND"
    assert (await stock_of(session_factory, products[0].id))[0] == 10
