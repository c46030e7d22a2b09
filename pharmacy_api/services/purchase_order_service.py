"""
Purchase order operations exposed to the route layer.

Every function here:
  - takes a session with no open transaction and runs its writes inside a
    single ``session.begin()`` block (all or nothing),
  - never raises; failures come back as ``ActionResult(success=False)``,
  - records an activity entry after a successful commit. Activity logging
    is best effort and can not turn a committed operation into a failure.
"""

from typing import Any, Optional, Union
import uuid

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from pharmacy_api.config import settings
from pharmacy_api.exceptions import (
    NotFoundError,
    PurchaseOrderError,
    StorageError,
    ValidationError,
)
from pharmacy_api.models.purchase_order import (
    PurchaseOrder,
    PurchaseOrderLine,
    PurchaseOrderStatus,
)
from pharmacy_api.schemas.common import ActionResult, PaginatedResponse, build_pagination
from pharmacy_api.schemas.purchase_order import (
    ConfirmPurchaseOrderRequest,
    PurchaseOrderCreate,
    PurchaseOrderLineResponse,
    PurchaseOrderResponse,
    PurchaseOrderSummary,
    PurchaseOrderUpdate,
    ReceiveItemsRequest,
    StatusUpdateRequest,
)
from pharmacy_api.services import activity_service
from pharmacy_api.services.activity_service import record_activity
from pharmacy_api.services.confirmation_service import confirm_order
from pharmacy_api.services.order_builder import (
    create_order,
    delete_order,
    get_line_items,
    get_order,
    list_orders,
    update_order,
    update_order_status,
)
from pharmacy_api.services.receiving_service import receive_all_items as reconcile_all
from pharmacy_api.services.receiving_service import receive_items as reconcile_items

logger = structlog.get_logger()

IdLike = Union[str, uuid.UUID]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _order_uuid(value: IdLike) -> uuid.UUID:
    """Malformed ids are indistinguishable from unknown ones."""
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError):
        raise NotFoundError()


def _line_uuid(value: IdLike) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError):
        raise ValidationError(f"Invalid line item id '{value}'")


def _first_error_message(exc: PydanticValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Validation failed"
    err = errors[0]
    ctx_error = (err.get("ctx") or {}).get("error")
    if err["type"] == "value_error" and ctx_error is not None:
        return str(ctx_error)
    loc = ".".join(str(part) for part in err.get("loc", ()))
    return f"{loc}: {err['msg']}" if loc else err["msg"]


def _failure(exc: Exception, fallback: str, **log_ctx) -> ActionResult:
    if isinstance(exc, PydanticValidationError):
        message = _first_error_message(exc)
        logger.info("po_operation_rejected", code=ValidationError.code, reason=message, **log_ctx)
        return ActionResult(success=False, message=message, error_code=ValidationError.code)
    if isinstance(exc, PurchaseOrderError) and not isinstance(exc, StorageError):
        logger.info("po_operation_rejected", code=exc.code, reason=exc.message, **log_ctx)
        return ActionResult(success=False, message=exc.message, error_code=exc.code)
    logger.exception("po_operation_failed", error=str(exc), **log_ctx)
    return ActionResult(success=False, message=fallback, error_code=StorageError.code)


def _line_to_response(li: PurchaseOrderLine) -> PurchaseOrderLineResponse:
    return PurchaseOrderLineResponse(
        id=str(li.id),
        product_id=str(li.product_id),
        quantity=li.quantity,
        unit_cost=li.unit_cost,
        received_quantity=li.received_quantity or 0,
    )


def _to_response(po: PurchaseOrder, lines: list[PurchaseOrderLine]) -> PurchaseOrderResponse:
    return PurchaseOrderResponse(
        id=str(po.id),
        pharmacy_id=str(po.pharmacy_id),
        order_number=po.order_number,
        supplier_id=str(po.supplier_id),
        user_id=str(po.user_id) if po.user_id else None,
        order_date=po.order_date.isoformat(),
        status=po.status,
        notes=po.notes,
        total_cost=po.total_cost,
        lines=[_line_to_response(li) for li in lines],
        created_at=po.created_at.isoformat() if po.created_at else "",
        updated_at=po.updated_at.isoformat() if po.updated_at else "",
    )


async def _log_activity(
    session: AsyncSession,
    action: str,
    pharmacy_id: uuid.UUID,
    details: Optional[dict] = None,
    user_id: Optional[IdLike] = None,
) -> None:
    try:
        async with session.begin():
            await record_activity(session, action, pharmacy_id, details, user_id)
    except Exception as e:
        logger.error("activity_log_failed", action=action, error=str(e))


# ---------------------------------------------------------------------------
# Order builder operations
# ---------------------------------------------------------------------------


async def create_purchase_order(
    session: AsyncSession,
    params: Union[dict, PurchaseOrderCreate],
    pharmacy_id: IdLike,
    user_id: Optional[IdLike] = None,
) -> ActionResult[PurchaseOrderResponse]:
    try:
        data = PurchaseOrderCreate.model_validate(params)
        pid = _order_uuid(pharmacy_id)
        uid = uuid.UUID(str(user_id)) if user_id else None
        async with session.begin():
            order = await create_order(session, pid, data, user_id=uid)
            response = _to_response(order, await get_line_items(session, order.id))
    except Exception as exc:
        return _failure(exc, "Failed to create purchase order", pharmacy_id=str(pharmacy_id))

    await _log_activity(
        session,
        activity_service.PO_CREATED,
        pid,
        {"id": response.id, "order_number": response.order_number},
        user_id,
    )
    return ActionResult(success=True, message="Purchase order created", data=response)


async def update_purchase_order(
    session: AsyncSession,
    order_id: IdLike,
    params: Union[dict, PurchaseOrderUpdate],
    pharmacy_id: IdLike,
) -> ActionResult[PurchaseOrderResponse]:
    try:
        data = PurchaseOrderUpdate.model_validate(params)
        oid, pid = _order_uuid(order_id), _order_uuid(pharmacy_id)
        async with session.begin():
            order = await update_order(session, oid, pid, data)
            response = _to_response(order, await get_line_items(session, order.id))
    except Exception as exc:
        return _failure(exc, "Failed to update purchase order", po_id=str(order_id))

    await _log_activity(session, activity_service.PO_UPDATED, pid, {"id": response.id})
    return ActionResult(success=True, message="Purchase order updated", data=response)


async def update_purchase_order_status(
    session: AsyncSession,
    order_id: IdLike,
    status: Union[str, PurchaseOrderStatus],
    pharmacy_id: IdLike,
) -> ActionResult[PurchaseOrderResponse]:
    try:
        target = StatusUpdateRequest.model_validate({"status": status}).status
        oid, pid = _order_uuid(order_id), _order_uuid(pharmacy_id)
        async with session.begin():
            order = await update_order_status(session, oid, pid, target)
            response = _to_response(order, await get_line_items(session, order.id))
    except Exception as exc:
        return _failure(exc, "Failed to update purchase order status", po_id=str(order_id))

    await _log_activity(
        session,
        activity_service.PO_STATUS_UPDATED,
        pid,
        {"id": response.id, "status": response.status},
    )
    return ActionResult(success=True, message="Purchase order status updated", data=response)


async def delete_purchase_order(
    session: AsyncSession,
    order_id: IdLike,
    pharmacy_id: IdLike,
) -> ActionResult:
    try:
        oid, pid = _order_uuid(order_id), _order_uuid(pharmacy_id)
        async with session.begin():
            order = await delete_order(session, oid, pid)
            order_number = order.order_number
    except Exception as exc:
        return _failure(exc, "Failed to delete purchase order", po_id=str(order_id))

    await _log_activity(
        session,
        activity_service.PO_DELETED,
        pid,
        {"id": str(oid), "order_number": order_number},
    )
    return ActionResult(success=True, message="Purchase order deleted successfully")


async def get_purchase_order_by_id(
    session: AsyncSession,
    order_id: IdLike,
    pharmacy_id: IdLike,
) -> ActionResult[PurchaseOrderResponse]:
    try:
        oid, pid = _order_uuid(order_id), _order_uuid(pharmacy_id)
        async with session.begin():
            order, lines = await get_order(session, oid, pid)
            response = _to_response(order, lines)
    except Exception as exc:
        return _failure(exc, "Failed to fetch purchase order", po_id=str(order_id))
    return ActionResult(success=True, data=response)


async def get_purchase_orders(
    session: AsyncSession,
    pharmacy_id: IdLike,
    status: Optional[Union[str, PurchaseOrderStatus]] = None,
    page: int = 1,
    limit: Optional[int] = None,
) -> ActionResult[PaginatedResponse[PurchaseOrderSummary]]:
    limit = limit or settings.DEFAULT_PAGE_SIZE
    try:
        status_filter = (
            StatusUpdateRequest.model_validate({"status": status}).status if status else None
        )
        pid = _order_uuid(pharmacy_id)
        async with session.begin():
            rows, total = await list_orders(session, pid, status_filter, page, limit)
            items = [
                PurchaseOrderSummary(
                    id=str(po.id),
                    order_number=po.order_number,
                    supplier_id=str(po.supplier_id),
                    order_date=po.order_date.isoformat(),
                    status=po.status,
                    notes=po.notes,
                    total_cost=po.total_cost,
                    total_items=total_items,
                    total_quantity=total_quantity,
                    created_at=po.created_at.isoformat() if po.created_at else "",
                )
                for po, total_items, total_quantity in rows
            ]
    except Exception as exc:
        return _failure(exc, "Failed to fetch purchase orders", pharmacy_id=str(pharmacy_id))

    return ActionResult(
        success=True,
        data=PaginatedResponse(data=items, pagination=build_pagination(page, limit, total)),
    )


# ---------------------------------------------------------------------------
# Confirmation
# ---------------------------------------------------------------------------


async def confirm_purchase_order(
    session: AsyncSession,
    order_id: IdLike,
    pharmacy_id: IdLike,
    confirmed_items: dict[str, Any],
) -> ActionResult[PurchaseOrderResponse]:
    try:
        request = ConfirmPurchaseOrderRequest.model_validate({"confirmed_items": confirmed_items})
        items = {_line_uuid(k): v for k, v in request.confirmed_items.items()}
        oid, pid = _order_uuid(order_id), _order_uuid(pharmacy_id)
        async with session.begin():
            order = await confirm_order(session, oid, pid, items)
            response = _to_response(order, await get_line_items(session, order.id))
    except Exception as exc:
        return _failure(exc, "Failed to confirm purchase order", po_id=str(order_id))

    await _log_activity(
        session,
        activity_service.PO_CONFIRMED,
        pid,
        {"id": response.id, "total_cost": str(response.total_cost)},
    )
    return ActionResult(
        success=True, message="Purchase order confirmed successfully", data=response
    )


# ---------------------------------------------------------------------------
# Receiving
# ---------------------------------------------------------------------------


async def _receive(
    session: AsyncSession,
    order_id: IdLike,
    pharmacy_id: IdLike,
    received_items: Optional[dict[str, Any]],
    update_inventory: bool,
    success_message: str,
) -> ActionResult[PurchaseOrderResponse]:
    try:
        oid, pid = _order_uuid(order_id), _order_uuid(pharmacy_id)
        if received_items is None:
            async with session.begin():
                order = await reconcile_all(session, oid, pid, update_inventory)
                response = _to_response(order, await get_line_items(session, order.id))
        else:
            request = ReceiveItemsRequest.model_validate(
                {"received_items": received_items, "update_inventory": update_inventory}
            )
            items = {_line_uuid(k): v for k, v in request.received_items.items()}
            async with session.begin():
                order = await reconcile_items(
                    session, oid, pid, items, request.update_inventory
                )
                response = _to_response(order, await get_line_items(session, order.id))
    except Exception as exc:
        return _failure(exc, "Failed to update receipt quantities", po_id=str(order_id))

    action = (
        activity_service.PO_RECEIVED
        if response.status == PurchaseOrderStatus.RECEIVED.value
        else activity_service.PO_PARTIALLY_RECEIVED
    )
    await _log_activity(
        session,
        action,
        pid,
        {"id": response.id, "status": response.status, "update_inventory": update_inventory},
    )
    return ActionResult(success=True, message=success_message, data=response)


async def update_received_quantities(
    session: AsyncSession,
    order_id: IdLike,
    pharmacy_id: IdLike,
    received_items: dict[str, Any],
    update_inventory: bool = True,
) -> ActionResult[PurchaseOrderResponse]:
    return await _receive(
        session, order_id, pharmacy_id, received_items, update_inventory,
        "Receipt quantities updated",
    )


async def partially_receive_items(
    session: AsyncSession,
    order_id: IdLike,
    pharmacy_id: IdLike,
    received_items: dict[str, Any],
    update_inventory: bool = True,
) -> ActionResult[PurchaseOrderResponse]:
    return await _receive(
        session, order_id, pharmacy_id, received_items, update_inventory,
        "Items received",
    )


async def receive_all_items(
    session: AsyncSession,
    order_id: IdLike,
    pharmacy_id: IdLike,
    update_inventory: bool = True,
) -> ActionResult[PurchaseOrderResponse]:
    return await _receive(
        session, order_id, pharmacy_id, None, update_inventory,
        "All items received",
    )
