from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from pharmacy_api.database import get_session
from pharmacy_api.exceptions import NotFoundError, StorageError, TerminalStateError, ValidationError
from pharmacy_api.middleware.auth import get_current_user
from pharmacy_api.middleware.tenant import get_pharmacy_id
from pharmacy_api.models.purchase_order import PurchaseOrderStatus
from pharmacy_api.schemas.common import ActionResult
from pharmacy_api.schemas.purchase_order import (
    ConfirmPurchaseOrderRequest,
    PurchaseOrderCreate,
    PurchaseOrderUpdate,
    ReceiveAllRequest,
    ReceiveItemsRequest,
    StatusUpdateRequest,
)
from pharmacy_api.services import purchase_order_service as po_service

router = APIRouter()

ERROR_STATUS = {
    ValidationError.code: status.HTTP_400_BAD_REQUEST,
    NotFoundError.code: status.HTTP_404_NOT_FOUND,
    TerminalStateError.code: status.HTTP_409_CONFLICT,
    StorageError.code: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _respond(result: ActionResult, success_status: int = status.HTTP_200_OK) -> JSONResponse:
    if result.success:
        code = success_status
    else:
        code = ERROR_STATUS.get(result.error_code, status.HTTP_400_BAD_REQUEST)
    return JSONResponse(status_code=code, content=result.model_dump(mode="json"))


@router.get("")
async def list_purchase_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    po_status: Optional[PurchaseOrderStatus] = Query(None, alias="status"),
    pharmacy_id: str = Depends(get_pharmacy_id),
    db: AsyncSession = Depends(get_session),
):
    result = await po_service.get_purchase_orders(db, pharmacy_id, po_status, page, limit)
    return _respond(result)


@router.get("/{po_id}")
async def get_purchase_order(
    po_id: str,
    pharmacy_id: str = Depends(get_pharmacy_id),
    db: AsyncSession = Depends(get_session),
):
    return _respond(await po_service.get_purchase_order_by_id(db, po_id, pharmacy_id))


@router.post("")
async def create_purchase_order(
    body: PurchaseOrderCreate,
    current_user: dict = Depends(get_current_user),
    pharmacy_id: str = Depends(get_pharmacy_id),
    db: AsyncSession = Depends(get_session),
):
    result = await po_service.create_purchase_order(
        db, body, pharmacy_id, user_id=current_user["user_id"]
    )
    return _respond(result, success_status=status.HTTP_201_CREATED)


@router.put("/{po_id}")
async def update_purchase_order(
    po_id: str,
    body: PurchaseOrderUpdate,
    pharmacy_id: str = Depends(get_pharmacy_id),
    db: AsyncSession = Depends(get_session),
):
    return _respond(await po_service.update_purchase_order(db, po_id, body, pharmacy_id))


@router.patch("/{po_id}/status")
async def update_purchase_order_status(
    po_id: str,
    body: StatusUpdateRequest,
    pharmacy_id: str = Depends(get_pharmacy_id),
    db: AsyncSession = Depends(get_session),
):
    result = await po_service.update_purchase_order_status(db, po_id, body.status, pharmacy_id)
    return _respond(result)


@router.post("/{po_id}/confirm")
async def confirm_purchase_order(
    po_id: str,
    body: ConfirmPurchaseOrderRequest,
    pharmacy_id: str = Depends(get_pharmacy_id),
    db: AsyncSession = Depends(get_session),
):
    confirmed_items = body.model_dump()["confirmed_items"]
    result = await po_service.confirm_purchase_order(db, po_id, pharmacy_id, confirmed_items)
    return _respond(result)


@router.post("/{po_id}/receive")
async def receive_items(
    po_id: str,
    body: ReceiveItemsRequest,
    pharmacy_id: str = Depends(get_pharmacy_id),
    db: AsyncSession = Depends(get_session),
):
    result = await po_service.partially_receive_items(
        db, po_id, pharmacy_id, body.received_items, body.update_inventory
    )
    return _respond(result)


@router.post("/{po_id}/receive-all")
async def receive_all_items(
    po_id: str,
    body: Optional[ReceiveAllRequest] = None,
    pharmacy_id: str = Depends(get_pharmacy_id),
    db: AsyncSession = Depends(get_session),
):
    update_inventory = body.update_inventory if body else True
    result = await po_service.receive_all_items(db, po_id, pharmacy_id, update_inventory)
    return _respond(result)


@router.delete("/{po_id}")
async def delete_purchase_order(
    po_id: str,
    pharmacy_id: str = Depends(get_pharmacy_id),
    db: AsyncSession = Depends(get_session),
):
    return _respond(await po_service.delete_purchase_order(db, po_id, pharmacy_id))
