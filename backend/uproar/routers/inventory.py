"""
Inventory API Router.

Reservation lifecycle endpoints for the checkout and payment flows, plus
advisory availability reads and the low stock report.
"""

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from uproar.auth_middleware import Actor
from uproar.config import get_settings
from uproar.routers.dependencies import get_inventory_service, require_admin_section, require_permission
from uproar.services.inventory import (
    InsufficientStockError,
    InvalidInventoryRequestError,
    InventoryError,
    InventoryItem,
    InventoryService,
    ItemKind,
    LowStockItem,
)
from uproar.services.permissions import Action, Resource
from uproar.services.transactions import TransactionError

router = APIRouter()

settings = get_settings()

RETRY_AFTER_SECONDS = 1

can_manage_inventory = require_permission(Resource.PRODUCTS_INVENTORY, Action.UPDATE)


class OrderItemsRequest(BaseModel):
    """Line items of one order."""
    order_id: str
    items: List[InventoryItem]


class ItemsRequest(BaseModel):
    items: List[InventoryItem]


class SetStockRequest(BaseModel):
    kind: ItemKind
    subject_id: int
    quantity: int
    variant: Optional[str] = None


class InventoryResult(BaseModel):
    success: bool
    order_id: str


class AvailabilityResponse(BaseModel):
    available: bool


def _raise_for(exc: Exception) -> None:
    """Translate engine failures into HTTP errors."""
    if isinstance(exc, InvalidInventoryRequestError):
        raise HTTPException(status_code=400, detail={"code": exc.code, "message": exc.message})

    if isinstance(exc, InsufficientStockError):
        raise HTTPException(status_code=409, detail={
            "code": exc.code,
            "message": exc.message,
            "kind": exc.kind.value,
            "subject_id": exc.subject_id,
            "variant": exc.variant,
            "requested": exc.requested,
            "available": exc.available,
        })

    if isinstance(exc, InventoryError):
        raise HTTPException(status_code=409, detail={"code": exc.code, "message": exc.message})

    if isinstance(exc, TransactionError):
        # Infrastructure failure: the client may retry the whole request
        raise HTTPException(
            status_code=503,
            detail={"code": exc.code, "message": exc.message},
            headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
        )

    raise exc


@router.post("/reserve", response_model=InventoryResult)
async def reserve(
    body: OrderItemsRequest,
    actor: Actor = Depends(can_manage_inventory),
    service: InventoryService = Depends(get_inventory_service),
):
    """Reserve every line item of an order, all-or-nothing."""
    try:
        await service.reserve_inventory(body.items, body.order_id)
    except (InventoryError, TransactionError) as e:
        _raise_for(e)
    return InventoryResult(success=True, order_id=body.order_id)


@router.post("/release", response_model=InventoryResult)
async def release(
    body: OrderItemsRequest,
    actor: Actor = Depends(can_manage_inventory),
    service: InventoryService = Depends(get_inventory_service),
):
    """Give reserved units back (order cancelled or payment failed)."""
    try:
        await service.release_inventory(body.items, body.order_id)
    except (InventoryError, TransactionError) as e:
        _raise_for(e)
    return InventoryResult(success=True, order_id=body.order_id)


@router.post("/commit", response_model=InventoryResult)
async def commit(
    body: OrderItemsRequest,
    actor: Actor = Depends(can_manage_inventory),
    service: InventoryService = Depends(get_inventory_service),
):
    """Turn a reservation into a sale (payment captured)."""
    try:
        await service.commit_inventory(body.items, body.order_id)
    except (InventoryError, TransactionError) as e:
        _raise_for(e)
    return InventoryResult(success=True, order_id=body.order_id)


@router.post("/availability", response_model=AvailabilityResponse)
async def availability(
    body: ItemsRequest,
    service: InventoryService = Depends(get_inventory_service),
):
    """Advisory: may be stale by the time the client acts on it."""
    return AvailabilityResponse(available=await service.check_availability(body.items))


@router.post("/stock-levels", response_model=Dict[str, int])
async def stock_levels(
    body: ItemsRequest,
    service: InventoryService = Depends(get_inventory_service),
):
    return await service.get_stock_levels(body.items)


@router.get("/low-stock", response_model=List[LowStockItem])
async def low_stock(
    threshold: Optional[int] = Query(None, ge=0),
    actor: Actor = Depends(require_admin_section("products")),
    service: InventoryService = Depends(get_inventory_service),
):
    """Stock records at or below `threshold` (defaults to LOW_STOCK_THRESHOLD)."""
    if threshold is None:
        threshold = settings.LOW_STOCK_THRESHOLD
    return await service.get_low_stock_items(threshold)


@router.put("/stock")
async def set_stock(
    body: SetStockRequest,
    actor: Actor = Depends(can_manage_inventory),
    service: InventoryService = Depends(get_inventory_service),
):
    """Create or restock a game or merch size."""
    try:
        await service.set_stock(body.kind, body.subject_id, body.quantity, body.variant)
    except (InventoryError, TransactionError) as e:
        _raise_for(e)
    return {
        "success": True,
        "kind": body.kind.value,
        "subject_id": body.subject_id,
        "variant": body.variant,
        "quantity": body.quantity,
    }
