"""
API endpoints for sales orders.

Besides CRUD this covers the stock side of an order: reserving heats,
checking what is available, shortfall analysis and raising a purchase
requisition for the shortfall.
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from pipetrade.api.deps import DB, require_access
from pipetrade.models.sales import SOStatus
from pipetrade.models.user import User
from pipetrade.schemas.inventory import InventoryStockResponse
from pipetrade.schemas.purchase import AutoPRResponse, PurchaseRequisitionResponse
from pipetrade.schemas.sales import (
    SalesOrderCreate, SalesOrderUpdate, SalesOrderResponse, SalesOrderListResponse,
    ReserveStockRequest, ReserveStockResponse, ReservationResponse,
    ShortfallAnalysis, AutoPRRequest,
)
from pipetrade.services.reservation_service import StockReservationService
from pipetrade.services.sales_service import SalesService

router = APIRouter()


@router.get("", response_model=SalesOrderListResponse)
async def list_sales_orders(
    db: DB,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    status_filter: Optional[SOStatus] = Query(None, alias="status"),
    customer_id: Optional[UUID] = None,
    current_user: User = Depends(require_access("salesOrder", "read")),
):
    orders, total = await SalesService(db).list_sales_orders(
        status_filter.value if status_filter else None, customer_id, skip, limit
    )
    return SalesOrderListResponse(
        items=[SalesOrderResponse.model_validate(o) for o in orders],
        total=total,
        page=(skip // limit) + 1,
        size=limit,
        pages=(total + limit - 1) // limit,
    )


@router.post("", response_model=SalesOrderResponse, status_code=status.HTTP_201_CREATED)
async def create_sales_order(
    data: SalesOrderCreate,
    db: DB,
    current_user: User = Depends(require_access("salesOrder", "write")),
):
    """Book an order from an approved/sent quotation or a customer PO."""
    return await SalesService(db).create_sales_order(data, current_user)


@router.get("/{sales_order_id}", response_model=SalesOrderResponse)
async def get_sales_order(
    sales_order_id: UUID,
    db: DB,
    current_user: User = Depends(require_access("salesOrder", "read")),
):
    return await SalesService(db).get_sales_order(sales_order_id)


@router.patch("/{sales_order_id}", response_model=SalesOrderResponse)
async def update_sales_order(
    sales_order_id: UUID,
    data: SalesOrderUpdate,
    db: DB,
    current_user: User = Depends(require_access("salesOrder", "write")),
):
    return await SalesService(db).update_sales_order(sales_order_id, data)


@router.delete("/{sales_order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_sales_order(
    sales_order_id: UUID,
    db: DB,
    current_user: User = Depends(require_access("salesOrder", "delete")),
):
    """Delete an order that has not been packed, invoiced or issued against."""
    await SalesService(db).delete_sales_order(sales_order_id)


# ==================== Stock Reservation ====================

@router.post("/{sales_order_id}/reserve", response_model=ReserveStockResponse, status_code=status.HTTP_201_CREATED)
async def reserve_stock(
    sales_order_id: UUID,
    data: ReserveStockRequest,
    db: DB,
    current_user: User = Depends(require_access("salesOrder", "write")),
):
    """Reserve an accepted heat for an order line. Warns when FIFO is not followed."""
    reservation, warning = await StockReservationService(db).reserve(sales_order_id, data, current_user)
    return ReserveStockResponse(
        reservation=ReservationResponse.model_validate(reservation),
        fifo_warning=warning,
    )


@router.get("/{sales_order_id}/reservations", response_model=List[ReservationResponse])
async def list_reservations(
    sales_order_id: UUID,
    db: DB,
    current_user: User = Depends(require_access("salesOrder", "read")),
):
    return await StockReservationService(db).list_reservations(sales_order_id)


@router.get("/{sales_order_id}/available-stock", response_model=List[InventoryStockResponse])
async def get_available_stock(
    sales_order_id: UUID,
    db: DB,
    so_item_id: UUID = Query(...),
    current_user: User = Depends(require_access("salesOrder", "read")),
):
    """ACCEPTED heats matching an order line, oldest MTC first."""
    return await StockReservationService(db).available_stock(sales_order_id, so_item_id)


@router.get("/{sales_order_id}/shortfall", response_model=ShortfallAnalysis)
async def get_shortfall(
    sales_order_id: UUID,
    db: DB,
    current_user: User = Depends(require_access("salesOrder", "read")),
):
    return await StockReservationService(db).shortfall(sales_order_id)


@router.post("/{sales_order_id}/auto-pr", response_model=AutoPRResponse)
async def create_auto_pr(
    sales_order_id: UUID,
    response: Response,
    db: DB,
    data: Optional[AutoPRRequest] = None,
    current_user: User = Depends(require_access("purchaseRequisition", "write")),
):
    """
    Raise a purchase requisition for the order's shortfall.

    Returns 201 with the requisition, or 200 with success=false when there
    is nothing (or too little) to requisition.
    """
    auto_submit = data.auto_submit if data else False
    result = await StockReservationService(db).create_auto_pr(sales_order_id, current_user, auto_submit)
    if not result.success:
        return AutoPRResponse(success=False, message=result.message)

    response.status_code = status.HTTP_201_CREATED
    return AutoPRResponse(
        success=True,
        message=result.message,
        requisition=PurchaseRequisitionResponse.model_validate(result.requisition),
    )
