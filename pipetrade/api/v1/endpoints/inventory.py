"""
API endpoints for heat-wise inventory and stock issues.

Stock rows are created by GRNs; here they are listed, located and moved
through QC statuses. Stock issues hand heats over against a sales order.
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from pipetrade.api.deps import DB, Access, require_access
from pipetrade.models.inventory import StockStatus
from pipetrade.models.user import User
from pipetrade.schemas.inventory import (
    InventoryStockResponse, InventoryStockUpdate, InventoryStockListResponse,
    StockIssueCreate, StockIssueResponse, StockIssueListResponse,
)
from pipetrade.services.inventory_service import InventoryService

router = APIRouter()


# ==================== Stock ====================

@router.get("/stock", response_model=InventoryStockListResponse)
async def list_stock(
    db: DB,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    status_filter: Optional[StockStatus] = Query(None, alias="status"),
    product: Optional[str] = None,
    size_label: Optional[str] = None,
    heat_no: Optional[str] = None,
    current_user: User = Depends(require_access("inventory", "read")),
):
    stocks, total = await InventoryService(db).list_stock(
        status_filter.value if status_filter else None, product, size_label, heat_no, skip, limit
    )
    return InventoryStockListResponse(
        items=[InventoryStockResponse.model_validate(s) for s in stocks],
        total=total,
        page=(skip // limit) + 1,
        size=limit,
        pages=(total + limit - 1) // limit,
    )


@router.get("/stock/{stock_id}", response_model=InventoryStockResponse)
async def get_stock(
    stock_id: UUID,
    db: DB,
    current_user: User = Depends(require_access("inventory", "read")),
):
    return await InventoryService(db).get_stock(stock_id)


@router.patch("/stock/{stock_id}", response_model=InventoryStockResponse)
async def update_stock(
    stock_id: UUID,
    data: InventoryStockUpdate,
    db: DB,
    access: Access,
):
    """
    Update location/rack/notes or the QC status of a heat.

    Status changes are limited to QC, Management and Admin. Rejecting a
    heat raises an NCR.
    """
    access.check("inventory", "read")
    return await InventoryService(db).update_stock(stock_id, data, access)


# ==================== Stock Issue ====================

@router.get("/stock-issues", response_model=StockIssueListResponse)
async def list_stock_issues(
    db: DB,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    sales_order_id: Optional[UUID] = None,
    current_user: User = Depends(require_access("stockIssue", "read")),
):
    issues, total = await InventoryService(db).list_issues(sales_order_id, skip, limit)
    return StockIssueListResponse(
        items=[StockIssueResponse.model_validate(i) for i in issues],
        total=total,
        page=(skip // limit) + 1,
        size=limit,
        pages=(total + limit - 1) // limit,
    )


@router.post("/stock-issues", response_model=StockIssueResponse, status_code=status.HTTP_201_CREATED)
async def create_stock_issue(
    data: StockIssueCreate,
    db: DB,
    current_user: User = Depends(require_access("stockIssue", "write")),
):
    """Issue ACCEPTED or RESERVED heats against an open sales order."""
    return await InventoryService(db).create_issue(data, current_user)


@router.get("/stock-issues/{issue_id}", response_model=StockIssueResponse)
async def get_stock_issue(
    issue_id: UUID,
    db: DB,
    current_user: User = Depends(require_access("stockIssue", "read")),
):
    return await InventoryService(db).get_issue(issue_id)
