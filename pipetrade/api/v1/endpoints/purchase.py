"""
API endpoints for procurement: purchase requisitions and purchase orders.

PO workflow:
    DRAFT -> OPEN (release; approval needed at or above the threshold)
    OPEN -> PARTIALLY_RECEIVED -> FULLY_RECEIVED -> CLOSED (via GRNs)
    Amend (DRAFT or OPEN only): new version of the same PO number, source CANCELLED
    Variance: PO lines checked against the quotation behind its sales order
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from pipetrade.api.deps import DB, Access, require_access
from pipetrade.models.purchase import PurchaseOrder, RequisitionStatus, POStatus
from pipetrade.models.user import User
from pipetrade.schemas.purchase import (
    PurchaseRequisitionCreate, PurchaseRequisitionStatusUpdate,
    PurchaseRequisitionResponse, PurchaseRequisitionListResponse,
    PurchaseOrderCreate, PurchaseOrderUpdate, PurchaseOrderAmend,
    PurchaseOrderResponse, PurchaseOrderListResponse, POVarianceReport,
)
from pipetrade.services.purchase_service import PurchaseService

router = APIRouter()


async def _with_received_qty(service: PurchaseService, po: PurchaseOrder) -> PurchaseOrderResponse:
    """PO response with quantities received so far, per line and overall."""
    per_item, overall = await service.received_quantities(po)
    response = PurchaseOrderResponse.model_validate(po)
    for item in response.items:
        item.received_qty = float(per_item.get(item.id, 0))
    response.received_qty = float(overall)
    return response


# ==================== Purchase Requisitions ====================

@router.get("/requisitions", response_model=PurchaseRequisitionListResponse)
async def list_requisitions(
    db: DB,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    status_filter: Optional[RequisitionStatus] = Query(None, alias="status"),
    sales_order_id: Optional[UUID] = None,
    current_user: User = Depends(require_access("purchaseRequisition", "read")),
):
    requisitions, total = await PurchaseService(db).list_requisitions(
        status_filter.value if status_filter else None, sales_order_id, skip, limit
    )
    return PurchaseRequisitionListResponse(
        items=[PurchaseRequisitionResponse.model_validate(r) for r in requisitions],
        total=total,
        page=(skip // limit) + 1,
        size=limit,
        pages=(total + limit - 1) // limit,
    )


@router.post("/requisitions", response_model=PurchaseRequisitionResponse, status_code=status.HTTP_201_CREATED)
async def create_requisition(
    data: PurchaseRequisitionCreate,
    db: DB,
    current_user: User = Depends(require_access("purchaseRequisition", "write")),
):
    return await PurchaseService(db).create_requisition(data, current_user)


@router.get("/requisitions/{pr_id}", response_model=PurchaseRequisitionResponse)
async def get_requisition(
    pr_id: UUID,
    db: DB,
    current_user: User = Depends(require_access("purchaseRequisition", "read")),
):
    return await PurchaseService(db).get_requisition(pr_id)


@router.patch("/requisitions/{pr_id}/status", response_model=PurchaseRequisitionResponse)
async def update_requisition_status(
    pr_id: UUID,
    data: PurchaseRequisitionStatusUpdate,
    db: DB,
    access: Access,
):
    """Submit, approve or reject a requisition. Approve/reject need approve access."""
    return await PurchaseService(db).update_requisition_status(pr_id, data, access)


# ==================== Purchase Orders ====================

@router.get("/orders", response_model=PurchaseOrderListResponse)
async def list_purchase_orders(
    db: DB,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    status_filter: Optional[POStatus] = Query(None, alias="status"),
    vendor_id: Optional[UUID] = None,
    current_user: User = Depends(require_access("purchaseOrder", "read")),
):
    orders, total = await PurchaseService(db).list_purchase_orders(
        status_filter.value if status_filter else None, vendor_id, skip, limit
    )
    return PurchaseOrderListResponse(
        items=[PurchaseOrderResponse.model_validate(po) for po in orders],
        total=total,
        page=(skip // limit) + 1,
        size=limit,
        pages=(total + limit - 1) // limit,
    )


@router.post("/orders", response_model=PurchaseOrderResponse, status_code=status.HTTP_201_CREATED)
async def create_purchase_order(
    data: PurchaseOrderCreate,
    db: DB,
    current_user: User = Depends(require_access("purchaseOrder", "write")),
):
    """Raise a DRAFT PO on an approved vendor."""
    return await PurchaseService(db).create_purchase_order(data, current_user)


@router.get("/orders/{po_id}", response_model=PurchaseOrderResponse)
async def get_purchase_order(
    po_id: UUID,
    db: DB,
    current_user: User = Depends(require_access("purchaseOrder", "read")),
):
    service = PurchaseService(db)
    return await _with_received_qty(service, await service.get_purchase_order(po_id))


@router.patch("/orders/{po_id}", response_model=PurchaseOrderResponse)
async def update_purchase_order(
    po_id: UUID,
    data: PurchaseOrderUpdate,
    db: DB,
    access: Access,
):
    """Edit header fields or move the PO through its workflow."""
    service = PurchaseService(db)
    return await _with_received_qty(service, await service.update_purchase_order(po_id, data, access))


@router.post("/orders/{po_id}/amend", response_model=PurchaseOrderResponse, status_code=status.HTTP_201_CREATED)
async def amend_purchase_order(
    po_id: UUID,
    data: PurchaseOrderAmend,
    db: DB,
    current_user: User = Depends(require_access("purchaseOrder", "write")),
):
    return await PurchaseService(db).amend_purchase_order(po_id, data, current_user)


@router.get("/orders/{po_id}/variance", response_model=POVarianceReport)
async def po_variance(
    po_id: UUID,
    db: DB,
    current_user: User = Depends(require_access("purchaseOrder", "read")),
):
    """PO lines against the quotation behind its sales order: quantity, rate, amount and specification."""
    return await PurchaseService(db).variance_report(po_id)


@router.delete("/orders/{po_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_purchase_order(
    po_id: UUID,
    db: DB,
    current_user: User = Depends(require_access("purchaseOrder", "delete")),
):
    await PurchaseService(db).delete_purchase_order(po_id)
