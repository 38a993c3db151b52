"""Goods Receipt Note (GRN) API endpoints."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from pipetrade.api.deps import DB, require_access
from pipetrade.models.user import User
from pipetrade.schemas.purchase import GRNCreate, GRNResponse, GRNCreateResponse, GRNListResponse
from pipetrade.services.grn_service import GRNService

router = APIRouter()


@router.get("", response_model=GRNListResponse)
async def list_grns(
    db: DB,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    po_id: Optional[UUID] = None,
    vendor_id: Optional[UUID] = None,
    current_user: User = Depends(require_access("grn", "read")),
):
    """List GRNs with filtering and pagination."""
    grns, total = await GRNService(db).list_grns(po_id, vendor_id, skip, limit)
    return GRNListResponse(
        items=[GRNResponse.model_validate(g) for g in grns],
        total=total,
        page=(skip // limit) + 1,
        size=limit,
        pages=(total + limit - 1) // limit,
    )


@router.post("", response_model=GRNCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_grn(
    data: GRNCreate,
    db: DB,
    current_user: User = Depends(require_access("grn", "write")),
):
    """
    Receive goods against a PO.

    Every line needs a heat number and becomes a stock row UNDER_INSPECTION.
    """
    grn, po, stocks = await GRNService(db).create_grn(data, current_user)
    response = GRNCreateResponse.model_validate(grn)
    response.po_status = po.status
    response.stock_ids = [stock.id for stock in stocks]
    return response


@router.get("/{grn_id}", response_model=GRNResponse)
async def get_grn(
    grn_id: UUID,
    db: DB,
    current_user: User = Depends(require_access("grn", "read")),
):
    return await GRNService(db).get_grn(grn_id)
