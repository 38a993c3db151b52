"""
API endpoints for quotations.

Workflow:
    DRAFT -> submit -> PENDING_APPROVAL -> approve/reject
    (below the approval threshold submit goes straight to APPROVED)
    APPROVED -> SENT -> WON / LOST / EXPIRED
    Any closed-out quotation can be revised into a new DRAFT, which
    supersedes it on submit. /compare diffs two revisions.
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from pipetrade.api.deps import DB, require_access
from pipetrade.models.sales import QuotationStatus
from pipetrade.models.user import User
from pipetrade.schemas.sales import (
    QuotationCreate, QuotationResponse, QuotationListResponse,
    QuotationApproval, QuotationStatusUpdate, QuotationRevise, QuotationComparison,
)
from pipetrade.services.sales_service import SalesService

router = APIRouter()


@router.get("", response_model=QuotationListResponse)
async def list_quotations(
    db: DB,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    status_filter: Optional[QuotationStatus] = Query(None, alias="status"),
    customer_id: Optional[UUID] = None,
    current_user: User = Depends(require_access("quotation", "read")),
):
    quotations, total = await SalesService(db).list_quotations(
        status_filter.value if status_filter else None, customer_id, skip, limit
    )
    return QuotationListResponse(
        items=[QuotationResponse.model_validate(q) for q in quotations],
        total=total,
        page=(skip // limit) + 1,
        size=limit,
        pages=(total + limit - 1) // limit,
    )


@router.post("", response_model=QuotationResponse, status_code=status.HTTP_201_CREATED)
async def create_quotation(
    data: QuotationCreate,
    db: DB,
    current_user: User = Depends(require_access("quotation", "write")),
):
    """Create a DRAFT quotation. Line amounts and weights are computed server-side."""
    return await SalesService(db).create_quotation(data, current_user)


@router.get("/{quotation_id}", response_model=QuotationResponse)
async def get_quotation(
    quotation_id: UUID,
    db: DB,
    current_user: User = Depends(require_access("quotation", "read")),
):
    return await SalesService(db).get_quotation(quotation_id)


@router.post("/{quotation_id}/submit", response_model=QuotationResponse)
async def submit_quotation(
    quotation_id: UUID,
    db: DB,
    current_user: User = Depends(require_access("quotation", "write")),
):
    return await SalesService(db).submit_quotation(quotation_id, current_user)


@router.post("/{quotation_id}/approve", response_model=QuotationResponse)
async def approve_quotation(
    quotation_id: UUID,
    data: QuotationApproval,
    db: DB,
    current_user: User = Depends(require_access("quotation", "approve")),
):
    """Approve or reject a quotation pending approval."""
    return await SalesService(db).approve_quotation(quotation_id, data, current_user)


@router.patch("/{quotation_id}/status", response_model=QuotationResponse)
async def update_quotation_status(
    quotation_id: UUID,
    data: QuotationStatusUpdate,
    db: DB,
    current_user: User = Depends(require_access("quotation", "write")),
):
    """Mark a quotation sent, won, lost or cancelled."""
    return await SalesService(db).update_quotation_status(quotation_id, data.status, current_user)


@router.post("/{quotation_id}/revise", response_model=QuotationResponse, status_code=status.HTTP_201_CREATED)
async def revise_quotation(
    quotation_id: UUID,
    data: QuotationRevise,
    db: DB,
    current_user: User = Depends(require_access("quotation", "write")),
):
    """
    Create the next revision as a new DRAFT.

    A revision trigger is required (and a sub-reason for OTHER). Items,
    terms and header fields sent here replace the copied ones. The source
    is superseded when the revision is submitted.
    """
    return await SalesService(db).revise_quotation(quotation_id, data, current_user)


@router.get("/{quotation_id}/compare", response_model=QuotationComparison)
async def compare_revisions(
    quotation_id: UUID,
    db: DB,
    compare_with: Optional[UUID] = Query(None, description="Revision to compare with; defaults to the previous version"),
    current_user: User = Depends(require_access("quotation", "read")),
):
    return await SalesService(db).compare_revisions(quotation_id, compare_with)


@router.delete("/{quotation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_quotation(
    quotation_id: UUID,
    db: DB,
    current_user: User = Depends(require_access("quotation", "delete")),
):
    await SalesService(db).delete_quotation(quotation_id)
