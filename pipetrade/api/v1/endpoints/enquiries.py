"""API endpoints for customer enquiries."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from pipetrade.api.deps import DB, require_access
from pipetrade.models.sales import EnquiryStatus
from pipetrade.models.user import User
from pipetrade.schemas.sales import (
    EnquiryCreate, EnquiryUpdate, EnquiryResponse, EnquiryListResponse,
)
from pipetrade.services.sales_service import SalesService

router = APIRouter()


@router.get("", response_model=EnquiryListResponse)
async def list_enquiries(
    db: DB,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    status_filter: Optional[EnquiryStatus] = Query(None, alias="status"),
    customer_id: Optional[UUID] = None,
    current_user: User = Depends(require_access("quotation", "read")),
):
    enquiries, total = await SalesService(db).list_enquiries(
        status_filter.value if status_filter else None, customer_id, skip, limit
    )
    return EnquiryListResponse(
        items=[EnquiryResponse.model_validate(e) for e in enquiries],
        total=total,
        page=(skip // limit) + 1,
        size=limit,
        pages=(total + limit - 1) // limit,
    )


@router.post("", response_model=EnquiryResponse, status_code=status.HTTP_201_CREATED)
async def create_enquiry(
    data: EnquiryCreate,
    db: DB,
    current_user: User = Depends(require_access("quotation", "write")),
):
    """Register an enquiry received from a customer."""
    return await SalesService(db).create_enquiry(data, current_user)


@router.get("/{enquiry_id}", response_model=EnquiryResponse)
async def get_enquiry(
    enquiry_id: UUID,
    db: DB,
    current_user: User = Depends(require_access("quotation", "read")),
):
    return await SalesService(db).get_enquiry(enquiry_id)


@router.patch("/{enquiry_id}", response_model=EnquiryResponse)
async def update_enquiry(
    enquiry_id: UUID,
    data: EnquiryUpdate,
    db: DB,
    current_user: User = Depends(require_access("quotation", "write")),
):
    """Update enquiry fields; status changes follow the enquiry workflow."""
    return await SalesService(db).update_enquiry(enquiry_id, data)
