"""API endpoints for the customer master."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from pipetrade.api.deps import DB, require_access
from pipetrade.models.master import Customer
from pipetrade.models.user import User
from pipetrade.schemas.master import (
    CustomerCreate, CustomerUpdate, CustomerResponse, CustomerListResponse,
)
from pipetrade.services.master_service import MasterService

router = APIRouter()


@router.get("", response_model=CustomerListResponse)
async def list_customers(
    db: DB,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    current_user: User = Depends(require_access("masters", "read")),
):
    """List customers, searchable by name or GST number."""
    customers, total = await MasterService(db).list_parties(Customer, search, is_active, skip, limit)
    return CustomerListResponse(
        items=[CustomerResponse.model_validate(c) for c in customers],
        total=total,
        page=(skip // limit) + 1,
        size=limit,
        pages=(total + limit - 1) // limit,
    )


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(
    data: CustomerCreate,
    db: DB,
    current_user: User = Depends(require_access("masters", "write")),
):
    return await MasterService(db).create_party(Customer, data)


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(
    customer_id: UUID,
    db: DB,
    current_user: User = Depends(require_access("masters", "read")),
):
    return await MasterService(db).get_party(Customer, customer_id)


@router.patch("/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    customer_id: UUID,
    data: CustomerUpdate,
    db: DB,
    current_user: User = Depends(require_access("masters", "write")),
):
    return await MasterService(db).update_party(Customer, customer_id, data)


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_customer(
    customer_id: UUID,
    db: DB,
    current_user: User = Depends(require_access("masters", "delete")),
):
    """Soft delete customer (mark as inactive)."""
    await MasterService(db).delete_party(Customer, customer_id)
