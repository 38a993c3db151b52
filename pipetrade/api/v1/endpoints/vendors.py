"""API endpoints for the vendor master."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from pipetrade.api.deps import DB, require_access
from pipetrade.models.master import Vendor
from pipetrade.models.user import User
from pipetrade.schemas.master import (
    VendorCreate, VendorUpdate, VendorResponse, VendorListResponse,
)
from pipetrade.services.master_service import MasterService

router = APIRouter()


@router.get("", response_model=VendorListResponse)
async def list_vendors(
    db: DB,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    current_user: User = Depends(require_access("masters", "read")),
):
    """List vendors with filtering."""
    vendors, total = await MasterService(db).list_parties(Vendor, search, is_active, skip, limit)
    return VendorListResponse(
        items=[VendorResponse.model_validate(v) for v in vendors],
        total=total,
        page=(skip // limit) + 1,
        size=limit,
        pages=(total + limit - 1) // limit,
    )


@router.post("", response_model=VendorResponse, status_code=status.HTTP_201_CREATED)
async def create_vendor(
    data: VendorCreate,
    db: DB,
    current_user: User = Depends(require_access("masters", "write")),
):
    """New vendors start unapproved; POs can only be raised once approved."""
    return await MasterService(db).create_party(Vendor, data)


@router.get("/{vendor_id}", response_model=VendorResponse)
async def get_vendor(
    vendor_id: UUID,
    db: DB,
    current_user: User = Depends(require_access("masters", "read")),
):
    return await MasterService(db).get_party(Vendor, vendor_id)


@router.patch("/{vendor_id}", response_model=VendorResponse)
async def update_vendor(
    vendor_id: UUID,
    data: VendorUpdate,
    db: DB,
    current_user: User = Depends(require_access("masters", "write")),
):
    return await MasterService(db).update_party(Vendor, vendor_id, data)


@router.delete("/{vendor_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_vendor(
    vendor_id: UUID,
    db: DB,
    current_user: User = Depends(require_access("masters", "delete")),
):
    """Soft delete vendor (mark as inactive)."""
    await MasterService(db).delete_party(Vendor, vendor_id)


# ==================== Vendor Approval ====================

@router.post("/{vendor_id}/approve", response_model=VendorResponse)
async def approve_vendor(
    vendor_id: UUID,
    db: DB,
    current_user: User = Depends(require_access("masters", "approve")),
):
    """Approve a vendor for purchase orders."""
    return await MasterService(db).approve_vendor(vendor_id)
