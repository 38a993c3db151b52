"""
Quality control API endpoints: inspections, QC releases and NCRs.

Inspection results drive the heat's stock status; a FAIL (or a REJECT
release) raises an NCR automatically.
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from pipetrade.api.deps import DB, Access, require_access
from pipetrade.models.quality_control import InspectionResult, NCRStatus
from pipetrade.models.user import User
from pipetrade.schemas.quality_control import (
    InspectionCreate, InspectionUpdate, InspectionResponse, InspectionListResponse,
    QCReleaseCreate, QCReleaseResponse, QCReleaseListResponse,
    NCRCreate, NCRUpdate, NCRResponse, NCRListResponse,
)
from pipetrade.services.quality_control_service import QualityControlService

router = APIRouter()


# ==================== Inspections ====================

@router.get("/inspections", response_model=InspectionListResponse)
async def list_inspections(
    db: DB,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    inventory_stock_id: Optional[UUID] = None,
    overall_result: Optional[InspectionResult] = None,
    current_user: User = Depends(require_access("inspection", "read")),
):
    inspections, total = await QualityControlService(db).list_inspections(
        inventory_stock_id, overall_result.value if overall_result else None, skip, limit
    )
    return InspectionListResponse(
        items=[InspectionResponse.model_validate(i) for i in inspections],
        total=total,
        page=(skip // limit) + 1,
        size=limit,
        pages=(total + limit - 1) // limit,
    )


@router.post("/inspections", response_model=InspectionResponse, status_code=status.HTTP_201_CREATED)
async def create_inspection(
    data: InspectionCreate,
    db: DB,
    current_user: User = Depends(require_access("inspection", "write")),
):
    """Record an inspection; FAIL beats HOLD beats PASS for the overall result."""
    return await QualityControlService(db).create_inspection(data, current_user)


@router.get("/inspections/{inspection_id}", response_model=InspectionResponse)
async def get_inspection(
    inspection_id: UUID,
    db: DB,
    current_user: User = Depends(require_access("inspection", "read")),
):
    return await QualityControlService(db).get_inspection(inspection_id)


@router.patch("/inspections/{inspection_id}", response_model=InspectionResponse)
async def update_inspection(
    inspection_id: UUID,
    data: InspectionUpdate,
    db: DB,
    current_user: User = Depends(require_access("inspection", "write")),
):
    """Replace the parameters and recompute the result."""
    return await QualityControlService(db).update_inspection(inspection_id, data, current_user)


# ==================== QC Release ====================

@router.get("/qc-releases", response_model=QCReleaseListResponse)
async def list_qc_releases(
    db: DB,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(require_access("qcRelease", "read")),
):
    releases, total = await QualityControlService(db).list_releases(skip, limit)
    return QCReleaseListResponse(
        items=[QCReleaseResponse.model_validate(r) for r in releases],
        total=total,
        page=(skip // limit) + 1,
        size=limit,
        pages=(total + limit - 1) // limit,
    )


@router.post("/qc-releases", response_model=QCReleaseResponse, status_code=status.HTTP_201_CREATED)
async def create_qc_release(
    data: QCReleaseCreate,
    db: DB,
    current_user: User = Depends(require_access("qcRelease", "write")),
):
    return await QualityControlService(db).create_release(data, current_user)


# ==================== NCR ====================

@router.get("/ncrs", response_model=NCRListResponse)
async def list_ncrs(
    db: DB,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    status_filter: Optional[NCRStatus] = Query(None, alias="status"),
    vendor_id: Optional[UUID] = None,
    heat_no: Optional[str] = None,
    current_user: User = Depends(require_access("ncr", "read")),
):
    ncrs, total = await QualityControlService(db).list_ncrs(
        status_filter.value if status_filter else None, vendor_id, heat_no, skip, limit
    )
    return NCRListResponse(
        items=[NCRResponse.model_validate(n) for n in ncrs],
        total=total,
        page=(skip // limit) + 1,
        size=limit,
        pages=(total + limit - 1) // limit,
    )


@router.post("/ncrs", response_model=NCRResponse, status_code=status.HTTP_201_CREATED)
async def create_ncr(
    data: NCRCreate,
    db: DB,
    current_user: User = Depends(require_access("ncr", "write")),
):
    return await QualityControlService(db).create_ncr(data, current_user)


@router.get("/ncrs/{ncr_id}", response_model=NCRResponse)
async def get_ncr(
    ncr_id: UUID,
    db: DB,
    current_user: User = Depends(require_access("ncr", "read")),
):
    return await QualityControlService(db).get_ncr(ncr_id)


@router.patch("/ncrs/{ncr_id}", response_model=NCRResponse)
async def update_ncr(
    ncr_id: UUID,
    data: NCRUpdate,
    db: DB,
    access: Access,
):
    """
    Update an NCR or move it through its workflow.

    Closing needs root cause, corrective/preventive action and
    disposition. Only Management or Admin can verify a closed NCR,
    which they may do without NCR write access.
    """
    verify_only = (
        data.status == NCRStatus.VERIFIED
        and data.model_dump(exclude_unset=True).keys() <= {"status"}
    )
    access.check("ncr", "read" if verify_only else "write")
    return await QualityControlService(db).update_ncr(ncr_id, data, access.user)
