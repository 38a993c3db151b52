"""Pydantic schemas for inspections, QC releases and NCRs."""
from datetime import date, datetime
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel, Field

from pipetrade.models.quality_control import (
    InspectionResult, ParameterType, ReleaseDecision, NCRStatus, NonConformanceType,
)
from pipetrade.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema


# ==================== Inspection Schemas ====================

class InspectionParameterCreate(BaseModel):
    parameter_name: str = Field(..., min_length=1)
    parameter_type: ParameterType = ParameterType.PASS_FAIL
    result_value: Optional[str] = None
    standard_value: Optional[str] = None
    tolerance: Optional[str] = None
    result: InspectionResult
    remarks: Optional[str] = None


class InspectionParameterResponse(BaseResponseSchema):
    id: UUID
    s_no: int
    parameter_name: str
    parameter_type: str
    result_value: Optional[str] = None
    standard_value: Optional[str] = None
    tolerance: Optional[str] = None
    result: str
    remarks: Optional[str] = None


class InspectionCreate(BaseCreateSchema):
    inventory_stock_id: Optional[UUID] = None
    grn_item_id: Optional[UUID] = None
    inspection_date: Optional[date] = None
    remarks: Optional[str] = None
    parameters: List[InspectionParameterCreate] = Field(..., min_length=1)


class InspectionUpdate(BaseUpdateSchema):
    remarks: Optional[str] = None
    parameters: Optional[List[InspectionParameterCreate]] = Field(None, min_length=1)


class InspectionResponse(BaseResponseSchema):
    id: UUID
    inspection_no: str
    inspection_date: date
    inventory_stock_id: Optional[UUID] = None
    grn_item_id: Optional[UUID] = None
    inspector_id: Optional[UUID] = None
    overall_result: str
    remarks: Optional[str] = None
    parameters: List[InspectionParameterResponse] = []
    created_at: datetime


# ==================== QC Release Schemas ====================

class QCReleaseCreate(BaseCreateSchema):
    inspection_id: UUID
    inventory_stock_id: UUID
    decision: ReleaseDecision = ReleaseDecision.ACCEPT
    remarks: Optional[str] = None


class QCReleaseResponse(BaseResponseSchema):
    id: UUID
    release_no: str
    release_date: date
    inspection_id: UUID
    inventory_stock_id: UUID
    decision: str
    released_by_id: Optional[UUID] = None
    remarks: Optional[str] = None
    created_at: datetime


# ==================== NCR Schemas ====================

class NCRCreate(BaseCreateSchema):
    grn_item_id: Optional[UUID] = None
    inventory_stock_id: Optional[UUID] = None
    heat_no: Optional[str] = None
    po_id: Optional[UUID] = None
    vendor_id: Optional[UUID] = None
    non_conformance_type: Optional[NonConformanceType] = None
    description: str = Field(..., min_length=1)
    root_cause: Optional[str] = None
    corrective_action: Optional[str] = None
    preventive_action: Optional[str] = None
    disposition: Optional[str] = None
    evidence_paths: List[str] = []
    target_closure_date: Optional[date] = None
    responsible_person_id: Optional[UUID] = None


class NCRUpdate(BaseUpdateSchema):
    status: Optional[NCRStatus] = None
    non_conformance_type: Optional[NonConformanceType] = None
    description: Optional[str] = Field(None, min_length=1)
    root_cause: Optional[str] = None
    corrective_action: Optional[str] = None
    preventive_action: Optional[str] = None
    disposition: Optional[str] = None
    evidence_paths: Optional[List[str]] = None
    target_closure_date: Optional[date] = None
    responsible_person_id: Optional[UUID] = None


class NCRResponse(BaseResponseSchema):
    id: UUID
    ncr_no: str
    ncr_date: date
    grn_item_id: Optional[UUID] = None
    inventory_stock_id: Optional[UUID] = None
    heat_no: Optional[str] = None
    po_id: Optional[UUID] = None
    vendor_id: Optional[UUID] = None
    non_conformance_type: Optional[str] = None
    description: str
    root_cause: Optional[str] = None
    corrective_action: Optional[str] = None
    preventive_action: Optional[str] = None
    disposition: Optional[str] = None
    evidence_paths: Optional[List[str]] = None
    target_closure_date: Optional[date] = None
    responsible_person_id: Optional[UUID] = None
    status: str
    closed_date: Optional[datetime] = None
    closed_by_id: Optional[UUID] = None
    verified_date: Optional[datetime] = None
    verified_by_id: Optional[UUID] = None
    created_at: datetime


class InspectionListResponse(BaseModel):
    items: List[InspectionResponse]
    total: int
    page: int = 1
    size: int = 100
    pages: int = 1


class QCReleaseListResponse(BaseModel):
    items: List[QCReleaseResponse]
    total: int
    page: int = 1
    size: int = 100
    pages: int = 1


class NCRListResponse(BaseModel):
    items: List[NCRResponse]
    total: int
    page: int = 1
    size: int = 100
    pages: int = 1
