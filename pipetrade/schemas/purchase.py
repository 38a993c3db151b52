"""Pydantic schemas for Purchase/Procurement module."""
from datetime import date, datetime
from typing import Optional, List, Union
from uuid import UUID

from pydantic import BaseModel, Field

from pipetrade.models.purchase import RequisitionStatus, POStatus, MTCType
from pipetrade.schemas.base import (
    BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema, Amount,
)
from pipetrade.schemas.master import VendorBrief


# ==================== Purchase Requisition Schemas ====================

class PRItemCreate(BaseModel):
    product: Optional[str] = None
    material: Optional[str] = None
    additional_spec: Optional[str] = None
    size_label: Optional[str] = None
    quantity: float = Field(..., gt=0)
    uom: str = "MTR"
    remarks: Optional[str] = None


class PRItemResponse(BaseResponseSchema):
    id: UUID
    s_no: int
    product: Optional[str] = None
    material: Optional[str] = None
    additional_spec: Optional[str] = None
    size_label: Optional[str] = None
    quantity: Amount
    uom: str
    remarks: Optional[str] = None


class PurchaseRequisitionCreate(BaseCreateSchema):
    sales_order_id: Optional[UUID] = None
    required_by: Optional[date] = None
    remarks: Optional[str] = None
    items: List[PRItemCreate] = Field(..., min_length=1)


class PurchaseRequisitionStatusUpdate(BaseModel):
    status: RequisitionStatus
    remarks: Optional[str] = None


class PurchaseRequisitionResponse(BaseResponseSchema):
    id: UUID
    pr_no: str
    pr_date: date
    sales_order_id: Optional[UUID] = None
    required_by: Optional[date] = None
    remarks: Optional[str] = None
    status: str
    is_auto_generated: bool
    requested_by_id: Optional[UUID] = None
    approved_by_id: Optional[UUID] = None
    approval_date: Optional[datetime] = None
    approval_remarks: Optional[str] = None
    items: List[PRItemResponse] = []
    created_at: datetime


# ==================== Purchase Order Schemas ====================

class POItemCreate(BaseModel):
    product: Optional[str] = None
    material: Optional[str] = None
    additional_spec: Optional[str] = None
    size_label: Optional[str] = None
    quantity: float = Field(..., gt=0)
    unit_rate: float = Field(..., ge=0)
    delivery_date: Optional[date] = None


class POItemResponse(BaseResponseSchema):
    id: UUID
    s_no: int
    product: Optional[str] = None
    material: Optional[str] = None
    additional_spec: Optional[str] = None
    size_label: Optional[str] = None
    quantity: Amount
    unit_rate: Amount
    amount: Amount
    delivery_date: Optional[date] = None
    received_qty: float = 0


class PurchaseOrderCreate(BaseCreateSchema):
    vendor_id: UUID
    pr_id: Optional[UUID] = None
    sales_order_id: Optional[UUID] = None
    delivery_date: Optional[date] = None
    payment_terms: Optional[str] = None
    remarks: Optional[str] = None
    items: List[POItemCreate] = Field(..., min_length=1)


class PurchaseOrderAmend(BaseModel):
    change_reason: str = Field(..., min_length=3)
    delivery_date: Optional[date] = None
    payment_terms: Optional[str] = None
    remarks: Optional[str] = None
    items: List[POItemCreate] = Field(..., min_length=1)


class PurchaseOrderUpdate(BaseUpdateSchema):
    """Status change and editable header fields."""
    status: Optional[POStatus] = None
    delivery_date: Optional[date] = None
    payment_terms: Optional[str] = None
    remarks: Optional[str] = None


class PurchaseOrderResponse(BaseResponseSchema):
    id: UUID
    po_no: str
    po_date: date
    version: int
    parent_po_id: Optional[UUID] = None
    change_reason: Optional[str] = None
    vendor_id: UUID
    vendor: Optional[VendorBrief] = None
    pr_id: Optional[UUID] = None
    sales_order_id: Optional[UUID] = None
    delivery_date: Optional[date] = None
    payment_terms: Optional[str] = None
    remarks: Optional[str] = None
    status: str
    total_amount: Amount
    approved_by_id: Optional[UUID] = None
    approval_date: Optional[datetime] = None
    items: List[POItemResponse] = []
    received_qty: float = 0
    created_at: datetime


# ==================== GRN Schemas ====================

class GRNItemCreate(BaseModel):
    product: Optional[str] = None
    material: Optional[str] = None
    specification: Optional[str] = None
    additional_spec: Optional[str] = None
    dimension_std: Optional[str] = None
    size_label: Optional[str] = None
    ends: Optional[str] = None
    length: Optional[str] = None
    heat_no: Optional[str] = None
    make: Optional[str] = None
    received_qty_mtr: float = Field(..., gt=0)
    pieces: int = Field(0, ge=0)
    mtc_no: Optional[str] = None
    mtc_date: Optional[date] = None
    mtc_type: Optional[MTCType] = None
    tpi_agency: Optional[str] = None
    form: Optional[str] = None


class GRNItemResponse(BaseResponseSchema):
    id: UUID
    s_no: int
    product: Optional[str] = None
    material: Optional[str] = None
    specification: Optional[str] = None
    additional_spec: Optional[str] = None
    dimension_std: Optional[str] = None
    size_label: Optional[str] = None
    ends: Optional[str] = None
    length: Optional[str] = None
    heat_no: str
    make: Optional[str] = None
    received_qty_mtr: Amount
    pieces: int
    mtc_no: Optional[str] = None
    mtc_date: Optional[date] = None
    mtc_type: Optional[str] = None
    tpi_agency: Optional[str] = None


class GRNCreate(BaseCreateSchema):
    po_id: UUID
    vendor_id: Optional[UUID] = None
    grn_date: Optional[date] = None
    remarks: Optional[str] = None
    items: List[GRNItemCreate] = Field(..., min_length=1)


class GRNResponse(BaseResponseSchema):
    id: UUID
    grn_no: str
    grn_date: date
    po_id: UUID
    vendor_id: UUID
    vendor: Optional[VendorBrief] = None
    received_by_id: Optional[UUID] = None
    remarks: Optional[str] = None
    items: List[GRNItemResponse] = []
    created_at: datetime


class GRNCreateResponse(GRNResponse):
    po_status: Optional[str] = None
    stock_ids: List[UUID] = []



class PurchaseRequisitionListResponse(BaseModel):
    items: List[PurchaseRequisitionResponse]
    total: int
    page: int = 1
    size: int = 100
    pages: int = 1


class PurchaseOrderListResponse(BaseModel):
    items: List[PurchaseOrderResponse]
    total: int
    page: int = 1
    size: int = 100
    pages: int = 1


class GRNListResponse(BaseModel):
    items: List[GRNResponse]
    total: int
    page: int = 1
    size: int = 100
    pages: int = 1


class AutoPRResponse(BaseModel):
    """Outcome of raising a requisition for a sales order's shortfall."""
    success: bool
    message: str
    requisition: Optional[PurchaseRequisitionResponse] = None


class VarianceItem(BaseModel):
    """One difference between a PO and its quotation. line_no 0 is the PO total."""
    line_no: int
    field: str
    quotation_value: Union[float, str, None] = None
    po_value: Union[float, str, None] = None
    variance: Union[float, str]
    variance_percent: Optional[float] = None


class POVarianceReport(BaseModel):
    po_no: str
    version: int
    quotation_id: Optional[UUID] = None
    quotation_no: Optional[str] = None
    has_variances: bool = False
    total_variance_amount: Optional[float] = None
    total_variance_percent: Optional[float] = None
    items: List[VarianceItem] = []
    warnings: List[str] = []
    requires_approval: bool = False
