"""Pydantic schemas for enquiries, quotations and sales orders."""
from datetime import date, datetime
from typing import Any, Dict, Optional, List
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from pipetrade.models.sales import (
    EnquiryStatus, QuotationType, RevisionTrigger, SOStatus, POAcceptanceStatus,
)
from pipetrade.schemas.base import (
    BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema, Amount, OptionalAmount,
)
from pipetrade.schemas.master import CustomerBrief


# ==================== Enquiry Schemas ====================

class EnquiryItemCreate(BaseModel):
    product: Optional[str] = None
    material: Optional[str] = None
    additional_spec: Optional[str] = None
    size_label: Optional[str] = None
    ends: Optional[str] = None
    quantity: Optional[float] = Field(None, ge=0)
    uom: str = "Mtr"
    remarks: Optional[str] = None


class EnquiryItemResponse(BaseResponseSchema):
    id: UUID
    s_no: int
    product: Optional[str] = None
    material: Optional[str] = None
    additional_spec: Optional[str] = None
    size_label: Optional[str] = None
    ends: Optional[str] = None
    quantity: OptionalAmount = None
    uom: str
    remarks: Optional[str] = None


class EnquiryCreate(BaseCreateSchema):
    customer_id: UUID
    client_inquiry_no: Optional[str] = None
    client_inquiry_date: Optional[date] = None
    enquiry_mode: str = "EMAIL"
    project_name: Optional[str] = None
    remarks: Optional[str] = None
    items: List[EnquiryItemCreate] = []


class EnquiryUpdate(BaseUpdateSchema):
    client_inquiry_no: Optional[str] = None
    client_inquiry_date: Optional[date] = None
    enquiry_mode: Optional[str] = None
    project_name: Optional[str] = None
    remarks: Optional[str] = None
    status: Optional[EnquiryStatus] = None


class EnquiryResponse(BaseResponseSchema):
    id: UUID
    enquiry_no: str
    enquiry_date: date
    customer_id: UUID
    customer: Optional[CustomerBrief] = None
    client_inquiry_no: Optional[str] = None
    client_inquiry_date: Optional[date] = None
    enquiry_mode: str
    project_name: Optional[str] = None
    remarks: Optional[str] = None
    status: str
    items: List[EnquiryItemResponse] = []
    created_at: datetime


# ==================== Quotation Schemas ====================

class QuotationItemCreate(BaseModel):
    product: Optional[str] = None
    material: Optional[str] = None
    additional_spec: Optional[str] = None
    size_label: Optional[str] = None
    od: Optional[float] = None
    wt: Optional[float] = None
    length: Optional[str] = None
    ends: Optional[str] = None
    quantity: float = Field(..., gt=0)
    unit_rate: float = Field(..., ge=0)
    delivery: Optional[str] = None
    remark: Optional[str] = None
    unit_weight: Optional[float] = Field(None, ge=0)


class QuotationItemResponse(BaseResponseSchema):
    id: UUID
    s_no: int
    product: Optional[str] = None
    material: Optional[str] = None
    additional_spec: Optional[str] = None
    size_label: Optional[str] = None
    od: OptionalAmount = None
    wt: OptionalAmount = None
    length: Optional[str] = None
    ends: Optional[str] = None
    quantity: Amount
    unit_rate: Amount
    amount: Amount
    delivery: Optional[str] = None
    remark: Optional[str] = None
    unit_weight: OptionalAmount = None
    total_weight_mt: OptionalAmount = None


class QuotationTermCreate(BaseModel):
    term_no: Optional[int] = None
    term_name: str = Field(..., min_length=1)
    term_value: Optional[str] = None


class QuotationTermResponse(BaseResponseSchema):
    id: UUID
    term_no: int
    term_name: str
    term_value: Optional[str] = None


class QuotationCreate(BaseCreateSchema):
    customer_id: UUID
    enquiry_id: Optional[UUID] = None
    quotation_type: QuotationType = QuotationType.DOMESTIC
    currency: str = Field("INR", min_length=3, max_length=3)
    valid_upto: Optional[date] = None
    payment_terms: Optional[str] = None
    delivery_terms: Optional[str] = None
    remarks: Optional[str] = None
    items: List[QuotationItemCreate] = Field(..., min_length=1)
    terms: List[QuotationTermCreate] = []


class QuotationApproval(BaseModel):
    """Approve or reject a quotation pending approval."""
    action: str = Field(..., pattern="^(APPROVE|REJECT)$")
    remarks: Optional[str] = None


class QuotationStatusUpdate(BaseModel):
    status: str
    remarks: Optional[str] = None


class QuotationRevise(BaseCreateSchema):
    """
    Body of a revision request.

    Header fields and items left out are copied from the source as they are;
    items, when sent, replace the source lines.
    """
    revision_trigger: RevisionTrigger
    revision_sub_reason: Optional[str] = Field(None, max_length=200)
    revision_notes: Optional[str] = None
    valid_upto: Optional[date] = None
    payment_terms: Optional[str] = None
    delivery_terms: Optional[str] = None
    remarks: Optional[str] = None
    items: Optional[List[QuotationItemCreate]] = Field(None, min_length=1)
    terms: Optional[List[QuotationTermCreate]] = None

    @model_validator(mode="after")
    def require_sub_reason_for_other(self):
        if self.revision_trigger == RevisionTrigger.OTHER and not self.revision_sub_reason:
            raise ValueError("A sub-reason is required when the revision trigger is OTHER")
        return self


class QuotationResponse(BaseResponseSchema):
    id: UUID
    quotation_no: str
    quotation_date: date
    customer_id: UUID
    customer: Optional[CustomerBrief] = None
    enquiry_id: Optional[UUID] = None
    quotation_type: str
    currency: str
    valid_upto: Optional[date] = None
    payment_terms: Optional[str] = None
    delivery_terms: Optional[str] = None
    remarks: Optional[str] = None
    status: str
    version: int
    parent_quotation_id: Optional[UUID] = None
    revision_trigger: Optional[str] = None
    revision_sub_reason: Optional[str] = None
    revision_notes: Optional[str] = None
    change_snapshot: Optional[Dict[str, Any]] = None
    total_amount: Amount
    total_weight_mt: Amount
    prepared_by_id: Optional[UUID] = None
    approved_by_id: Optional[UUID] = None
    approval_date: Optional[datetime] = None
    approval_remarks: Optional[str] = None
    sent_date: Optional[datetime] = None
    items: List[QuotationItemResponse] = []
    terms: List[QuotationTermResponse] = []
    created_at: datetime


class RevisionBrief(BaseResponseSchema):
    id: UUID
    quotation_no: str
    version: int
    status: str
    quotation_date: date
    total_amount: Amount
    item_count: int


class QuotationComparison(BaseModel):
    """Two revisions of one quotation, older on the left."""
    left: RevisionBrief
    right: RevisionBrief
    header_changes: Dict[str, Dict[str, Any]] = {}
    items_added: List[Dict[str, Any]] = []
    items_removed: List[Dict[str, Any]] = []
    items_modified: List[Dict[str, Any]] = []
    terms_changes: List[Dict[str, Any]] = []
    summary: Dict[str, Any] = {}


# ==================== Sales Order Schemas ====================

class SalesOrderItemCreate(BaseModel):
    s_no: Optional[int] = None
    product: Optional[str] = None
    material: Optional[str] = None
    additional_spec: Optional[str] = None
    size_label: Optional[str] = None
    od: Optional[float] = None
    wt: Optional[float] = None
    ends: Optional[str] = None
    quantity: float = Field(..., gt=0)
    unit_rate: float = Field(..., ge=0)
    delivery_date: Optional[date] = None
    unit_weight: Optional[float] = Field(None, ge=0)


class SalesOrderItemResponse(BaseResponseSchema):
    id: UUID
    s_no: int
    product: Optional[str] = None
    material: Optional[str] = None
    additional_spec: Optional[str] = None
    size_label: Optional[str] = None
    od: OptionalAmount = None
    wt: OptionalAmount = None
    ends: Optional[str] = None
    quantity: Amount
    unit_rate: Amount
    amount: Amount
    delivery_date: Optional[date] = None
    unit_weight: OptionalAmount = None
    total_weight_mt: OptionalAmount = None


class SalesOrderCreate(BaseCreateSchema):
    customer_id: UUID
    quotation_id: Optional[UUID] = None
    customer_po_no: Optional[str] = None
    customer_po_date: Optional[date] = None
    project_name: Optional[str] = None
    payment_terms: Optional[str] = None
    delivery_terms: Optional[str] = None
    delivery_schedule: Optional[str] = None
    remarks: Optional[str] = None
    po_acceptance_status: POAcceptanceStatus = POAcceptanceStatus.ACCEPTED
    items: List[SalesOrderItemCreate] = Field(..., min_length=1)

    @model_validator(mode="after")
    def require_quotation_or_customer_po(self):
        if not self.quotation_id and not self.customer_po_no:
            raise ValueError("Either a quotation or a customer PO number is required")
        return self


class SalesOrderUpdate(BaseUpdateSchema):
    status: Optional[SOStatus] = None
    po_acceptance_status: Optional[POAcceptanceStatus] = None
    delivery_schedule: Optional[str] = None
    remarks: Optional[str] = None


class SalesOrderResponse(BaseResponseSchema):
    id: UUID
    so_no: str
    so_date: date
    customer_id: UUID
    customer: Optional[CustomerBrief] = None
    quotation_id: Optional[UUID] = None
    customer_po_no: Optional[str] = None
    customer_po_date: Optional[date] = None
    project_name: Optional[str] = None
    payment_terms: Optional[str] = None
    delivery_terms: Optional[str] = None
    delivery_schedule: Optional[str] = None
    remarks: Optional[str] = None
    status: str
    po_acceptance_status: str
    total_amount: Amount
    items: List[SalesOrderItemResponse] = []
    created_at: datetime


# ==================== Reservation / Shortfall Schemas ====================

class ReserveStockRequest(BaseModel):
    so_item_id: UUID
    inventory_stock_id: UUID
    reserved_qty_mtr: float = Field(..., gt=0)
    reserved_pieces: int = Field(0, ge=0)


class ReservationResponse(BaseResponseSchema):
    id: UUID
    sales_order_id: UUID
    so_item_id: UUID
    inventory_stock_id: UUID
    reserved_qty_mtr: Amount
    reserved_pieces: int
    status: str
    reservation_date: datetime


class ReserveStockResponse(BaseModel):
    reservation: ReservationResponse
    fifo_warning: Optional[str] = None


class ShortfallItem(BaseModel):
    so_item_id: UUID
    s_no: int
    product: Optional[str] = None
    material: Optional[str] = None
    size_label: Optional[str] = None
    ordered_qty: float
    reserved_qty: float
    remaining_qty: float
    available_qty: float
    shortfall_qty: float


class ShortfallAnalysis(BaseModel):
    sales_order_id: UUID
    so_no: str
    items: List[ShortfallItem]
    total_shortfall: float
    has_shortfall: bool


class AutoPRRequest(BaseModel):
    auto_submit: bool = False


class EnquiryListResponse(BaseModel):
    items: List[EnquiryResponse]
    total: int
    page: int = 1
    size: int = 100
    pages: int = 1


class QuotationListResponse(BaseModel):
    items: List[QuotationResponse]
    total: int
    page: int = 1
    size: int = 100
    pages: int = 1


class SalesOrderListResponse(BaseModel):
    items: List[SalesOrderResponse]
    total: int
    page: int = 1
    size: int = 100
    pages: int = 1
