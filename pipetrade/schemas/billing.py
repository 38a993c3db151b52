"""Pydantic schemas for invoices and payment receipts."""
from datetime import date, datetime
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel, Field

from pipetrade.models.billing import InvoiceType, InvoiceStatus, PaymentMode
from pipetrade.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema, Amount
from pipetrade.schemas.master import CustomerBrief


# ==================== Invoice Schemas ====================

class InvoiceItemCreate(BaseModel):
    description: Optional[str] = None
    heat_no: Optional[str] = None
    size_label: Optional[str] = None
    hsn_code: Optional[str] = None
    quantity: float = Field(..., gt=0)
    uom: str = "MTR"
    rate: float = Field(..., ge=0)
    tax_rate: float = Field(18, ge=0, le=100)


class InvoiceItemResponse(BaseResponseSchema):
    id: UUID
    description: Optional[str] = None
    heat_no: Optional[str] = None
    size_label: Optional[str] = None
    hsn_code: Optional[str] = None
    quantity: Amount
    uom: str
    rate: Amount
    amount: Amount
    tax_rate: Amount


class InvoiceCreate(BaseCreateSchema):
    sales_order_id: UUID
    customer_id: UUID
    dispatch_note_id: Optional[UUID] = None
    invoice_type: InvoiceType = InvoiceType.DOMESTIC
    invoice_date: Optional[date] = None
    due_date: Optional[date] = None
    currency: str = Field("INR", min_length=3, max_length=3)
    remarks: Optional[str] = None
    items: List[InvoiceItemCreate] = Field(..., min_length=1)


class InvoiceUpdate(BaseUpdateSchema):
    status: Optional[InvoiceStatus] = None
    due_date: Optional[date] = None
    remarks: Optional[str] = None


class InvoiceResponse(BaseResponseSchema):
    id: UUID
    invoice_no: str
    invoice_date: date
    invoice_type: str
    sales_order_id: UUID
    dispatch_note_id: Optional[UUID] = None
    customer_id: UUID
    customer: Optional[CustomerBrief] = None
    due_date: Optional[date] = None
    currency: str
    subtotal: Amount
    cgst_amount: Amount
    sgst_amount: Amount
    igst_amount: Amount
    total_amount: Amount
    amount_in_words: Optional[str] = None
    status: str
    remarks: Optional[str] = None
    items: List[InvoiceItemResponse] = []
    created_at: datetime


# ==================== Payment Schemas ====================

class PaymentReceiptCreate(BaseCreateSchema):
    invoice_id: UUID
    customer_id: UUID
    amount: float = Field(..., gt=0)
    tds_amount: float = Field(0, ge=0)
    payment_mode: PaymentMode = PaymentMode.NEFT
    payment_date: Optional[date] = None
    reference_no: Optional[str] = None
    bank_name: Optional[str] = None
    remarks: Optional[str] = None


class PaymentReceiptResponse(BaseResponseSchema):
    id: UUID
    receipt_no: str
    payment_date: date
    invoice_id: UUID
    customer_id: UUID
    amount: Amount
    tds_amount: Amount
    payment_mode: str
    reference_no: Optional[str] = None
    bank_name: Optional[str] = None
    remarks: Optional[str] = None
    created_at: datetime


class PaymentReceiptCreateResponse(PaymentReceiptResponse):
    invoice_status: Optional[str] = None
    total_paid: float = 0


class InvoiceListResponse(BaseModel):
    items: List[InvoiceResponse]
    total: int
    page: int = 1
    size: int = 100
    pages: int = 1


class PaymentReceiptListResponse(BaseModel):
    items: List[PaymentReceiptResponse]
    total: int
    page: int = 1
    size: int = 100
    pages: int = 1
