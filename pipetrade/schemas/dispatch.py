"""Pydantic schemas for packing lists and dispatch notes."""
from datetime import date, datetime
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel, Field

from pipetrade.schemas.base import BaseResponseSchema, BaseCreateSchema, Amount, OptionalAmount


class PackingListItemCreate(BaseModel):
    inventory_stock_id: UUID
    heat_no: Optional[str] = None
    size_label: Optional[str] = None
    material: Optional[str] = None
    quantity_mtr: Optional[float] = Field(None, gt=0)
    pieces: Optional[int] = Field(None, ge=0)
    bundle_no: Optional[str] = None
    gross_weight_kg: Optional[float] = Field(None, ge=0)
    net_weight_kg: Optional[float] = Field(None, ge=0)
    marking_details: Optional[str] = None


class PackingListItemResponse(BaseResponseSchema):
    id: UUID
    inventory_stock_id: UUID
    heat_no: Optional[str] = None
    size_label: Optional[str] = None
    material: Optional[str] = None
    quantity_mtr: Amount
    pieces: int
    bundle_no: Optional[str] = None
    gross_weight_kg: OptionalAmount = None
    net_weight_kg: OptionalAmount = None
    marking_details: Optional[str] = None


class PackingListCreate(BaseCreateSchema):
    sales_order_id: UUID
    pl_date: Optional[date] = None
    remarks: Optional[str] = None
    items: List[PackingListItemCreate] = Field(..., min_length=1)


class PackingListResponse(BaseResponseSchema):
    id: UUID
    pl_no: str
    pl_date: date
    sales_order_id: UUID
    remarks: Optional[str] = None
    items: List[PackingListItemResponse] = []
    created_at: datetime


class DispatchNoteCreate(BaseCreateSchema):
    packing_list_id: UUID
    sales_order_id: UUID
    dispatch_date: Optional[date] = None
    vehicle_no: Optional[str] = None
    lr_no: Optional[str] = None
    transporter: Optional[str] = None
    destination: Optional[str] = None
    eway_bill_no: Optional[str] = None
    remarks: Optional[str] = None


class DispatchNoteResponse(BaseResponseSchema):
    id: UUID
    dn_no: str
    dispatch_date: date
    packing_list_id: UUID
    sales_order_id: UUID
    vehicle_no: Optional[str] = None
    lr_no: Optional[str] = None
    transporter: Optional[str] = None
    destination: Optional[str] = None
    eway_bill_no: Optional[str] = None
    remarks: Optional[str] = None
    created_at: datetime


class DispatchNoteCreateResponse(DispatchNoteResponse):
    so_status: Optional[str] = None


class PackingListListResponse(BaseModel):
    items: List[PackingListResponse]
    total: int
    page: int = 1
    size: int = 100
    pages: int = 1


class DispatchNoteListResponse(BaseModel):
    items: List[DispatchNoteResponse]
    total: int
    page: int = 1
    size: int = 100
    pages: int = 1
