"""Pydantic schemas for heat-wise inventory and stock issues."""
from datetime import date, datetime
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel, Field

from pipetrade.models.inventory import StockStatus
from pipetrade.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema, Amount


class InventoryStockResponse(BaseResponseSchema):
    id: UUID
    grn_item_id: Optional[UUID] = None
    form: Optional[str] = None
    product: Optional[str] = None
    specification: Optional[str] = None
    additional_spec: Optional[str] = None
    dimension_std: Optional[str] = None
    size_label: Optional[str] = None
    ends: Optional[str] = None
    length: Optional[str] = None
    heat_no: Optional[str] = None
    make: Optional[str] = None
    quantity_mtr: Amount
    pieces: int
    mtc_no: Optional[str] = None
    mtc_date: Optional[date] = None
    mtc_type: Optional[str] = None
    tpi_agency: Optional[str] = None
    location: Optional[str] = None
    rack_no: Optional[str] = None
    notes: Optional[str] = None
    status: str
    reserved_for_so_id: Optional[UUID] = None
    created_at: datetime


class InventoryStockUpdate(BaseUpdateSchema):
    status: Optional[StockStatus] = None
    location: Optional[str] = None
    rack_no: Optional[str] = None
    notes: Optional[str] = None


class StockIssueItemCreate(BaseModel):
    inventory_stock_id: UUID
    quantity_mtr: Optional[float] = Field(None, gt=0)
    pieces: Optional[int] = Field(None, ge=0)


class StockIssueItemResponse(BaseResponseSchema):
    id: UUID
    inventory_stock_id: UUID
    heat_no: Optional[str] = None
    size_label: Optional[str] = None
    material: Optional[str] = None
    quantity_mtr: Amount
    pieces: int


class StockIssueCreate(BaseCreateSchema):
    sales_order_id: UUID
    authorized_by_id: Optional[UUID] = None
    issue_date: Optional[date] = None
    remarks: Optional[str] = None
    items: List[StockIssueItemCreate] = Field(..., min_length=1)


class StockIssueResponse(BaseResponseSchema):
    id: UUID
    issue_no: str
    issue_date: date
    sales_order_id: UUID
    issued_by_id: Optional[UUID] = None
    authorized_by_id: Optional[UUID] = None
    remarks: Optional[str] = None
    items: List[StockIssueItemResponse] = []
    created_at: datetime


class InventoryStockListResponse(BaseModel):
    items: List[InventoryStockResponse]
    total: int
    page: int = 1
    size: int = 100
    pages: int = 1


class StockIssueListResponse(BaseModel):
    items: List[StockIssueResponse]
    total: int
    page: int = 1
    size: int = 100
    pages: int = 1
