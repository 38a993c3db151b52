"""Pydantic schemas for customer and vendor masters."""
from datetime import datetime
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel, Field

from pipetrade.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema


class PartyCreate(BaseCreateSchema):
    name: str = Field(..., min_length=1, max_length=255)
    contact_person: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: str = "India"
    gst_no: Optional[str] = Field(None, max_length=20)


class PartyUpdate(BaseUpdateSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    contact_person: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    gst_no: Optional[str] = Field(None, max_length=20)
    is_active: Optional[bool] = None


class CustomerCreate(PartyCreate):
    pass


class CustomerUpdate(PartyUpdate):
    pass


class CustomerBrief(BaseResponseSchema):
    id: UUID
    name: str
    state: Optional[str] = None


class CustomerResponse(BaseResponseSchema):
    id: UUID
    name: str
    contact_person: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: str
    gst_no: Optional[str] = None
    is_active: bool
    created_at: datetime


class VendorCreate(PartyCreate):
    pass


class VendorUpdate(PartyUpdate):
    pass


class VendorBrief(BaseResponseSchema):
    id: UUID
    name: str
    is_approved: bool


class VendorResponse(CustomerResponse):
    is_approved: bool
    approved_date: Optional[datetime] = None


class CustomerListResponse(BaseModel):
    items: List[CustomerResponse]
    total: int
    page: int = 1
    size: int = 100
    pages: int = 1


class VendorListResponse(BaseModel):
    items: List[VendorResponse]
    total: int
    page: int = 1
    size: int = 100
    pages: int = 1
