"""Heat-number traceability: one heat from vendor to payment."""
from datetime import date
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel

from pipetrade.schemas.base import BaseResponseSchema
from pipetrade.schemas.billing import InvoiceResponse, PaymentReceiptResponse
from pipetrade.schemas.dispatch import PackingListResponse, DispatchNoteResponse
from pipetrade.schemas.inventory import InventoryStockResponse
from pipetrade.schemas.master import CustomerBrief, VendorBrief
from pipetrade.schemas.quality_control import InspectionResponse, NCRResponse
from pipetrade.schemas.sales import ReservationResponse


class GRNBrief(BaseResponseSchema):
    id: UUID
    grn_no: str
    grn_date: date


class PurchaseOrderBrief(BaseResponseSchema):
    id: UUID
    po_no: str
    version: int
    status: str


class SalesOrderBrief(BaseResponseSchema):
    id: UUID
    so_no: str
    status: str
    customer: Optional[CustomerBrief] = None


class StockTrace(BaseModel):
    stock: InventoryStockResponse
    grn: Optional[GRNBrief] = None
    purchase_order: Optional[PurchaseOrderBrief] = None
    vendor: Optional[VendorBrief] = None


class ReservationTrace(BaseModel):
    reservation: ReservationResponse
    sales_order: Optional[SalesOrderBrief] = None


class HeatTraceResponse(BaseModel):
    heat_no: str
    stocks: List[StockTrace] = []
    inspections: List[InspectionResponse] = []
    ncrs: List[NCRResponse] = []
    reservations: List[ReservationTrace] = []
    packing_lists: List[PackingListResponse] = []
    dispatch_notes: List[DispatchNoteResponse] = []
    invoices: List[InvoiceResponse] = []
    payments: List[PaymentReceiptResponse] = []


class HeatLifecycle(StockTrace):
    """Where one stock row of a heat has been, in brief."""
    inspection_results: List[str] = []
    ncr_nos: List[str] = []
    reserved_for: List[str] = []
    packing_list_nos: List[str] = []
    dispatch_note_nos: List[str] = []


class HeatSearchResponse(BaseModel):
    query: str
    total: int
    results: List[HeatLifecycle] = []
