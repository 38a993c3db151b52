"""
Traceability Service.

Follows one heat number through the whole chain:
vendor -> PO -> GRN -> stock -> inspections / NCRs -> reservations ->
sales order -> packing list -> dispatch note -> invoice -> payment.
"""
import logging
from typing import List

from fastapi import HTTPException, status
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from pipetrade.models.billing import Invoice, InvoiceItem, PaymentReceipt
from pipetrade.models.dispatch import PackingList, PackingListItem, DispatchNote
from pipetrade.models.inventory import InventoryStock, StockReservation
from pipetrade.models.master import Vendor
from pipetrade.models.purchase import GRNItem, GoodsReceiptNote, PurchaseOrder
from pipetrade.models.quality_control import Inspection, NCR
from pipetrade.models.sales import SalesOrder
from pipetrade.schemas.traceability import (
    HeatTraceResponse, HeatSearchResponse, HeatLifecycle, StockTrace, ReservationTrace,
    GRNBrief, PurchaseOrderBrief, SalesOrderBrief,
)
from pipetrade.schemas.billing import InvoiceResponse, PaymentReceiptResponse
from pipetrade.schemas.dispatch import PackingListResponse, DispatchNoteResponse
from pipetrade.schemas.inventory import InventoryStockResponse
from pipetrade.schemas.master import VendorBrief
from pipetrade.schemas.quality_control import InspectionResponse, NCRResponse
from pipetrade.schemas.sales import ReservationResponse

logger = logging.getLogger(__name__)


class TraceabilityService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _stock_trace(self, stock: InventoryStock) -> StockTrace:
        trace = StockTrace(stock=InventoryStockResponse.model_validate(stock))
        if not stock.grn_item_id:
            return trace

        grn_item = await self.db.get(GRNItem, stock.grn_item_id)
        grn = await self.db.get(GoodsReceiptNote, grn_item.grn_id) if grn_item else None
        if not grn:
            return trace
        trace.grn = GRNBrief.model_validate(grn)

        po = await self.db.get(PurchaseOrder, grn.po_id)
        if po:
            trace.purchase_order = PurchaseOrderBrief.model_validate(po)
        vendor = await self.db.get(Vendor, grn.vendor_id)
        if vendor:
            trace.vendor = VendorBrief.model_validate(vendor)
        return trace

    async def trace_heat(self, heat_no: str) -> HeatTraceResponse:
        stocks = list((await self.db.execute(
            select(InventoryStock)
            .where(InventoryStock.heat_no == heat_no)
            .order_by(InventoryStock.created_at)
        )).scalars().all())
        if not stocks:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"No stock found for heat number {heat_no}"
            )
        stock_ids = [s.id for s in stocks]

        inspections = (await self.db.execute(
            select(Inspection)
            .where(Inspection.inventory_stock_id.in_(stock_ids))
            .order_by(Inspection.inspection_date)
        )).scalars().all()

        ncrs = (await self.db.execute(
            select(NCR)
            .where(or_(NCR.inventory_stock_id.in_(stock_ids), NCR.heat_no == heat_no))
            .order_by(NCR.ncr_date)
        )).scalars().all()

        reservations: List[ReservationTrace] = []
        for reservation in (await self.db.execute(
            select(StockReservation)
            .where(StockReservation.inventory_stock_id.in_(stock_ids))
            .order_by(StockReservation.reservation_date)
        )).scalars().all():
            sales_order = await self.db.get(SalesOrder, reservation.sales_order_id)
            reservations.append(ReservationTrace(
                reservation=ReservationResponse.model_validate(reservation),
                sales_order=SalesOrderBrief.model_validate(sales_order) if sales_order else None,
            ))

        packing_lists = (await self.db.execute(
            select(PackingList)
            .where(PackingList.id.in_(
                select(PackingListItem.packing_list_id).where(PackingListItem.inventory_stock_id.in_(stock_ids))
            ))
            .order_by(PackingList.pl_date)
        )).scalars().all()
        packing_list_ids = [pl.id for pl in packing_lists]

        dispatch_notes = []
        if packing_list_ids:
            dispatch_notes = (await self.db.execute(
                select(DispatchNote)
                .where(DispatchNote.packing_list_id.in_(packing_list_ids))
                .order_by(DispatchNote.dispatch_date)
            )).scalars().all()
        dispatch_note_ids = [dn.id for dn in dispatch_notes]

        invoice_filter = Invoice.id.in_(select(InvoiceItem.invoice_id).where(InvoiceItem.heat_no == heat_no))
        if dispatch_note_ids:
            invoice_filter = or_(invoice_filter, Invoice.dispatch_note_id.in_(dispatch_note_ids))
        invoices = (await self.db.execute(
            select(Invoice).where(invoice_filter).order_by(Invoice.invoice_date)
        )).scalars().all()

        payments = []
        if invoices:
            payments = (await self.db.execute(
                select(PaymentReceipt)
                .where(PaymentReceipt.invoice_id.in_([inv.id for inv in invoices]))
                .order_by(PaymentReceipt.payment_date)
            )).scalars().all()

        logger.debug("Traced heat %s across %d stock row(s)", heat_no, len(stocks))
        return HeatTraceResponse(
            heat_no=heat_no,
            stocks=[await self._stock_trace(stock) for stock in stocks],
            inspections=[InspectionResponse.model_validate(i) for i in inspections],
            ncrs=[NCRResponse.model_validate(n) for n in ncrs],
            reservations=reservations,
            packing_lists=[PackingListResponse.model_validate(pl) for pl in packing_lists],
            dispatch_notes=[DispatchNoteResponse.model_validate(dn) for dn in dispatch_notes],
            invoices=[InvoiceResponse.model_validate(inv) for inv in invoices],
            payments=[PaymentReceiptResponse.model_validate(p) for p in payments],
        )

    async def search_heats(self, query: str, limit: int = 50) -> HeatSearchResponse:
        """Heats whose number contains the query, case-insensitive, each with its lifecycle in brief."""
        stocks = list((await self.db.execute(
            select(InventoryStock)
            .where(InventoryStock.heat_no.ilike(f"%{query}%"))
            .order_by(InventoryStock.heat_no, InventoryStock.created_at)
            .limit(limit)
        )).scalars().all())

        results: List[HeatLifecycle] = []
        for stock in stocks:
            trace = await self._stock_trace(stock)

            inspections = (await self.db.execute(
                select(Inspection.overall_result)
                .where(Inspection.inventory_stock_id == stock.id)
                .order_by(Inspection.inspection_date)
            )).scalars().all()
            ncr_nos = (await self.db.execute(
                select(NCR.ncr_no).where(NCR.inventory_stock_id == stock.id).order_by(NCR.ncr_date)
            )).scalars().all()
            so_nos = (await self.db.execute(
                select(SalesOrder.so_no)
                .join(StockReservation, StockReservation.sales_order_id == SalesOrder.id)
                .where(StockReservation.inventory_stock_id == stock.id)
                .order_by(StockReservation.reservation_date)
            )).scalars().all()
            pl_rows = (await self.db.execute(
                select(PackingList.id, PackingList.pl_no)
                .join(PackingListItem, PackingListItem.packing_list_id == PackingList.id)
                .where(PackingListItem.inventory_stock_id == stock.id)
                .order_by(PackingList.pl_date)
            )).all()
            dn_nos = []
            if pl_rows:
                dn_nos = (await self.db.execute(
                    select(DispatchNote.dn_no)
                    .where(DispatchNote.packing_list_id.in_([row.id for row in pl_rows]))
                    .order_by(DispatchNote.dispatch_date)
                )).scalars().all()

            results.append(HeatLifecycle(
                stock=trace.stock,
                grn=trace.grn,
                purchase_order=trace.purchase_order,
                vendor=trace.vendor,
                inspection_results=list(inspections),
                ncr_nos=list(ncr_nos),
                reserved_for=list(dict.fromkeys(so_nos)),
                packing_list_nos=[row.pl_no for row in pl_rows],
                dispatch_note_nos=list(dn_nos),
            ))

        logger.debug("Heat search %r matched %d stock row(s)", query, len(results))
        return HeatSearchResponse(query=query, total=len(results), results=results)
