"""GRN Service: goods receipt against a purchase order.

Flow:
1. PO released (OPEN)
2. GRN created -> one heat-numbered line per received heat
3. Each line becomes an InventoryStock row, UNDER_INSPECTION until QC
4. PO rolls up to PARTIALLY_RECEIVED / FULLY_RECEIVED
"""
import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from pipetrade.models.document_sequence import DocumentType
from pipetrade.models.inventory import InventoryStock, StockStatus
from pipetrade.models.purchase import (
    PurchaseOrder, POStatus, GoodsReceiptNote, GRNItem,
)
from pipetrade.models.user import User
from pipetrade.schemas.purchase import GRNCreate
from pipetrade.services.business_rules import to_decimal
from pipetrade.services.document_sequence_service import DocumentSequenceService
from pipetrade.services.state_machine import po_machine

logger = logging.getLogger(__name__)

NON_RECEIVABLE_PO_STATUSES = [POStatus.DRAFT.value, POStatus.CANCELLED.value]


class GRNService:
    """Service for GRN operations and stock creation."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_grns(
        self,
        po_id: Optional[uuid.UUID] = None,
        vendor_id: Optional[uuid.UUID] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[GoodsReceiptNote], int]:
        query = select(GoodsReceiptNote)
        if po_id:
            query = query.where(GoodsReceiptNote.po_id == po_id)
        if vendor_id:
            query = query.where(GoodsReceiptNote.vendor_id == vendor_id)

        total = (await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )).scalar() or 0
        result = await self.db.execute(
            query.order_by(GoodsReceiptNote.created_at.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total

    async def get_grn(self, grn_id: uuid.UUID) -> GoodsReceiptNote:
        grn = await self.db.get(GoodsReceiptNote, grn_id)
        if not grn:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="GRN not found")
        return grn

    async def create_grn(
        self,
        data: GRNCreate,
        user: User,
    ) -> Tuple[GoodsReceiptNote, PurchaseOrder, List[InventoryStock]]:
        """
        Receive goods against a PO.

        Returns the GRN, the PO with its rolled-up status and the stock
        rows created for the received heats.
        """
        po = await self.db.get(PurchaseOrder, data.po_id)
        if not po:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Purchase order not found")
        if po.status in NON_RECEIVABLE_PO_STATUSES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot receive goods against a PO in {po.status} status"
            )

        missing_heat = [index for index, item in enumerate(data.items, start=1) if not (item.heat_no or "").strip()]
        if missing_heat:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Heat number is required for every item (missing on item(s) {', '.join(map(str, missing_heat))})"
            )

        numbers = DocumentSequenceService(self.db)
        grn = GoodsReceiptNote(
            grn_no=await numbers.get_next_number(DocumentType.GRN),
            grn_date=data.grn_date or date.today(),
            po_id=po.id,
            vendor_id=data.vendor_id or po.vendor_id,
            received_by_id=user.id,
            remarks=data.remarks,
        )

        stocks: List[InventoryStock] = []
        for index, item in enumerate(data.items, start=1):
            mtc_type = item.mtc_type.value if item.mtc_type else None
            grn_item = GRNItem(
                s_no=index,
                product=item.product,
                material=item.material,
                specification=item.specification,
                additional_spec=item.additional_spec,
                dimension_std=item.dimension_std,
                size_label=item.size_label,
                ends=item.ends,
                length=item.length,
                heat_no=item.heat_no.strip(),
                make=item.make,
                received_qty_mtr=to_decimal(item.received_qty_mtr),
                pieces=item.pieces,
                mtc_no=item.mtc_no,
                mtc_date=item.mtc_date,
                mtc_type=mtc_type,
                tpi_agency=item.tpi_agency,
            )
            grn.items.append(grn_item)

            stocks.append(InventoryStock(
                form=item.form,
                product=item.product,
                specification=item.specification or item.material,
                additional_spec=item.additional_spec,
                dimension_std=item.dimension_std,
                size_label=item.size_label,
                ends=item.ends,
                length=item.length,
                heat_no=grn_item.heat_no,
                make=item.make,
                quantity_mtr=to_decimal(item.received_qty_mtr),
                pieces=item.pieces,
                mtc_no=item.mtc_no,
                mtc_date=item.mtc_date,
                mtc_type=mtc_type,
                tpi_agency=item.tpi_agency,
                status=StockStatus.UNDER_INSPECTION.value,
            ))

        self.db.add(grn)
        await self.db.flush()

        for grn_item, stock in zip(grn.items, stocks):
            stock.grn_item_id = grn_item.id
            self.db.add(stock)

        # PO roll-up across every GRN raised against it
        received_total = (await self.db.execute(
            select(func.coalesce(func.sum(GRNItem.received_qty_mtr), 0))
            .join(GoodsReceiptNote, GRNItem.grn_id == GoodsReceiptNote.id)
            .where(GoodsReceiptNote.po_id == po.id)
        )).scalar()
        ordered_total = sum((to_decimal(i.quantity) for i in po.items), Decimal("0"))

        if to_decimal(received_total) >= ordered_total:
            new_status = POStatus.FULLY_RECEIVED.value
        else:
            new_status = POStatus.PARTIALLY_RECEIVED.value
        po_machine.validate_transition(po.status, new_status)
        if new_status != po.status:
            logger.info("PO %s v%d: %s -> %s", po.po_no, po.version, po.status, new_status)
        po.status = new_status

        await self.db.commit()
        await self.db.refresh(grn)
        await self.db.refresh(po)
        logger.info(
            "Created %s against PO %s: %d heat(s) received, now UNDER_INSPECTION",
            grn.grn_no, po.po_no, len(stocks)
        )
        return grn, po, stocks
