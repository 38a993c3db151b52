"""
Dispatch Service: packing lists and dispatch notes.

A dispatch note ships everything on its packing list:
1. every packed heat -> DISPATCHED
2. the order's open reservations on those heats -> DISPATCHED
3. sales order -> FULLY_DISPATCHED once all its reservations are
   dispatched, otherwise PARTIALLY_DISPATCHED
"""
import logging
import uuid
from datetime import date
from typing import List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from pipetrade.models.dispatch import PackingList, PackingListItem, DispatchNote
from pipetrade.models.document_sequence import DocumentType
from pipetrade.models.inventory import (
    InventoryStock, StockStatus, StockReservation, ReservationStatus,
)
from pipetrade.models.sales import SalesOrder, SOStatus
from pipetrade.models.user import User
from pipetrade.schemas.dispatch import PackingListCreate, DispatchNoteCreate
from pipetrade.services.business_rules import to_decimal
from pipetrade.services.document_sequence_service import DocumentSequenceService
from pipetrade.services.state_machine import sales_order_machine, stock_machine

logger = logging.getLogger(__name__)

PACKABLE_STOCK_STATUSES = [StockStatus.RESERVED.value, StockStatus.ACCEPTED.value]


class DispatchService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.numbers = DocumentSequenceService(db)

    async def _get_sales_order(self, sales_order_id: uuid.UUID) -> SalesOrder:
        sales_order = await self.db.get(SalesOrder, sales_order_id)
        if not sales_order:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sales order not found")
        return sales_order

    # ==================== Packing List ====================

    async def list_packing_lists(
        self,
        sales_order_id: Optional[uuid.UUID] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[PackingList], int]:
        query = select(PackingList)
        if sales_order_id:
            query = query.where(PackingList.sales_order_id == sales_order_id)

        total = (await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )).scalar() or 0
        result = await self.db.execute(
            query.order_by(PackingList.created_at.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total

    async def get_packing_list(self, packing_list_id: uuid.UUID) -> PackingList:
        packing_list = await self.db.get(PackingList, packing_list_id)
        if not packing_list:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Packing list not found")
        return packing_list

    async def create_packing_list(self, data: PackingListCreate, user: User) -> PackingList:
        sales_order = await self._get_sales_order(data.sales_order_id)

        items: List[PackingListItem] = []
        for line in data.items:
            stock = await self.db.get(InventoryStock, line.inventory_stock_id)
            if not stock:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Stock not found")
            if stock.status not in PACKABLE_STOCK_STATUSES:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Heat {stock.heat_no} is {stock.status}; only RESERVED or ACCEPTED stock can be packed"
                )
            if (
                stock.status == StockStatus.RESERVED.value
                and stock.reserved_for_so_id != sales_order.id
            ):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Heat {stock.heat_no} is reserved for another sales order"
                )

            items.append(PackingListItem(
                inventory_stock_id=stock.id,
                heat_no=line.heat_no or stock.heat_no,
                size_label=line.size_label or stock.size_label,
                material=line.material or stock.specification,
                quantity_mtr=to_decimal(line.quantity_mtr) if line.quantity_mtr is not None else stock.quantity_mtr,
                pieces=line.pieces if line.pieces is not None else stock.pieces,
                bundle_no=line.bundle_no,
                gross_weight_kg=to_decimal(line.gross_weight_kg) if line.gross_weight_kg is not None else None,
                net_weight_kg=to_decimal(line.net_weight_kg) if line.net_weight_kg is not None else None,
                marking_details=line.marking_details,
            ))

        packing_list = PackingList(
            pl_no=await self.numbers.get_next_number(DocumentType.PACKING_LIST),
            pl_date=data.pl_date or date.today(),
            sales_order_id=sales_order.id,
            remarks=data.remarks,
            created_by_id=user.id,
            items=items,
        )
        self.db.add(packing_list)
        await self.db.commit()
        await self.db.refresh(packing_list)
        logger.info("Created %s for %s: %d heat(s)", packing_list.pl_no, sales_order.so_no, len(items))
        return packing_list

    # ==================== Dispatch Note ====================

    async def list_dispatch_notes(
        self,
        sales_order_id: Optional[uuid.UUID] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[DispatchNote], int]:
        query = select(DispatchNote)
        if sales_order_id:
            query = query.where(DispatchNote.sales_order_id == sales_order_id)
        if search:
            query = query.where(DispatchNote.dn_no.ilike(f"%{search}%"))

        total = (await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )).scalar() or 0
        result = await self.db.execute(
            query.order_by(DispatchNote.dispatch_date.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total

    async def get_dispatch_note(self, dispatch_note_id: uuid.UUID) -> DispatchNote:
        dispatch_note = await self.db.get(DispatchNote, dispatch_note_id)
        if not dispatch_note:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Dispatch note not found")
        return dispatch_note

    async def create_dispatch_note(
        self,
        data: DispatchNoteCreate,
        user: User,
    ) -> Tuple[DispatchNote, SalesOrder]:
        """Ship a packing list. Returns the note and the rolled-up sales order."""
        packing_list = await self.get_packing_list(data.packing_list_id)
        sales_order = await self._get_sales_order(data.sales_order_id)
        if packing_list.sales_order_id != sales_order.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Packing list {packing_list.pl_no} belongs to another sales order"
            )

        existing = (await self.db.execute(
            select(DispatchNote.dn_no).where(DispatchNote.packing_list_id == packing_list.id)
        )).scalars().first()
        if existing:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Packing list {packing_list.pl_no} was already dispatched on {existing}"
            )

        stock_ids = [item.inventory_stock_id for item in packing_list.items]
        stocks = (await self.db.execute(
            select(InventoryStock).where(InventoryStock.id.in_(stock_ids))
        )).scalars().all()
        for stock in stocks:
            if stock.status == StockStatus.DISPATCHED.value:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Heat {stock.heat_no} is already dispatched"
                )
            if (
                stock.status == StockStatus.RESERVED.value
                and stock.reserved_for_so_id != sales_order.id
            ):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Heat {stock.heat_no} is reserved for another sales order"
                )

        dispatch_note = DispatchNote(
            dn_no=await self.numbers.get_next_number(DocumentType.DISPATCH_NOTE),
            dispatch_date=data.dispatch_date or date.today(),
            packing_list_id=packing_list.id,
            sales_order_id=sales_order.id,
            vehicle_no=data.vehicle_no,
            lr_no=data.lr_no,
            transporter=data.transporter,
            destination=data.destination,
            eway_bill_no=data.eway_bill_no,
            remarks=data.remarks,
            created_by_id=user.id,
        )
        self.db.add(dispatch_note)

        for stock in stocks:
            stock_machine.validate_transition(stock.status, StockStatus.DISPATCHED.value)
            stock.status = StockStatus.DISPATCHED.value

        reservations = (await self.db.execute(
            select(StockReservation).where(
                StockReservation.inventory_stock_id.in_(stock_ids),
                StockReservation.sales_order_id == sales_order.id,
                StockReservation.status == ReservationStatus.RESERVED.value,
            )
        )).scalars().all()
        for reservation in reservations:
            reservation.status = ReservationStatus.DISPATCHED.value
        await self.db.flush()

        # Roll the order up over every live reservation it has
        so_reservations = (await self.db.execute(
            select(StockReservation.status).where(
                StockReservation.sales_order_id == sales_order.id,
                StockReservation.status != ReservationStatus.RELEASED.value,
            )
        )).scalars().all()
        all_dispatched = bool(so_reservations) and all(
            s == ReservationStatus.DISPATCHED.value for s in so_reservations
        )
        new_status = SOStatus.FULLY_DISPATCHED.value if all_dispatched else SOStatus.PARTIALLY_DISPATCHED.value
        sales_order_machine.validate_transition(sales_order.status, new_status)
        if new_status != sales_order.status:
            logger.info("%s: %s -> %s", sales_order.so_no, sales_order.status, new_status)
        sales_order.status = new_status

        await self.db.commit()
        await self.db.refresh(dispatch_note)
        logger.info(
            "Created %s for %s: %d heat(s) dispatched, %d reservation(s) closed",
            dispatch_note.dn_no, packing_list.pl_no, len(stocks), len(reservations)
        )
        return dispatch_note, sales_order
