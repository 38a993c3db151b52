"""
Stock Reservation Service for sales orders.

Reserves accepted heats against sales order lines, reports what is still
short and raises a purchase requisition for the shortfall.

Flow:
1. available_stock() - ACCEPTED heats matching a line, oldest MTC first (FIFO)
2. reserve() - heat becomes RESERVED for the order, quantity comes off the heat
3. shortfall() - per line: ordered - reserved vs. what is still in stock
4. create_auto_pr() - requisition for the shortfall lines
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from pipetrade.config import settings
from pipetrade.models.document_sequence import DocumentType
from pipetrade.models.inventory import (
    InventoryStock, StockStatus, StockReservation, ReservationStatus,
)
from pipetrade.models.purchase import (
    PurchaseRequisition, PurchaseRequisitionItem, RequisitionStatus,
)
from pipetrade.models.sales import SalesOrder, SalesOrderItem, SOStatus
from pipetrade.models.user import User
from pipetrade.schemas.sales import ReserveStockRequest, ShortfallAnalysis, ShortfallItem
from pipetrade.services.business_rules import fifo_warning, to_decimal
from pipetrade.services.document_sequence_service import DocumentSequenceService
from pipetrade.services.state_machine import requisition_machine, stock_machine

logger = logging.getLogger(__name__)

# Orders that can still take reservations
RESERVABLE_SO_STATUSES = [SOStatus.OPEN.value, SOStatus.PARTIALLY_DISPATCHED.value]


@dataclass
class AutoPRResult:
    """Result of an automatic requisition attempt."""
    success: bool
    message: str = ""
    requisition: Optional[PurchaseRequisition] = None


class StockReservationService:
    """Reservations, shortfall analysis and auto-PR for one sales order at a time."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_sales_order(self, sales_order_id: uuid.UUID) -> SalesOrder:
        sales_order = await self.db.get(SalesOrder, sales_order_id)
        if not sales_order:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sales order not found")
        return sales_order

    @staticmethod
    def _get_item(sales_order: SalesOrder, so_item_id: uuid.UUID) -> SalesOrderItem:
        for item in sales_order.items:
            if item.id == so_item_id:
                return item
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sales order item not found")

    async def _matching_stock(self, item: SalesOrderItem, match_material: bool = False) -> List[InventoryStock]:
        """ACCEPTED heats with quantity left that fit the line, FIFO by MTC date."""
        query = select(InventoryStock).where(
            InventoryStock.status == StockStatus.ACCEPTED.value,
            InventoryStock.quantity_mtr > 0,
        )
        if item.product:
            query = query.where(InventoryStock.product.contains(item.product))
        if match_material and item.material:
            query = query.where(InventoryStock.specification.contains(item.material))
        if item.size_label:
            query = query.where(InventoryStock.size_label == item.size_label)

        query = query.order_by(
            InventoryStock.mtc_date.is_(None),
            InventoryStock.mtc_date.asc(),
            InventoryStock.created_at.asc(),
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def available_stock(self, sales_order_id: uuid.UUID, so_item_id: uuid.UUID) -> List[InventoryStock]:
        sales_order = await self._get_sales_order(sales_order_id)
        item = self._get_item(sales_order, so_item_id)
        return await self._matching_stock(item)

    async def reserve(
        self,
        sales_order_id: uuid.UUID,
        data: ReserveStockRequest,
        user: User,
    ) -> Tuple[StockReservation, Optional[str]]:
        """
        Reserve a heat for a sales order line.

        Returns the reservation and a FIFO warning when older heats for
        the same product and size were passed over.
        """
        sales_order = await self._get_sales_order(sales_order_id)
        if sales_order.status not in RESERVABLE_SO_STATUSES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot reserve stock for a sales order in {sales_order.status} status"
            )
        item = self._get_item(sales_order, data.so_item_id)

        stock = await self.db.get(InventoryStock, data.inventory_stock_id)
        if not stock:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Stock not found")
        if stock.status != StockStatus.ACCEPTED.value:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Stock is not in ACCEPTED status"
            )

        qty = to_decimal(data.reserved_qty_mtr)
        available_qty = to_decimal(stock.quantity_mtr)
        if qty <= 0 or qty > available_qty:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Insufficient stock quantity (available {available_qty} mtr)"
            )

        fifo_order = [s.id for s in await self._matching_stock(item)]
        warning = fifo_warning([stock.id], fifo_order)

        stock_machine.validate_transition(stock.status, StockStatus.RESERVED.value)
        reservation = StockReservation(
            sales_order_id=sales_order.id,
            so_item_id=item.id,
            inventory_stock_id=stock.id,
            reserved_qty_mtr=qty,
            reserved_pieces=data.reserved_pieces,
            status=ReservationStatus.RESERVED.value,
            reserved_by_id=user.id,
        )
        self.db.add(reservation)

        stock.status = StockStatus.RESERVED.value
        stock.reserved_for_so_id = sales_order.id
        stock.quantity_mtr = available_qty - qty
        if data.reserved_pieces:
            stock.pieces = max((stock.pieces or 0) - data.reserved_pieces, 0)

        await self.db.commit()
        await self.db.refresh(reservation)
        logger.info(
            "Reserved %s mtr of heat %s for %s line %d",
            qty, stock.heat_no, sales_order.so_no, item.s_no
        )
        if warning:
            logger.info("%s: %s", sales_order.so_no, warning)
        return reservation, warning

    async def list_reservations(self, sales_order_id: uuid.UUID) -> List[StockReservation]:
        await self._get_sales_order(sales_order_id)
        result = await self.db.execute(
            select(StockReservation)
            .where(StockReservation.sales_order_id == sales_order_id)
            .order_by(StockReservation.reservation_date)
        )
        return list(result.scalars().all())

    async def shortfall(self, sales_order_id: uuid.UUID) -> ShortfallAnalysis:
        """Per-line shortfall of a sales order against stock on hand."""
        sales_order = await self._get_sales_order(sales_order_id)

        lines: List[ShortfallItem] = []
        total_shortfall = Decimal("0")
        for item in sales_order.items:
            reserved = (await self.db.execute(
                select(func.coalesce(func.sum(StockReservation.reserved_qty_mtr), 0)).where(
                    StockReservation.so_item_id == item.id,
                    StockReservation.status != ReservationStatus.RELEASED.value,
                )
            )).scalar()
            reserved = to_decimal(reserved)

            stock = await self._matching_stock(item, match_material=True)
            available = sum((to_decimal(s.quantity_mtr) for s in stock), Decimal("0"))

            ordered = to_decimal(item.quantity)
            remaining = max(ordered - reserved, Decimal("0"))
            shortfall = remaining - available if available < remaining else Decimal("0")
            total_shortfall += shortfall

            lines.append(ShortfallItem(
                so_item_id=item.id,
                s_no=item.s_no,
                product=item.product,
                material=item.material,
                size_label=item.size_label,
                ordered_qty=float(ordered),
                reserved_qty=float(reserved),
                remaining_qty=float(remaining),
                available_qty=float(available),
                shortfall_qty=float(shortfall),
            ))

        return ShortfallAnalysis(
            sales_order_id=sales_order.id,
            so_no=sales_order.so_no,
            items=lines,
            total_shortfall=float(total_shortfall),
            has_shortfall=total_shortfall > 0,
        )

    async def create_auto_pr(
        self,
        sales_order_id: uuid.UUID,
        user: User,
        auto_submit: bool = False,
    ) -> AutoPRResult:
        """Raise a purchase requisition covering the order's shortfall."""
        sales_order = await self._get_sales_order(sales_order_id)
        analysis = await self.shortfall(sales_order_id)

        if not analysis.has_shortfall:
            return AutoPRResult(success=False, message=f"No shortfall for sales order {sales_order.so_no}")

        if analysis.total_shortfall < settings.AUTO_PR_MIN_SHORTFALL:
            return AutoPRResult(
                success=False,
                message=(
                    f"Total shortfall {analysis.total_shortfall:g} is below the minimum of "
                    f"{settings.AUTO_PR_MIN_SHORTFALL:g} for an automatic requisition"
                ),
            )

        so_items = {item.id: item for item in sales_order.items}
        pr_items = []
        for line in analysis.items:
            if line.shortfall_qty <= 0:
                continue
            so_item = so_items[line.so_item_id]
            pr_items.append(PurchaseRequisitionItem(
                s_no=len(pr_items) + 1,
                product=so_item.product,
                material=so_item.material,
                additional_spec=so_item.additional_spec,
                size_label=so_item.size_label,
                quantity=to_decimal(line.shortfall_qty),
                uom="MTR",
                remarks=f"For SO {sales_order.so_no}",
            ))

        pr_status = RequisitionStatus.DRAFT.value
        if auto_submit:
            requisition_machine.validate_transition(pr_status, RequisitionStatus.PENDING_APPROVAL.value)
            pr_status = RequisitionStatus.PENDING_APPROVAL.value

        numbers = DocumentSequenceService(self.db)
        requisition = PurchaseRequisition(
            pr_no=await numbers.get_next_number(DocumentType.PURCHASE_REQUISITION),
            sales_order_id=sales_order.id,
            required_by=date.today() + timedelta(days=settings.AUTO_PR_LEAD_DAYS),
            remarks=f"Auto-generated for shortfall on SO {sales_order.so_no}",
            status=pr_status,
            is_auto_generated=True,
            requested_by_id=user.id,
            items=pr_items,
        )
        self.db.add(requisition)
        await self.db.commit()
        await self.db.refresh(requisition)

        logger.info(
            "Auto-generated %s (%s) for %s: %d line(s), %g mtr short",
            requisition.pr_no, requisition.status, sales_order.so_no,
            len(pr_items), analysis.total_shortfall
        )
        return AutoPRResult(
            success=True,
            message=f"Purchase requisition {requisition.pr_no} created",
            requisition=requisition,
        )
