"""
Inventory Service: heat-wise stock and stock issues.

Stock status changes go through the stock table; a heat that ends up
REJECTED gets an NCR raised against it automatically.
"""
import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from pipetrade.core.permissions import AccessChecker
from pipetrade.models.document_sequence import DocumentType
from pipetrade.models.inventory import (
    InventoryStock, StockStatus, StockReservation, ReservationStatus,
    StockIssue, StockIssueItem,
)
from pipetrade.models.sales import SalesOrder, SOStatus
from pipetrade.models.user import Role, User
from pipetrade.schemas.inventory import InventoryStockUpdate, StockIssueCreate
from pipetrade.services.business_rules import to_decimal
from pipetrade.services.document_sequence_service import DocumentSequenceService
from pipetrade.services.quality_control_service import QualityControlService
from pipetrade.services.state_machine import stock_machine

logger = logging.getLogger(__name__)

STOCK_STATUS_ROLES = (Role.QC.value, Role.ADMIN.value, Role.MANAGEMENT.value)
ISSUABLE_STOCK_STATUSES = [StockStatus.ACCEPTED.value, StockStatus.RESERVED.value]
ISSUABLE_SO_STATUSES = [SOStatus.OPEN.value, SOStatus.PARTIALLY_DISPATCHED.value]


class InventoryService:
    """Service for stock maintenance and issues against sales orders."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== Stock ====================

    async def list_stock(
        self,
        stock_status: Optional[str] = None,
        product: Optional[str] = None,
        size_label: Optional[str] = None,
        heat_no: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[InventoryStock], int]:
        query = select(InventoryStock)
        if stock_status:
            query = query.where(InventoryStock.status == stock_status)
        if product:
            query = query.where(InventoryStock.product.ilike(f"%{product}%"))
        if size_label:
            query = query.where(InventoryStock.size_label == size_label)
        if heat_no:
            query = query.where(InventoryStock.heat_no.ilike(f"%{heat_no}%"))

        total = (await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )).scalar() or 0
        result = await self.db.execute(
            query.order_by(InventoryStock.created_at.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total

    async def get_stock(self, stock_id: uuid.UUID) -> InventoryStock:
        stock = await self.db.get(InventoryStock, stock_id)
        if not stock:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Stock not found")
        return stock

    async def update_stock(
        self,
        stock_id: uuid.UUID,
        data: InventoryStockUpdate,
        access: AccessChecker,
    ) -> InventoryStock:
        """
        Update location fields and/or status of a heat.

        Location fields need inventory write access. Status changes are
        reserved for QC, Management and Admin.
        """
        stock = await self.get_stock(stock_id)
        update_data = data.model_dump(exclude_unset=True)
        new_status = update_data.pop("status", None)

        if new_status and not access.is_any(*STOCK_STATUS_ROLES):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only QC, Admin, or Management can change stock status"
            )
        if update_data:
            access.check("inventory", "write")

        for field, value in update_data.items():
            setattr(stock, field, value)

        if new_status:
            await QualityControlService(self.db).apply_stock_status(stock, new_status.value, access.user)

        await self.db.commit()
        await self.db.refresh(stock)
        return stock

    # ==================== Stock Issue ====================

    async def list_issues(
        self,
        sales_order_id: Optional[uuid.UUID] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[StockIssue], int]:
        query = select(StockIssue)
        if sales_order_id:
            query = query.where(StockIssue.sales_order_id == sales_order_id)

        total = (await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )).scalar() or 0
        result = await self.db.execute(
            query.order_by(StockIssue.created_at.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total

    async def get_issue(self, issue_id: uuid.UUID) -> StockIssue:
        issue = await self.db.get(StockIssue, issue_id)
        if not issue:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Stock issue not found")
        return issue

    async def _open_reservations(self, stock_id: uuid.UUID, sales_order_id: uuid.UUID) -> List[StockReservation]:
        result = await self.db.execute(
            select(StockReservation).where(
                StockReservation.inventory_stock_id == stock_id,
                StockReservation.sales_order_id == sales_order_id,
                StockReservation.status == ReservationStatus.RESERVED.value,
            )
        )
        return list(result.scalars().all())

    async def create_issue(self, data: StockIssueCreate, user: User) -> StockIssue:
        """
        Issue heats from stores against a sales order.

        A RESERVED heat can only be issued to the order it is reserved
        for; its reserved quantity counts as issuable and the reservation
        is marked DISPATCHED.
        """
        sales_order = await self.db.get(SalesOrder, data.sales_order_id)
        if not sales_order:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sales order not found")
        if sales_order.status not in ISSUABLE_SO_STATUSES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot issue stock against a sales order in {sales_order.status} status"
            )

        issue_items: List[StockIssueItem] = []
        for line in data.items:
            stock = await self.get_stock(line.inventory_stock_id)
            if stock.status not in ISSUABLE_STOCK_STATUSES:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Heat {stock.heat_no} is {stock.status} and cannot be issued"
                )

            reservations: List[StockReservation] = []
            if stock.status == StockStatus.RESERVED.value:
                if stock.reserved_for_so_id != sales_order.id:
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail=f"Heat {stock.heat_no} is reserved for another sales order"
                    )
                reservations = await self._open_reservations(stock.id, sales_order.id)

            on_hand = to_decimal(stock.quantity_mtr) + sum(
                (to_decimal(r.reserved_qty_mtr) for r in reservations), Decimal("0")
            )
            qty = to_decimal(line.quantity_mtr) if line.quantity_mtr is not None else on_hand
            if qty > on_hand:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Issue quantity {qty} exceeds stock on hand {on_hand} for heat {stock.heat_no}"
                )

            stock_machine.validate_transition(stock.status, StockStatus.DISPATCHED.value)
            stock.status = StockStatus.DISPATCHED.value
            for reservation in reservations:
                reservation.status = ReservationStatus.DISPATCHED.value

            issue_items.append(StockIssueItem(
                inventory_stock_id=stock.id,
                heat_no=stock.heat_no,
                size_label=stock.size_label,
                material=stock.specification,
                quantity_mtr=qty,
                pieces=line.pieces if line.pieces is not None else stock.pieces,
            ))

        numbers = DocumentSequenceService(self.db)
        issue = StockIssue(
            issue_no=await numbers.get_next_number(DocumentType.STOCK_ISSUE),
            issue_date=data.issue_date or date.today(),
            sales_order_id=sales_order.id,
            issued_by_id=user.id,
            authorized_by_id=data.authorized_by_id,
            remarks=data.remarks,
            items=issue_items,
        )
        self.db.add(issue)
        await self.db.commit()
        await self.db.refresh(issue)
        logger.info(
            "Created %s against %s: %d heat(s) issued",
            issue.issue_no, sales_order.so_no, len(issue_items)
        )
        return issue
