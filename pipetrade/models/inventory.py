"""
Inventory models: heat-wise stock, reservations against sales orders
and stock issues.
"""
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional, List

from sqlalchemy import String, Integer, DateTime, Date, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pipetrade.database import Base
from pipetrade.db_types import UUIDType, QtyType


# ==================== Enums ====================

class StockStatus(str, Enum):
    UNDER_INSPECTION = "UNDER_INSPECTION"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    HOLD = "HOLD"
    RESERVED = "RESERVED"
    DISPATCHED = "DISPATCHED"


class ReservationStatus(str, Enum):
    RESERVED = "RESERVED"
    DISPATCHED = "DISPATCHED"
    RELEASED = "RELEASED"


# ==================== Stock ====================

class InventoryStock(Base):
    """
    One heat of material on hand.

    Created UNDER_INSPECTION by a GRN line and moved through QC,
    reservation and dispatch.
    """
    __tablename__ = "inventory_stocks"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    grn_item_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("grn_items.id"), nullable=True, index=True
    )

    form: Mapped[Optional[str]] = mapped_column(String(50), comment="PIPE, FITTING, FLANGE, PLATE")
    product: Mapped[Optional[str]] = mapped_column(String(200), index=True)
    specification: Mapped[Optional[str]] = mapped_column(String(200))
    additional_spec: Mapped[Optional[str]] = mapped_column(String(255))
    dimension_std: Mapped[Optional[str]] = mapped_column(String(100))
    size_label: Mapped[Optional[str]] = mapped_column(String(100), index=True)
    ends: Mapped[Optional[str]] = mapped_column(String(20))
    length: Mapped[Optional[str]] = mapped_column(String(50))
    heat_no: Mapped[Optional[str]] = mapped_column(String(100), index=True)
    make: Mapped[Optional[str]] = mapped_column(String(100))
    quantity_mtr: Mapped[Decimal] = mapped_column(QtyType, default=Decimal("0"))
    pieces: Mapped[int] = mapped_column(Integer, default=0)
    mtc_no: Mapped[Optional[str]] = mapped_column(String(100))
    mtc_date: Mapped[Optional[date]] = mapped_column(Date)
    mtc_type: Mapped[Optional[str]] = mapped_column(String(10))
    tpi_agency: Mapped[Optional[str]] = mapped_column(String(100))

    location: Mapped[Optional[str]] = mapped_column(String(100))
    rack_no: Mapped[Optional[str]] = mapped_column(String(50))
    notes: Mapped[Optional[str]] = mapped_column(Text)

    status: Mapped[str] = mapped_column(
        String(30),
        default=StockStatus.UNDER_INSPECTION.value,
        index=True,
        comment="UNDER_INSPECTION, ACCEPTED, REJECTED, HOLD, RESERVED, DISPATCHED"
    )
    reserved_for_so_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("sales_orders.id"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    def __repr__(self) -> str:
        return f"<InventoryStock(heat_no='{self.heat_no}', status='{self.status}')>"


class StockReservation(Base):
    __tablename__ = "stock_reservations"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    sales_order_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("sales_orders.id"), nullable=False, index=True
    )
    so_item_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("sales_order_items.id"), nullable=False, index=True
    )
    inventory_stock_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("inventory_stocks.id"), nullable=False, index=True
    )
    reserved_qty_mtr: Mapped[Decimal] = mapped_column(QtyType, nullable=False)
    reserved_pieces: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[str] = mapped_column(
        String(20),
        default=ReservationStatus.RESERVED.value,
        comment="RESERVED, DISPATCHED, RELEASED"
    )
    reservation_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    reserved_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType(as_uuid=True), ForeignKey("users.id"))

    inventory_stock: Mapped["InventoryStock"] = relationship("InventoryStock", lazy="selectin")


# ==================== Stock Issue ====================

class StockIssue(Base):
    """Material issued from stores against a sales order."""
    __tablename__ = "stock_issues"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    issue_no: Mapped[str] = mapped_column(String(30), unique=True, nullable=False, index=True)
    issue_date: Mapped[date] = mapped_column(Date, default=date.today)
    sales_order_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("sales_orders.id"), nullable=False, index=True
    )
    issued_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType(as_uuid=True), ForeignKey("users.id"))
    authorized_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType(as_uuid=True), ForeignKey("users.id"))
    remarks: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    items: Mapped[List["StockIssueItem"]] = relationship(
        "StockIssueItem",
        back_populates="stock_issue",
        cascade="all, delete-orphan",
        lazy="selectin"
    )


class StockIssueItem(Base):
    __tablename__ = "stock_issue_items"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    stock_issue_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("stock_issues.id", ondelete="CASCADE"), nullable=False
    )
    inventory_stock_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("inventory_stocks.id"), nullable=False
    )
    heat_no: Mapped[Optional[str]] = mapped_column(String(100))
    size_label: Mapped[Optional[str]] = mapped_column(String(100))
    material: Mapped[Optional[str]] = mapped_column(String(200))
    quantity_mtr: Mapped[Decimal] = mapped_column(QtyType, default=Decimal("0"))
    pieces: Mapped[int] = mapped_column(Integer, default=0)

    stock_issue: Mapped["StockIssue"] = relationship("StockIssue", back_populates="items")
