"""Dispatch models: packing lists and dispatch notes."""
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional, List

from sqlalchemy import String, Integer, DateTime, Date, ForeignKey, Text, Numeric
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pipetrade.database import Base
from pipetrade.db_types import UUIDType, QtyType


class PackingList(Base):
    __tablename__ = "packing_lists"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    pl_no: Mapped[str] = mapped_column(String(30), unique=True, nullable=False, index=True)
    pl_date: Mapped[date] = mapped_column(Date, default=date.today)
    sales_order_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("sales_orders.id"), nullable=False, index=True
    )
    remarks: Mapped[Optional[str]] = mapped_column(Text)
    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType(as_uuid=True), ForeignKey("users.id"))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    items: Mapped[List["PackingListItem"]] = relationship(
        "PackingListItem",
        back_populates="packing_list",
        cascade="all, delete-orphan",
        lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<PackingList(pl_no='{self.pl_no}')>"


class PackingListItem(Base):
    __tablename__ = "packing_list_items"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    packing_list_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("packing_lists.id", ondelete="CASCADE"), nullable=False
    )
    inventory_stock_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("inventory_stocks.id"), nullable=False, index=True
    )
    heat_no: Mapped[Optional[str]] = mapped_column(String(100))
    size_label: Mapped[Optional[str]] = mapped_column(String(100))
    material: Mapped[Optional[str]] = mapped_column(String(200))
    quantity_mtr: Mapped[Decimal] = mapped_column(QtyType, default=Decimal("0"))
    pieces: Mapped[int] = mapped_column(Integer, default=0)
    bundle_no: Mapped[Optional[str]] = mapped_column(String(50))
    gross_weight_kg: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 3))
    net_weight_kg: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 3))
    marking_details: Mapped[Optional[str]] = mapped_column(Text)

    packing_list: Mapped["PackingList"] = relationship("PackingList", back_populates="items")


class DispatchNote(Base):
    __tablename__ = "dispatch_notes"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    dn_no: Mapped[str] = mapped_column(String(30), unique=True, nullable=False, index=True)
    dispatch_date: Mapped[date] = mapped_column(Date, default=date.today)
    packing_list_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("packing_lists.id"), nullable=False, index=True
    )
    sales_order_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("sales_orders.id"), nullable=False, index=True
    )
    vehicle_no: Mapped[Optional[str]] = mapped_column(String(30))
    lr_no: Mapped[Optional[str]] = mapped_column(String(50), comment="Lorry receipt number")
    transporter: Mapped[Optional[str]] = mapped_column(String(200))
    destination: Mapped[Optional[str]] = mapped_column(String(200))
    eway_bill_no: Mapped[Optional[str]] = mapped_column(String(20))
    remarks: Mapped[Optional[str]] = mapped_column(Text)
    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType(as_uuid=True), ForeignKey("users.id"))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    def __repr__(self) -> str:
        return f"<DispatchNote(dn_no='{self.dn_no}')>"
