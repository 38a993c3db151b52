"""
Procurement models.

Purchase Requisition (PR) -> Purchase Order (PO, amendable) -> Goods
Receipt Note (GRN). Each GRN line becomes one heat-numbered stock row.
"""
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional, List

from sqlalchemy import String, Integer, DateTime, Date, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pipetrade.database import Base
from pipetrade.db_types import UUIDType, QtyType, MoneyType

if TYPE_CHECKING:
    from pipetrade.models.master import Vendor


# ==================== Enums ====================

class RequisitionStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    PO_CREATED = "PO_CREATED"


class POStatus(str, Enum):
    DRAFT = "DRAFT"
    OPEN = "OPEN"
    PARTIALLY_RECEIVED = "PARTIALLY_RECEIVED"
    FULLY_RECEIVED = "FULLY_RECEIVED"
    CLOSED = "CLOSED"
    CANCELLED = "CANCELLED"


class MTCType(str, Enum):
    """Mill test certificate type per EN 10204."""
    MTC_3_1 = "MTC_3_1"
    MTC_3_2 = "MTC_3_2"


# ==================== Purchase Requisition ====================

class PurchaseRequisition(Base):
    __tablename__ = "purchase_requisitions"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    pr_no: Mapped[str] = mapped_column(String(30), unique=True, nullable=False, index=True)
    pr_date: Mapped[date] = mapped_column(Date, default=date.today)

    sales_order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("sales_orders.id"), nullable=True, index=True
    )
    required_by: Mapped[Optional[date]] = mapped_column(Date)
    remarks: Mapped[Optional[str]] = mapped_column(Text)

    status: Mapped[str] = mapped_column(
        String(30),
        default=RequisitionStatus.DRAFT.value,
        index=True,
        comment="DRAFT, PENDING_APPROVAL, APPROVED, REJECTED, PO_CREATED"
    )
    is_auto_generated: Mapped[bool] = mapped_column(default=False)

    requested_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType(as_uuid=True), ForeignKey("users.id"))
    approved_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType(as_uuid=True), ForeignKey("users.id"))
    approval_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    approval_remarks: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    items: Mapped[List["PurchaseRequisitionItem"]] = relationship(
        "PurchaseRequisitionItem",
        back_populates="requisition",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PurchaseRequisitionItem.s_no"
    )

    def __repr__(self) -> str:
        return f"<PurchaseRequisition(pr_no='{self.pr_no}', status='{self.status}')>"


class PurchaseRequisitionItem(Base):
    __tablename__ = "purchase_requisition_items"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    requisition_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("purchase_requisitions.id", ondelete="CASCADE"), nullable=False
    )
    s_no: Mapped[int] = mapped_column(Integer, default=1)
    product: Mapped[Optional[str]] = mapped_column(String(200))
    material: Mapped[Optional[str]] = mapped_column(String(200))
    additional_spec: Mapped[Optional[str]] = mapped_column(String(255))
    size_label: Mapped[Optional[str]] = mapped_column(String(100))
    quantity: Mapped[Decimal] = mapped_column(QtyType, default=Decimal("0"))
    uom: Mapped[str] = mapped_column(String(10), default="MTR")
    remarks: Mapped[Optional[str]] = mapped_column(Text)

    requisition: Mapped["PurchaseRequisition"] = relationship("PurchaseRequisition", back_populates="items")


# ==================== Purchase Order ====================

class PurchaseOrder(Base):
    """
    Purchase order to an approved vendor.

    Amendments keep po_no and bump version; the chain is linked through
    parent_po_id.
    """
    __tablename__ = "purchase_orders"
    __table_args__ = (
        UniqueConstraint("po_no", "version", name="uq_po_no_version"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    po_no: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    po_date: Mapped[date] = mapped_column(Date, default=date.today)
    version: Mapped[int] = mapped_column(Integer, default=1)
    parent_po_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("purchase_orders.id"), nullable=True
    )
    change_reason: Mapped[Optional[str]] = mapped_column(Text)

    vendor_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("vendors.id"), nullable=False, index=True
    )
    pr_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("purchase_requisitions.id"), nullable=True
    )
    sales_order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("sales_orders.id"), nullable=True
    )
    delivery_date: Mapped[Optional[date]] = mapped_column(Date)
    payment_terms: Mapped[Optional[str]] = mapped_column(Text)
    remarks: Mapped[Optional[str]] = mapped_column(Text)

    status: Mapped[str] = mapped_column(
        String(30),
        default=POStatus.DRAFT.value,
        index=True,
        comment="DRAFT, OPEN, PARTIALLY_RECEIVED, FULLY_RECEIVED, CLOSED, CANCELLED"
    )
    total_amount: Mapped[Decimal] = mapped_column(MoneyType, default=Decimal("0"))

    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType(as_uuid=True), ForeignKey("users.id"))
    approved_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType(as_uuid=True), ForeignKey("users.id"))
    approval_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    vendor: Mapped["Vendor"] = relationship("Vendor", lazy="selectin")
    items: Mapped[List["PurchaseOrderItem"]] = relationship(
        "PurchaseOrderItem",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PurchaseOrderItem.s_no"
    )

    def __repr__(self) -> str:
        return f"<PurchaseOrder(po_no='{self.po_no}', v{self.version}, status='{self.status}')>"


class PurchaseOrderItem(Base):
    __tablename__ = "purchase_order_items"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    po_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False
    )
    s_no: Mapped[int] = mapped_column(Integer, default=1)
    product: Mapped[Optional[str]] = mapped_column(String(200))
    material: Mapped[Optional[str]] = mapped_column(String(200))
    additional_spec: Mapped[Optional[str]] = mapped_column(String(255))
    size_label: Mapped[Optional[str]] = mapped_column(String(100))
    quantity: Mapped[Decimal] = mapped_column(QtyType, default=Decimal("0"))
    unit_rate: Mapped[Decimal] = mapped_column(MoneyType, default=Decimal("0"))
    amount: Mapped[Decimal] = mapped_column(MoneyType, default=Decimal("0"))
    delivery_date: Mapped[Optional[date]] = mapped_column(Date)

    purchase_order: Mapped["PurchaseOrder"] = relationship("PurchaseOrder", back_populates="items")


# ==================== Goods Receipt Note ====================

class GoodsReceiptNote(Base):
    __tablename__ = "goods_receipt_notes"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    grn_no: Mapped[str] = mapped_column(String(30), unique=True, nullable=False, index=True)
    grn_date: Mapped[date] = mapped_column(Date, default=date.today)

    po_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("purchase_orders.id"), nullable=False, index=True
    )
    vendor_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("vendors.id"), nullable=False
    )
    received_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType(as_uuid=True), ForeignKey("users.id"))
    remarks: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    vendor: Mapped["Vendor"] = relationship("Vendor", lazy="selectin")
    items: Mapped[List["GRNItem"]] = relationship(
        "GRNItem",
        back_populates="grn",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="GRNItem.s_no"
    )

    def __repr__(self) -> str:
        return f"<GoodsReceiptNote(grn_no='{self.grn_no}')>"


class GRNItem(Base):
    """One received heat. Carries the mill test certificate details."""
    __tablename__ = "grn_items"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    grn_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("goods_receipt_notes.id", ondelete="CASCADE"), nullable=False
    )
    s_no: Mapped[int] = mapped_column(Integer, default=1)
    product: Mapped[Optional[str]] = mapped_column(String(200))
    material: Mapped[Optional[str]] = mapped_column(String(200))
    specification: Mapped[Optional[str]] = mapped_column(String(200))
    additional_spec: Mapped[Optional[str]] = mapped_column(String(255))
    dimension_std: Mapped[Optional[str]] = mapped_column(String(100))
    size_label: Mapped[Optional[str]] = mapped_column(String(100))
    ends: Mapped[Optional[str]] = mapped_column(String(20))
    length: Mapped[Optional[str]] = mapped_column(String(50))
    heat_no: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    make: Mapped[Optional[str]] = mapped_column(String(100))
    received_qty_mtr: Mapped[Decimal] = mapped_column(QtyType, default=Decimal("0"))
    pieces: Mapped[int] = mapped_column(Integer, default=0)
    mtc_no: Mapped[Optional[str]] = mapped_column(String(100))
    mtc_date: Mapped[Optional[date]] = mapped_column(Date)
    mtc_type: Mapped[Optional[str]] = mapped_column(String(10), comment="MTC_3_1, MTC_3_2")
    tpi_agency: Mapped[Optional[str]] = mapped_column(String(100))

    grn: Mapped["GoodsReceiptNote"] = relationship("GoodsReceiptNote", back_populates="items")
