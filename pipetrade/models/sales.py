"""
Sales models: enquiries, quotations and sales orders.

Flow: Enquiry -> Quotation (revisable) -> Sales Order -> reservations.
"""
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional, List

from sqlalchemy import String, Integer, DateTime, Date, ForeignKey, Text, Numeric
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pipetrade.database import Base
from pipetrade.db_types import UUIDType, QtyType, MoneyType, JSONType

if TYPE_CHECKING:
    from pipetrade.models.master import Customer


# ==================== Enums ====================

class EnquiryStatus(str, Enum):
    OPEN = "OPEN"
    QUOTATION_PREPARED = "QUOTATION_PREPARED"
    WON = "WON"
    LOST = "LOST"
    CANCELLED = "CANCELLED"


class QuotationStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    REVISED = "REVISED"
    SENT = "SENT"
    WON = "WON"
    LOST = "LOST"
    EXPIRED = "EXPIRED"
    SUPERSEDED = "SUPERSEDED"
    CANCELLED = "CANCELLED"


class QuotationType(str, Enum):
    DOMESTIC = "DOMESTIC"
    EXPORT = "EXPORT"


class RevisionTrigger(str, Enum):
    """Why a quotation was revised."""
    PRICE_NEGOTIATION = "PRICE_NEGOTIATION"
    SPEC_CHANGE = "SPEC_CHANGE"
    QTY_CHANGE = "QTY_CHANGE"
    ITEM_ADD = "ITEM_ADD"
    ITEM_REMOVE = "ITEM_REMOVE"
    VALIDITY_EXTENSION = "VALIDITY_EXTENSION"
    DELIVERY_CHANGE = "DELIVERY_CHANGE"
    TERMS_CHANGE = "TERMS_CHANGE"
    SCOPE_CHANGE = "SCOPE_CHANGE"
    FOREX_CHANGE = "FOREX_CHANGE"
    VENDOR_COST_CHANGE = "VENDOR_COST_CHANGE"
    MARKET_ADJUSTMENT = "MARKET_ADJUSTMENT"
    COMPETITIVE_RESPONSE = "COMPETITIVE_RESPONSE"
    REGULATORY_CHANGE = "REGULATORY_CHANGE"
    CUSTOMER_PO_MISMATCH = "CUSTOMER_PO_MISMATCH"
    INTERNAL_CORRECTION = "INTERNAL_CORRECTION"
    RE_QUOTATION_AFTER_EXPIRY = "RE_QUOTATION_AFTER_EXPIRY"
    OTHER = "OTHER"


class SOStatus(str, Enum):
    OPEN = "OPEN"
    PARTIALLY_DISPATCHED = "PARTIALLY_DISPATCHED"
    FULLY_DISPATCHED = "FULLY_DISPATCHED"
    CLOSED = "CLOSED"
    CANCELLED = "CANCELLED"


class POAcceptanceStatus(str, Enum):
    """Our acceptance of the customer's purchase order."""
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    HOLD = "HOLD"


# ==================== Enquiry ====================

class Enquiry(Base):
    __tablename__ = "enquiries"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    enquiry_no: Mapped[str] = mapped_column(String(30), unique=True, nullable=False, index=True)
    enquiry_date: Mapped[date] = mapped_column(Date, default=date.today)

    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("customers.id"), nullable=False, index=True
    )
    client_inquiry_no: Mapped[Optional[str]] = mapped_column(String(100))
    client_inquiry_date: Mapped[Optional[date]] = mapped_column(Date)
    enquiry_mode: Mapped[str] = mapped_column(String(20), default="EMAIL", comment="EMAIL, PHONE, WALK_IN, PORTAL")
    project_name: Mapped[Optional[str]] = mapped_column(String(255))
    remarks: Mapped[Optional[str]] = mapped_column(Text)

    status: Mapped[str] = mapped_column(
        String(30),
        default=EnquiryStatus.OPEN.value,
        index=True,
        comment="OPEN, QUOTATION_PREPARED, WON, LOST, CANCELLED"
    )
    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType(as_uuid=True), ForeignKey("users.id"))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    customer: Mapped["Customer"] = relationship("Customer", lazy="selectin")
    items: Mapped[List["EnquiryItem"]] = relationship(
        "EnquiryItem",
        back_populates="enquiry",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="EnquiryItem.s_no"
    )

    def __repr__(self) -> str:
        return f"<Enquiry(enquiry_no='{self.enquiry_no}', status='{self.status}')>"


class EnquiryItem(Base):
    __tablename__ = "enquiry_items"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    enquiry_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("enquiries.id", ondelete="CASCADE"), nullable=False
    )
    s_no: Mapped[int] = mapped_column(Integer, default=1)
    product: Mapped[Optional[str]] = mapped_column(String(200))
    material: Mapped[Optional[str]] = mapped_column(String(200))
    additional_spec: Mapped[Optional[str]] = mapped_column(String(255))
    size_label: Mapped[Optional[str]] = mapped_column(String(100))
    ends: Mapped[Optional[str]] = mapped_column(String(20))
    quantity: Mapped[Optional[Decimal]] = mapped_column(QtyType)
    uom: Mapped[str] = mapped_column(String(10), default="Mtr")
    remarks: Mapped[Optional[str]] = mapped_column(Text)

    enquiry: Mapped["Enquiry"] = relationship("Enquiry", back_populates="items")


# ==================== Quotation ====================

class Quotation(Base):
    """
    Customer quotation.

    Revisions form a chain through parent_quotation_id. A revision copies
    the source and bumps version; the source is superseded once the
    revision is submitted. change_snapshot holds the diff against the
    source taken when the revision was created.
    """
    __tablename__ = "quotations"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    quotation_no: Mapped[str] = mapped_column(String(40), unique=True, nullable=False, index=True)
    quotation_date: Mapped[date] = mapped_column(Date, default=date.today)

    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("customers.id"), nullable=False, index=True
    )
    enquiry_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("enquiries.id"), nullable=True
    )

    quotation_type: Mapped[str] = mapped_column(String(20), default=QuotationType.DOMESTIC.value)
    currency: Mapped[str] = mapped_column(String(3), default="INR")
    valid_upto: Mapped[Optional[date]] = mapped_column(Date)
    payment_terms: Mapped[Optional[str]] = mapped_column(Text)
    delivery_terms: Mapped[Optional[str]] = mapped_column(Text)
    remarks: Mapped[Optional[str]] = mapped_column(Text)

    status: Mapped[str] = mapped_column(
        String(30),
        default=QuotationStatus.DRAFT.value,
        index=True,
        comment="DRAFT, PENDING_APPROVAL, APPROVED, REJECTED, REVISED, SENT, WON, LOST, EXPIRED, SUPERSEDED, CANCELLED"
    )

    # Revision chain
    version: Mapped[int] = mapped_column(Integer, default=1)
    parent_quotation_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("quotations.id"), nullable=True
    )
    revision_trigger: Mapped[Optional[str]] = mapped_column(String(40))
    revision_sub_reason: Mapped[Optional[str]] = mapped_column(String(200))
    revision_notes: Mapped[Optional[str]] = mapped_column(Text)
    change_snapshot: Mapped[Optional[dict]] = mapped_column(JSONType)

    total_amount: Mapped[Decimal] = mapped_column(MoneyType, default=Decimal("0"))
    total_weight_mt: Mapped[Decimal] = mapped_column(QtyType, default=Decimal("0"))

    prepared_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType(as_uuid=True), ForeignKey("users.id"))
    approved_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType(as_uuid=True), ForeignKey("users.id"))
    approval_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    approval_remarks: Mapped[Optional[str]] = mapped_column(Text)
    sent_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    customer: Mapped["Customer"] = relationship("Customer", lazy="selectin")
    items: Mapped[List["QuotationItem"]] = relationship(
        "QuotationItem",
        back_populates="quotation",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="QuotationItem.s_no"
    )
    terms: Mapped[List["QuotationTerm"]] = relationship(
        "QuotationTerm",
        back_populates="quotation",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="QuotationTerm.term_no"
    )

    def __repr__(self) -> str:
        return f"<Quotation(quotation_no='{self.quotation_no}', v{self.version}, status='{self.status}')>"


class QuotationItem(Base):
    __tablename__ = "quotation_items"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    quotation_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("quotations.id", ondelete="CASCADE"), nullable=False
    )
    s_no: Mapped[int] = mapped_column(Integer, default=1)
    product: Mapped[Optional[str]] = mapped_column(String(200))
    material: Mapped[Optional[str]] = mapped_column(String(200))
    additional_spec: Mapped[Optional[str]] = mapped_column(String(255))
    size_label: Mapped[Optional[str]] = mapped_column(String(100))
    od: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), comment="Outside diameter, mm")
    wt: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), comment="Wall thickness, mm")
    length: Mapped[Optional[str]] = mapped_column(String(50))
    ends: Mapped[Optional[str]] = mapped_column(String(20))
    quantity: Mapped[Decimal] = mapped_column(QtyType, default=Decimal("0"))
    unit_rate: Mapped[Decimal] = mapped_column(MoneyType, default=Decimal("0"))
    amount: Mapped[Decimal] = mapped_column(MoneyType, default=Decimal("0"))
    delivery: Mapped[Optional[str]] = mapped_column(String(100))
    remark: Mapped[Optional[str]] = mapped_column(Text)
    unit_weight: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 3), comment="kg per metre")
    total_weight_mt: Mapped[Optional[Decimal]] = mapped_column(QtyType)

    quotation: Mapped["Quotation"] = relationship("Quotation", back_populates="items")


class QuotationTerm(Base):
    __tablename__ = "quotation_terms"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    quotation_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("quotations.id", ondelete="CASCADE"), nullable=False
    )
    term_no: Mapped[int] = mapped_column(Integer, default=1)
    term_name: Mapped[str] = mapped_column(String(100), nullable=False)
    term_value: Mapped[Optional[str]] = mapped_column(Text)

    quotation: Mapped["Quotation"] = relationship("Quotation", back_populates="terms")


# ==================== Sales Order ====================

class SalesOrder(Base):
    __tablename__ = "sales_orders"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    so_no: Mapped[str] = mapped_column(String(30), unique=True, nullable=False, index=True)
    so_date: Mapped[date] = mapped_column(Date, default=date.today)

    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("customers.id"), nullable=False, index=True
    )
    quotation_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("quotations.id"), nullable=True
    )
    customer_po_no: Mapped[Optional[str]] = mapped_column(String(100))
    customer_po_date: Mapped[Optional[date]] = mapped_column(Date)
    project_name: Mapped[Optional[str]] = mapped_column(String(255))
    payment_terms: Mapped[Optional[str]] = mapped_column(Text)
    delivery_terms: Mapped[Optional[str]] = mapped_column(Text)
    delivery_schedule: Mapped[Optional[str]] = mapped_column(Text)
    remarks: Mapped[Optional[str]] = mapped_column(Text)

    status: Mapped[str] = mapped_column(
        String(30),
        default=SOStatus.OPEN.value,
        index=True,
        comment="OPEN, PARTIALLY_DISPATCHED, FULLY_DISPATCHED, CLOSED, CANCELLED"
    )
    po_acceptance_status: Mapped[str] = mapped_column(
        String(20),
        default=POAcceptanceStatus.ACCEPTED.value,
        comment="PENDING, ACCEPTED, REJECTED, HOLD"
    )
    total_amount: Mapped[Decimal] = mapped_column(MoneyType, default=Decimal("0"))

    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType(as_uuid=True), ForeignKey("users.id"))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    customer: Mapped["Customer"] = relationship("Customer", lazy="selectin")
    items: Mapped[List["SalesOrderItem"]] = relationship(
        "SalesOrderItem",
        back_populates="sales_order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="SalesOrderItem.s_no"
    )

    def __repr__(self) -> str:
        return f"<SalesOrder(so_no='{self.so_no}', status='{self.status}')>"


class SalesOrderItem(Base):
    __tablename__ = "sales_order_items"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    sales_order_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("sales_orders.id", ondelete="CASCADE"), nullable=False
    )
    s_no: Mapped[int] = mapped_column(Integer, default=1)
    product: Mapped[Optional[str]] = mapped_column(String(200))
    material: Mapped[Optional[str]] = mapped_column(String(200))
    additional_spec: Mapped[Optional[str]] = mapped_column(String(255))
    size_label: Mapped[Optional[str]] = mapped_column(String(100))
    od: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2))
    wt: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2))
    ends: Mapped[Optional[str]] = mapped_column(String(20))
    quantity: Mapped[Decimal] = mapped_column(QtyType, default=Decimal("0"))
    unit_rate: Mapped[Decimal] = mapped_column(MoneyType, default=Decimal("0"))
    amount: Mapped[Decimal] = mapped_column(MoneyType, default=Decimal("0"))
    delivery_date: Mapped[Optional[date]] = mapped_column(Date)
    unit_weight: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 3))
    total_weight_mt: Mapped[Optional[Decimal]] = mapped_column(QtyType)

    sales_order: Mapped["SalesOrder"] = relationship("SalesOrder", back_populates="items")
