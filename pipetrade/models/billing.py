"""
Billing models: GST invoices and payment receipts.

Intra-state invoices carry CGST + SGST, inter-state ones IGST and
export invoices no tax.
"""
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional, List

from sqlalchemy import String, DateTime, Date, ForeignKey, Text, Numeric
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pipetrade.database import Base
from pipetrade.db_types import UUIDType, QtyType, MoneyType

if TYPE_CHECKING:
    from pipetrade.models.master import Customer


class InvoiceType(str, Enum):
    DOMESTIC = "DOMESTIC"
    EXPORT = "EXPORT"


class InvoiceStatus(str, Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class PaymentMode(str, Enum):
    NEFT = "NEFT"
    RTGS = "RTGS"
    CHEQUE = "CHEQUE"
    CASH = "CASH"
    UPI = "UPI"
    LC = "LC"
    TT = "TT"


class Invoice(Base):
    __tablename__ = "invoices"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    invoice_no: Mapped[str] = mapped_column(String(30), unique=True, nullable=False, index=True)
    invoice_date: Mapped[date] = mapped_column(Date, default=date.today)
    invoice_type: Mapped[str] = mapped_column(String(20), default=InvoiceType.DOMESTIC.value)

    sales_order_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("sales_orders.id"), nullable=False, index=True
    )
    dispatch_note_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("dispatch_notes.id"), nullable=True, index=True
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("customers.id"), nullable=False, index=True
    )
    due_date: Mapped[Optional[date]] = mapped_column(Date)
    currency: Mapped[str] = mapped_column(String(3), default="INR")

    subtotal: Mapped[Decimal] = mapped_column(MoneyType, default=Decimal("0"))
    cgst_amount: Mapped[Decimal] = mapped_column(MoneyType, default=Decimal("0"))
    sgst_amount: Mapped[Decimal] = mapped_column(MoneyType, default=Decimal("0"))
    igst_amount: Mapped[Decimal] = mapped_column(MoneyType, default=Decimal("0"))
    total_amount: Mapped[Decimal] = mapped_column(MoneyType, default=Decimal("0"))
    amount_in_words: Mapped[Optional[str]] = mapped_column(Text)

    status: Mapped[str] = mapped_column(
        String(20),
        default=InvoiceStatus.DRAFT.value,
        index=True,
        comment="DRAFT, SENT, PARTIALLY_PAID, PAID, CANCELLED"
    )
    remarks: Mapped[Optional[str]] = mapped_column(Text)
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
    items: Mapped[List["InvoiceItem"]] = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<Invoice(invoice_no='{self.invoice_no}', status='{self.status}')>"


class InvoiceItem(Base):
    __tablename__ = "invoice_items"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    invoice_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False
    )
    description: Mapped[Optional[str]] = mapped_column(Text)
    heat_no: Mapped[Optional[str]] = mapped_column(String(100))
    size_label: Mapped[Optional[str]] = mapped_column(String(100))
    hsn_code: Mapped[Optional[str]] = mapped_column(String(20))
    quantity: Mapped[Decimal] = mapped_column(QtyType, default=Decimal("0"))
    uom: Mapped[str] = mapped_column(String(10), default="MTR")
    rate: Mapped[Decimal] = mapped_column(MoneyType, default=Decimal("0"))
    amount: Mapped[Decimal] = mapped_column(MoneyType, default=Decimal("0"))
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("18"))

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="items")


class PaymentReceipt(Base):
    __tablename__ = "payment_receipts"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    receipt_no: Mapped[str] = mapped_column(String(30), unique=True, nullable=False, index=True)
    payment_date: Mapped[date] = mapped_column(Date, default=date.today)
    invoice_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("invoices.id"), nullable=False, index=True
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("customers.id"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    tds_amount: Mapped[Decimal] = mapped_column(MoneyType, default=Decimal("0"))
    payment_mode: Mapped[str] = mapped_column(String(20), default=PaymentMode.NEFT.value)
    reference_no: Mapped[Optional[str]] = mapped_column(String(100))
    bank_name: Mapped[Optional[str]] = mapped_column(String(200))
    remarks: Mapped[Optional[str]] = mapped_column(Text)
    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType(as_uuid=True), ForeignKey("users.id"))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    def __repr__(self) -> str:
        return f"<PaymentReceipt(receipt_no='{self.receipt_no}', amount={self.amount})>"
