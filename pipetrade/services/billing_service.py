"""
Billing Service: GST invoices and payment receipts.

Invoice totals are computed here, never taken from the client:
    subtotal = sum(quantity x rate)
    tax      = CGST + SGST (same state) / IGST (other state) / none (export)
    total    = subtotal + tax

Payments roll the invoice up to PARTIALLY_PAID or PAID; TDS deducted by
the customer counts towards what has been paid.
"""
import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from pipetrade.models.billing import (
    Invoice, InvoiceItem, InvoiceType, InvoiceStatus, PaymentReceipt,
)
from pipetrade.models.dispatch import DispatchNote
from pipetrade.models.document_sequence import DocumentType
from pipetrade.models.master import Customer
from pipetrade.models.sales import SalesOrder
from pipetrade.models.user import User
from pipetrade.schemas.billing import InvoiceCreate, InvoiceUpdate, PaymentReceiptCreate
from pipetrade.services.business_rules import (
    amount_in_words, calculate_gst, line_amount, money, payment_status, to_decimal,
)
from pipetrade.services.document_sequence_service import DocumentSequenceService
from pipetrade.services.state_machine import invoice_machine

logger = logging.getLogger(__name__)

NON_PAYABLE_INVOICE_STATUSES = [InvoiceStatus.CANCELLED.value, InvoiceStatus.PAID.value]


class BillingService:
    """Invoices and the payments received against them."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.numbers = DocumentSequenceService(db)

    # ==================== Invoices ====================

    async def list_invoices(
        self,
        customer_id: Optional[uuid.UUID] = None,
        sales_order_id: Optional[uuid.UUID] = None,
        invoice_status: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[Invoice], int]:
        query = select(Invoice)
        if customer_id:
            query = query.where(Invoice.customer_id == customer_id)
        if sales_order_id:
            query = query.where(Invoice.sales_order_id == sales_order_id)
        if invoice_status:
            query = query.where(Invoice.status == invoice_status)

        total = (await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )).scalar() or 0
        result = await self.db.execute(
            query.order_by(Invoice.created_at.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total

    async def get_invoice(self, invoice_id: uuid.UUID) -> Invoice:
        invoice = await self.db.get(Invoice, invoice_id)
        if not invoice:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found")
        return invoice

    async def create_invoice(self, data: InvoiceCreate, user: User) -> Invoice:
        if not await self.db.get(SalesOrder, data.sales_order_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sales order not found")
        customer = await self.db.get(Customer, data.customer_id)
        if not customer:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Customer not found")
        if data.dispatch_note_id and not await self.db.get(DispatchNote, data.dispatch_note_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Dispatch note not found")

        items = [
            InvoiceItem(
                description=line.description,
                heat_no=line.heat_no,
                size_label=line.size_label,
                hsn_code=line.hsn_code,
                quantity=to_decimal(line.quantity),
                uom=line.uom,
                rate=to_decimal(line.rate),
                amount=line_amount(line.quantity, line.rate),
                tax_rate=to_decimal(line.tax_rate),
            )
            for line in data.items
        ]
        subtotal = money(sum((item.amount for item in items), Decimal("0")))

        invoice_type = data.invoice_type.value
        # One rate per invoice: the first line's
        tax = calculate_gst(subtotal, items[0].tax_rate, invoice_type, customer.state)
        total_amount = money(subtotal + tax["cgst"] + tax["sgst"] + tax["igst"])

        doc_type = DocumentType.INVOICE_EXPORT if invoice_type == InvoiceType.EXPORT.value else DocumentType.INVOICE_DOMESTIC
        invoice = Invoice(
            invoice_no=await self.numbers.get_next_number(doc_type),
            invoice_date=data.invoice_date or date.today(),
            invoice_type=invoice_type,
            sales_order_id=data.sales_order_id,
            dispatch_note_id=data.dispatch_note_id,
            customer_id=customer.id,
            due_date=data.due_date,
            currency=data.currency.upper(),
            subtotal=subtotal,
            cgst_amount=tax["cgst"],
            sgst_amount=tax["sgst"],
            igst_amount=tax["igst"],
            total_amount=total_amount,
            amount_in_words=amount_in_words(total_amount, data.currency.upper()),
            status=InvoiceStatus.DRAFT.value,
            remarks=data.remarks,
            created_by_id=user.id,
            items=items,
        )
        self.db.add(invoice)
        await self.db.commit()
        await self.db.refresh(invoice)
        logger.info("Created %s for %s: total %s %s", invoice.invoice_no, customer.name, total_amount, invoice.currency)
        return invoice

    async def update_invoice(self, invoice_id: uuid.UUID, data: InvoiceUpdate) -> Invoice:
        invoice = await self.get_invoice(invoice_id)
        update_data = data.model_dump(exclude_unset=True)
        new_status = update_data.pop("status", None)

        for field, value in update_data.items():
            setattr(invoice, field, value)

        if new_status:
            invoice_machine.validate_transition(invoice.status, new_status.value)
            if new_status.value != invoice.status:
                logger.info("%s: %s -> %s", invoice.invoice_no, invoice.status, new_status.value)
            invoice.status = new_status.value

        await self.db.commit()
        await self.db.refresh(invoice)
        return invoice

    async def delete_invoice(self, invoice_id: uuid.UUID) -> None:
        invoice = await self.get_invoice(invoice_id)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invoice {invoice.invoice_no} cannot be deleted. Cancel it instead."
        )

    # ==================== Payments ====================

    async def list_payments(
        self,
        invoice_id: Optional[uuid.UUID] = None,
        customer_id: Optional[uuid.UUID] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[PaymentReceipt], int]:
        query = select(PaymentReceipt)
        if invoice_id:
            query = query.where(PaymentReceipt.invoice_id == invoice_id)
        if customer_id:
            query = query.where(PaymentReceipt.customer_id == customer_id)

        total = (await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )).scalar() or 0
        result = await self.db.execute(
            query.order_by(PaymentReceipt.payment_date.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total

    async def get_payment(self, payment_id: uuid.UUID) -> PaymentReceipt:
        payment = await self.db.get(PaymentReceipt, payment_id)
        if not payment:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payment receipt not found")
        return payment

    async def total_paid(self, invoice_id: uuid.UUID) -> Decimal:
        """Amount plus TDS across every receipt for the invoice."""
        paid = (await self.db.execute(
            select(func.coalesce(func.sum(PaymentReceipt.amount + PaymentReceipt.tds_amount), 0))
            .where(PaymentReceipt.invoice_id == invoice_id)
        )).scalar()
        return money(paid)

    async def record_payment(
        self,
        data: PaymentReceiptCreate,
        user: User,
    ) -> Tuple[PaymentReceipt, Invoice, Decimal]:
        """
        Record a receipt against an invoice.

        Returns the receipt, the invoice with its rolled-up status and
        the total paid so far.
        """
        invoice = await self.get_invoice(data.invoice_id)
        if invoice.status in NON_PAYABLE_INVOICE_STATUSES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot record a payment against a {invoice.status} invoice"
            )
        if not await self.db.get(Customer, data.customer_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Customer not found")

        receipt = PaymentReceipt(
            receipt_no=await self.numbers.get_next_number(DocumentType.RECEIPT),
            payment_date=data.payment_date or date.today(),
            invoice_id=invoice.id,
            customer_id=data.customer_id,
            amount=money(data.amount),
            tds_amount=money(data.tds_amount),
            payment_mode=data.payment_mode.value,
            reference_no=data.reference_no,
            bank_name=data.bank_name,
            remarks=data.remarks,
            created_by_id=user.id,
        )
        self.db.add(receipt)
        await self.db.flush()

        paid = await self.total_paid(invoice.id)
        new_status = payment_status(invoice.total_amount, paid)
        if invoice.status == InvoiceStatus.DRAFT.value:
            # Money arriving against a draft means it went out
            invoice_machine.validate_transition(invoice.status, InvoiceStatus.SENT.value)
            invoice.status = InvoiceStatus.SENT.value
        invoice_machine.validate_transition(invoice.status, new_status)
        if new_status != invoice.status:
            logger.info("%s: %s -> %s (paid %s of %s)", invoice.invoice_no, invoice.status, new_status, paid, invoice.total_amount)
        invoice.status = new_status

        await self.db.commit()
        await self.db.refresh(receipt)
        await self.db.refresh(invoice)
        logger.info("Recorded %s against %s: %s", receipt.receipt_no, invoice.invoice_no, receipt.amount)
        return receipt, invoice, paid
